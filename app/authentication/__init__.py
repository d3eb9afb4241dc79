"""
Authentication application.

This app provides account provisioning and authentication for the
identity API: password signup and sign-in, email verification, password
reset, Google sign-in with username completion, and signed access/refresh
tokens.

Key components:
    - User model: Custom email-based account
    - Profile model: Public identity (username, avatar)
    - services/: SignupService, SigninService, VerificationTokenManager,
      IdentityLinkService
    - tokens.py: TokenCodec for access/refresh tokens
    - store.py: CredentialStore transactions

Usage:
    from authentication.models import User, Profile
    from authentication.dependencies import get_auth_services
"""
