"""
Authentication services package.

- VerificationTokenManager: verification and reset tokens
- SignupService: password signup with bounded retry
- SigninService: password sign-in
- IdentityLinkService: Google account linking
"""

from authentication.services.linking import IdentityLinkService, LinkOutcome, LinkStatus
from authentication.services.signin import SigninService
from authentication.services.signup import SignupResult, SignupService
from authentication.services.verification import (
    VerificationOutcome,
    VerificationTokenManager,
)

__all__ = [
    "IdentityLinkService",
    "LinkOutcome",
    "LinkStatus",
    "SigninService",
    "SignupResult",
    "SignupService",
    "VerificationOutcome",
    "VerificationTokenManager",
]
