"""
DRF authentication for bearer access tokens.

Requests carrying ``Authorization: Bearer <access token>`` are
authenticated from the token's claims alone; the database is not read.
request.user is a TokenUser and request.auth the TokenClaims.

Usage (settings.REST_FRAMEWORK):
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "authentication.backends.AccessTokenAuthentication",
    ]
"""

from __future__ import annotations

from rest_framework import authentication, exceptions

from authentication.tokens import TokenClaims, TokenKind
from core.exceptions import AuthError
from core.helpers import get_bearer_token


class TokenUser:
    """Stateless stand-in for a User, built from access token claims."""

    is_authenticated = True
    is_anonymous = False
    is_active = True
    is_staff = False
    is_superuser = False

    def __init__(self, claims: TokenClaims):
        self.claims = claims
        self.id = self.pk = claims.user_id
        self.username = claims.username
        self.email = claims.email
        self.avatar_url = claims.avatar_url

    def __str__(self):
        return self.email


class AccessTokenAuthentication(authentication.BaseAuthentication):
    """Authenticate requests with a bearer access token."""

    keyword = "Bearer"

    def authenticate(self, request):
        token = get_bearer_token(request)
        if token is None:
            return None

        from authentication.dependencies import get_auth_services

        codec = get_auth_services().codec
        try:
            claims = codec.verify(token, TokenKind.ACCESS)
        except AuthError as e:
            raise exceptions.AuthenticationFailed(e.message, code=e.error_code) from e
        return TokenUser(claims), claims

    def authenticate_header(self, request):
        return self.keyword
