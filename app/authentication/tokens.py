"""
Signed access and refresh tokens.

Tokens are HS256 JWTs carrying the account id, username, email and avatar
URL. Access and refresh tokens are signed with different secrets, so an
access secret can never mint a refresh token. Nothing here touches the
database: a token is valid if its signature checks out and it has not
expired.

Usage:
    codec = TokenCodec(access_secret="...", refresh_secret="...")
    claims = TokenClaims(user_id=1, username="foo", email="a@x.com", avatar_url=url)

    access = codec.issue_access_token(claims)
    refresh = codec.issue_refresh_token(claims)

    claims = codec.verify(access, TokenKind.ACCESS)
    new_access = codec.refresh(refresh)

Errors:
    TokenExpiredError, TokenSignatureError and MalformedTokenError all
    derive from core.exceptions.AuthError.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass
from datetime import timedelta, timezone as dt_timezone

import jwt
from django.utils import timezone

from core.exceptions import AuthError

ALGORITHM = "HS256"


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenExpiredError(AuthError):
    default_error_code = "TOKEN_EXPIRED"


class TokenSignatureError(AuthError):
    default_error_code = "TOKEN_BAD_SIGNATURE"


class MalformedTokenError(AuthError):
    default_error_code = "TOKEN_MALFORMED"


@dataclass(frozen=True)
class TokenClaims:
    """Identity claims embedded in every token."""

    user_id: int
    username: str | None
    email: str
    avatar_url: str | None = None

    @classmethod
    def for_user(cls, user) -> TokenClaims:
        """Build claims from a User, reading username and avatar from its profile."""
        profile = getattr(user, "profile", None)
        return cls(
            user_id=user.pk,
            username=profile.username if profile else None,
            email=user.email,
            avatar_url=profile.avatar_url if profile else None,
        )


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    refresh_token: str


class TokenCodec:
    """
    Issue and verify access/refresh tokens.

    Args:
        access_secret: HMAC key for access tokens
        refresh_secret: HMAC key for refresh tokens (must differ)
        access_lifetime: Access token validity (default 1 hour)
        refresh_lifetime: Refresh token validity (default 7 days)
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_lifetime: timedelta = timedelta(hours=1),
        refresh_lifetime: timedelta = timedelta(days=7),
    ):
        if not access_secret or not refresh_secret:
            raise ValueError("Both access and refresh secrets are required")
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh secrets must differ")
        self._secrets = {
            TokenKind.ACCESS: access_secret,
            TokenKind.REFRESH: refresh_secret,
        }
        self._lifetimes = {
            TokenKind.ACCESS: access_lifetime,
            TokenKind.REFRESH: refresh_lifetime,
        }

    def issue_access_token(self, claims: TokenClaims) -> str:
        return self._encode(claims, TokenKind.ACCESS)

    def issue_refresh_token(self, claims: TokenClaims) -> str:
        return self._encode(claims, TokenKind.REFRESH)

    def issue_pair(self, claims: TokenClaims) -> IssuedTokens:
        return IssuedTokens(
            access_token=self.issue_access_token(claims),
            refresh_token=self.issue_refresh_token(claims),
        )

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """
        Verify a token of the given kind and return its claims.

        The signature is checked before expiry, so an expired token signed
        with the right key reports TokenExpiredError, never a signature error.

        Raises:
            MalformedTokenError: not a JWT, or missing required claims
            TokenSignatureError: signed with another key
            TokenExpiredError: signature valid but past ``exp``
        """
        if not token:
            raise MalformedTokenError("Token is missing")
        try:
            payload = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(f"{kind.value.capitalize()} token has expired") from exc
        except jwt.InvalidSignatureError as exc:
            raise TokenSignatureError(f"Invalid {kind.value} token signature") from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedTokenError(f"Malformed {kind.value} token") from exc

        if payload.get("token_type") != kind.value:
            raise MalformedTokenError(f"Token is not a {kind.value} token")
        try:
            return TokenClaims(
                user_id=payload["user_id"],
                username=payload.get("username"),
                email=payload["email"],
                avatar_url=payload.get("avatar_url"),
            )
        except KeyError as exc:
            raise MalformedTokenError(f"Token is missing claim {exc}") from exc

    def refresh(self, refresh_token: str) -> str:
        """
        Mint a new access token from a valid refresh token.

        The refresh token's claims are reused as issued; the store is not
        consulted, so a username or avatar changed since sign-in is only
        picked up at the next sign-in.
        """
        claims = self.verify(refresh_token, TokenKind.REFRESH)
        return self.issue_access_token(claims)

    def _encode(self, claims: TokenClaims, kind: TokenKind) -> str:
        issued_at = timezone.now().astimezone(dt_timezone.utc).replace(microsecond=0)
        payload = {
            **asdict(claims),
            "token_type": kind.value,
            "iat": issued_at,
            "exp": issued_at + self._lifetimes[kind],
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=ALGORITHM)

