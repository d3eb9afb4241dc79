"""
Email and password sign-in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from authentication.models import User
from authentication.tokens import IssuedTokens, TokenClaims, TokenCodec
from core.exceptions import AuthError, ForbiddenError
from core.services import BaseService

logger = logging.getLogger(__name__)


class InvalidCredentialsError(AuthError):
    default_error_code = "INVALID_CREDENTIALS"
    status_code = 400


class UnverifiedAccountError(ForbiddenError):
    """Password matched but the email address is not verified yet."""

    default_error_code = "EMAIL_NOT_VERIFIED"


@dataclass(frozen=True)
class SigninResult:
    user: User
    tokens: IssuedTokens


class SigninService(BaseService):
    """
    Check a password and issue an access/refresh token pair.

    Args:
        codec: Token codec used to sign the pair
    """

    def __init__(self, codec: TokenCodec):
        self.codec = codec

    def sign_in(self, email: str, password: str) -> SigninResult:
        """
        Raises:
            ValidationError: email or password missing
            InvalidCredentialsError: unknown email, wrong password, or an
                account that only signs in with Google
            UnverifiedAccountError: correct password, email not verified;
                details carry userId, email and username
        """
        (email,) = self.require_fields(email=email)
        self.require_fields(password=password)
        email = User.objects.normalize_email(email)

        user = User.objects.select_related("profile").filter(email=email).first()
        if user is None or not user.is_active or not user.check_password(password):
            logger.info("Sign-in rejected: invalid credentials")
            raise InvalidCredentialsError("Invalid email or password")

        if not user.email_verified:
            raise UnverifiedAccountError(
                "Please verify your email before signing in",
                details={
                    "unverified": True,
                    "email": user.email,
                    "userId": user.pk,
                    "username": user.username,
                },
            )

        tokens = self.codec.issue_pair(TokenClaims.for_user(user))
        logger.info(f"User {user.pk} signed in", extra={"user_id": user.pk})
        return SigninResult(user=user, tokens=tokens)
