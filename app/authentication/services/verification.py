"""
Single-use, time-boxed tokens for email verification and password reset.

Verification lifecycle per account:
    unverified, no token
      -> token issued (expires now + 24h)
      -> verified (terminal; token and expiry cleared in the same write)
    An issued token expires by the clock alone. Requesting a new one
    replaces the old value, which is never valid again.

Reset lifecycle is the same with a 1 hour lifetime. The password hash
and the cleared token are written together, so a reset token never
survives a successful reset.

Redemption looks the token up without an expiry filter first, so an
expired token is reported as expired (with the account id and email so
the client can ask for a new one) rather than as unknown.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

from authentication.config import AuthConfig
from authentication.models import User
from authentication.store import CredentialStore
from core.exceptions import ExpiredError, NotFoundError
from core.helpers import generate_token, hash_string
from core.services import BaseService
from toolkit.helpers import mask_email
from toolkit.protocols import DeliveryResult, EmailSender
from toolkit.services.email import render_email, send_with_deadline

logger = logging.getLogger(__name__)


class VerificationOutcome(str, enum.Enum):
    VERIFIED = "verified"
    ALREADY_VERIFIED = "already_verified"


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class ReissueResult:
    """Result of a resend-verification request."""

    already_verified: bool
    email_sent: bool = False
    token: IssuedToken | None = None


@dataclass(frozen=True)
class ResetRequestResult:
    email_sent: bool
    token: IssuedToken


class VerificationTokenManager(BaseService):
    """
    Issue, rotate and redeem verification and reset tokens.

    Args:
        store: Credential store used for every read-modify-write
        sender: EmailSender used for verification and reset mail
        config: Identity configuration (lifetimes, frontend URL, deadline)
    """

    def __init__(self, store: CredentialStore, sender: EmailSender, config: AuthConfig):
        self.store = store
        self.sender = sender
        self.config = config

    # =========================================================================
    # Token generation
    # =========================================================================

    def new_verification_token(self) -> IssuedToken:
        return IssuedToken(
            token=generate_token(),
            expires_at=timezone.now() + self.config.verification_lifetime,
        )

    def new_reset_token(self) -> IssuedToken:
        return IssuedToken(
            token=generate_token(),
            expires_at=timezone.now() + self.config.reset_lifetime,
        )

    # =========================================================================
    # Email verification
    # =========================================================================

    def redeem_verification(self, token: str) -> VerificationOutcome:
        """
        Mark the account owning ``token`` as verified.

        Returns:
            VERIFIED on the first successful redemption, ALREADY_VERIFIED
            when the account was verified before (including a replay of
            the token that verified it)

        Raises:
            ValidationError: token missing
            NotFoundError: token unknown
            ExpiredError: token past its expiry; details carry userId and email
        """
        (token,) = self.require_fields(token=token)

        with self.store.transaction():
            user = (
                User.objects.select_for_update()
                .filter(verification_token=token)
                .first()
            )
            if user is None:
                if User.objects.filter(
                    consumed_verification_digest=hash_string(token)
                ).exists():
                    return VerificationOutcome.ALREADY_VERIFIED
                raise NotFoundError(
                    "Invalid verification token", error_code="INVALID_TOKEN"
                )

            if user.email_verified:
                self._consume_verification_token(user)
                return VerificationOutcome.ALREADY_VERIFIED

            expires_at = user.verification_token_expires_at
            if expires_at is None or timezone.now() > expires_at:
                raise ExpiredError(
                    "Verification token has expired",
                    details={"expired": True, "userId": user.pk, "email": user.email},
                )

            user.email_verified = True
            self._consume_verification_token(user)

        logger.info(
            f"Email verified for user {user.pk}",
            extra={"user_id": user.pk},
        )
        return VerificationOutcome.VERIFIED

    def reissue_verification(self, email: str) -> ReissueResult:
        """
        Replace the account's verification token and email the new one.

        Raises:
            ValidationError: email missing
            NotFoundError: no account with that email
        """
        (email,) = self.require_fields(email=email)
        email = User.objects.normalize_email(email)

        with self.store.transaction():
            user = User.objects.select_for_update().filter(email=email).first()
            if user is None:
                raise NotFoundError(
                    "No account found with this email", error_code="USER_NOT_FOUND"
                )
            if user.email_verified:
                return ReissueResult(already_verified=True)

            issued = self.new_verification_token()
            user.verification_token = issued.token
            user.verification_token_expires_at = issued.expires_at
            user.save(
                update_fields=[
                    "verification_token",
                    "verification_token_expires_at",
                    "updated_at",
                ]
            )

        delivery = self.send_verification_email(user.email, issued.token)
        logger.info(
            f"Verification token reissued for user {user.pk}",
            extra={"user_id": user.pk, "email_sent": delivery.success},
        )
        return ReissueResult(
            already_verified=False, email_sent=delivery.success, token=issued
        )

    def send_verification_email(self, email: str, token: str) -> DeliveryResult:
        html = render_email(
            "authentication/emails/verify_email.html",
            {
                "verification_url": self.config.verification_url(token),
                "lifetime_hours": int(
                    self.config.verification_lifetime.total_seconds() // 3600
                ),
            },
        )
        return self._deliver(email, "Verify your email address", html)

    # =========================================================================
    # Password reset
    # =========================================================================

    def request_password_reset(self, email: str) -> ResetRequestResult:
        """
        Issue a reset token for ``email`` and send the reset link.

        Raises:
            ValidationError: email missing
            NotFoundError: no account with that email (callers decide
                whether to reveal this)
        """
        (email,) = self.require_fields(email=email)
        email = User.objects.normalize_email(email)

        with self.store.transaction():
            user = User.objects.select_for_update().filter(email=email).first()
            if user is None:
                raise NotFoundError(
                    "No account found with this email", error_code="USER_NOT_FOUND"
                )
            issued = self.new_reset_token()
            user.reset_token = issued.token
            user.reset_token_expires_at = issued.expires_at
            user.save(
                update_fields=["reset_token", "reset_token_expires_at", "updated_at"]
            )

        html = render_email(
            "authentication/emails/reset_password.html",
            {
                "reset_url": self.config.reset_url(issued.token),
                "lifetime_minutes": int(self.config.reset_lifetime.total_seconds() // 60),
            },
        )
        delivery = self._deliver(user.email, "Reset your password", html)
        logger.info(
            f"Password reset requested for user {user.pk}",
            extra={"user_id": user.pk, "email_sent": delivery.success},
        )
        return ResetRequestResult(email_sent=delivery.success, token=issued)

    def reset_password(self, token: str, new_password: str) -> User:
        """
        Set a new password using a reset token.

        Raises:
            ValidationError: token or password missing
            NotFoundError: token unknown or already used
            ExpiredError: token past its expiry
        """
        (token,) = self.require_fields(token=token)
        self.require_fields(new_password=new_password)

        with self.store.transaction():
            user = User.objects.select_for_update().filter(reset_token=token).first()
            if user is None:
                raise NotFoundError(
                    "Invalid or expired token", error_code="INVALID_TOKEN"
                )
            expires_at = user.reset_token_expires_at
            if expires_at is None or timezone.now() > expires_at:
                raise ExpiredError(
                    "Invalid or expired token",
                    details={"expired": True, "userId": user.pk, "email": user.email},
                )

            user.set_password(new_password)
            user.reset_token = None
            user.reset_token_expires_at = None
            user.save(
                update_fields=[
                    "password",
                    "reset_token",
                    "reset_token_expires_at",
                    "updated_at",
                ]
            )

        logger.info(f"Password reset for user {user.pk}", extra={"user_id": user.pk})
        return user

    # =========================================================================
    # Internals
    # =========================================================================

    def _consume_verification_token(self, user: User) -> None:
        if user.verification_token:
            user.consumed_verification_digest = hash_string(user.verification_token)
        user.verification_token = None
        user.verification_token_expires_at = None
        user.save(
            update_fields=[
                "email_verified",
                "verification_token",
                "verification_token_expires_at",
                "consumed_verification_digest",
                "updated_at",
            ]
        )

    def _deliver(self, to: str, subject: str, html: str) -> DeliveryResult:
        result = send_with_deadline(
            self.sender, to, subject, html, timeout=self.config.notifier_timeout
        )
        if not result.success:
            logger.warning(
                f"Could not deliver '{subject}' to {mask_email(to)}: {result.error}"
            )
        return result
