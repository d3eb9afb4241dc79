"""
Password signup.

Steps, in order:
1. Validate input (no database access on failure).
2. One query that counts accounts using the email and profiles using the
   username; the email collision is reported first.
3. Hash the password and issue a 24h verification token.
4. Insert the User and its Profile in one transaction. Transient store
   failures (lock conflicts, dropped connections) are retried up to
   ``signup_max_retries`` more times with exponential backoff, each
   attempt in a fresh transaction. Uniqueness conflicts are never retried.
5. Send the verification email under a hard deadline. A failed or slow
   send does not fail the signup; the result says whether it went out.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from django.contrib.auth.hashers import make_password
from django.core.exceptions import ValidationError as DjangoValidationError

from authentication.config import AuthConfig
from authentication.models import (
    Profile,
    User,
    validate_username_format,
    validate_username_not_reserved,
)
from authentication.services.verification import VerificationTokenManager
from authentication.store import CredentialStore
from core.exceptions import BaseApplicationError, ConflictError, ValidationError
from core.helpers import backoff_delay
from core.services import BaseService
from toolkit.helpers import mask_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignupResult:
    user_id: int
    email: str
    verification_sent: bool
    verification_expires_at: datetime
    verification_token: str


def normalize_username(username: str) -> str:
    """
    Trim, validate and lower-case a username.

    Raises:
        ValidationError: bad format or reserved name
    """
    username = username.strip()
    try:
        validate_username_format(username)
        validate_username_not_reserved(username)
    except DjangoValidationError as e:
        raise ValidationError(
            e.messages[0], error_code="INVALID_USERNAME", details={"username": e.messages}
        ) from e
    return username.lower()


class SignupService(BaseService):
    """
    Create an unverified account with its profile.

    Args:
        store: Credential store
        verification: Token manager used to issue and email the token
        config: Identity configuration
        sleep: Called with the backoff delay between attempts
    """

    def __init__(
        self,
        store: CredentialStore,
        verification: VerificationTokenManager,
        config: AuthConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.verification = verification
        self.config = config
        self.sleep = sleep

    def sign_up(self, username: str, email: str, password: str) -> SignupResult:
        """
        Register a new account.

        Raises:
            ValidationError: a field is missing or the username is invalid
            ConflictError: email or username already in use
                (error_code EMAIL_IN_USE or USERNAME_IN_USE)
            TransientStoreError: the store kept failing after all retries
        """
        username, email = self.require_fields(username=username, email=email)
        self.require_fields(password=password)
        email = User.objects.normalize_email(email)
        username = normalize_username(username)

        self.ensure_available(email, username)

        password_hash = make_password(password)
        issued = self.verification.new_verification_token()

        user = self._create_with_retry(email, username, password_hash, issued)

        delivery = self.verification.send_verification_email(user.email, issued.token)
        logger.info(
            f"Signup completed for user {user.pk}",
            extra={"user_id": user.pk, "verification_sent": delivery.success},
        )
        return SignupResult(
            user_id=user.pk,
            email=user.email,
            verification_sent=delivery.success,
            verification_expires_at=issued.expires_at,
            verification_token=issued.token,
        )

    def ensure_available(self, email: str, username: str) -> None:
        """
        Check both halves of the uniqueness domain in one round trip.

        Raises:
            ConflictError: email in use (checked first) or username in use
        """
        user_table = self.store.quote_name(User._meta.db_table)
        profile_table = self.store.quote_name(Profile._meta.db_table)
        rows = self.store.execute(
            f"SELECT "
            f"(SELECT COUNT(*) FROM {user_table} WHERE LOWER(email) = %s) AS email_count, "
            f"(SELECT COUNT(*) FROM {profile_table} WHERE LOWER(username) = %s) AS username_count",
            [email.lower(), username.lower()],
        )
        counts = rows[0]
        if counts["email_count"]:
            raise ConflictError(
                "Email is already in use",
                error_code="EMAIL_IN_USE",
                details={"field": "email"},
            )
        if counts["username_count"]:
            raise ConflictError(
                "Username is already in use",
                error_code="USERNAME_IN_USE",
                details={"field": "username"},
            )

    def _create_with_retry(self, email, username, password_hash, issued) -> User:
        attempts = self.config.signup_max_retries + 1
        for attempt in range(attempts):
            try:
                return self._create_records(email, username, password_hash, issued)
            except BaseApplicationError as e:
                if not e.is_retryable:
                    if isinstance(e, ConflictError):
                        # Lost a race with a concurrent signup; report which field
                        self.ensure_available(email, username)
                    raise
                if attempt == attempts - 1:
                    logger.error(
                        f"Signup for {mask_email(email)} failed after {attempts} attempts: {e}"
                    )
                    raise
                delay = backoff_delay(attempt, base=self.config.signup_retry_base_delay)
                logger.warning(
                    f"Signup attempt {attempt + 1} for {mask_email(email)} hit a "
                    f"transient store error, retrying in {delay:.1f}s: {e}"
                )
                self.sleep(delay)

    def _create_records(self, email, username, password_hash, issued) -> User:
        with self.store.transaction():
            user = User.objects.create(
                email=email,
                password=password_hash,
                email_verified=False,
                verification_token=issued.token,
                verification_token_expires_at=issued.expires_at,
            )
            Profile.objects.create(
                user=user,
                username=username,
                avatar_url=self.config.default_avatar_url,
            )
        return user
