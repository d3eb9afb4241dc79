"""
Authentication models.

This module defines the identity records:
- User: the account (email, password hash, Google subject id, verification
  state, single-use verification and reset tokens)
- Profile: the public identity (username, avatar), exactly one per User

Related files:
    - managers.py: Custom user manager for email-based creation
    - services/: signup, sign-in, verification and Google linking
    - store.py: transaction handling used by the services

Security:
    - Passwords hashed with bcrypt-sha256 (see hashers.py)
    - Verification and reset tokens are cryptographically random, single
      use, and cleared in the same write as the change they authorize
"""

import re

from django.conf import settings
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models.functions import Lower

from authentication.managers import UserManager
from core.models import BaseModel


# Reserved usernames that cannot be used
RESERVED_USERNAMES = frozenset([
    "admin", "administrator", "root", "system", "api", "www",
    "mail", "email", "support", "help", "info", "contact",
    "about", "terms", "privacy", "security", "account", "login",
    "logout", "register", "signup", "signin", "signout", "auth",
    "authentication", "user", "users", "profile", "profiles",
    "settings", "config", "dashboard", "home", "index", "null",
    "undefined", "anonymous", "guest", "staff", "moderator",
])

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{3,30}$")


def validate_username_not_reserved(value):
    """Validate that username is not in the reserved list."""
    if value.lower() in RESERVED_USERNAMES:
        raise ValidationError(
            f"The username '{value}' is reserved and cannot be used."
        )


def validate_username_format(value):
    """Validate username format: 3-30 chars, alphanumeric + _ + -."""
    if not USERNAME_PATTERN.match(value):
        raise ValidationError(
            "Username must be 3-30 characters and contain only "
            "letters, numbers, underscores, and hyphens."
        )


class User(AbstractBaseUser, PermissionsMixin):
    """
    Account record using email as the primary identifier.

    Fields:
        email: Unique, lower-cased login identifier
        email_verified: Set once the verification token is redeemed
            (or immediately for Google accounts with a verified email)
        google_id: Google subject id, unique when present, never rebound
        verification_token / verification_token_expires_at: pending
            email verification token (24h)
        consumed_verification_digest: sha256 of the last redeemed
            verification token, so a replay reports "already verified"
        reset_token / reset_token_expires_at: pending password reset (1h)

    A Google-only account has an unusable password.
    """

    email = models.EmailField(
        unique=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    email_verified = models.BooleanField(
        default=False,
        help_text="Whether the user's email has been verified",
    )
    google_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Google account subject id",
    )

    verification_token = models.CharField(
        max_length=128,
        unique=True,
        null=True,
        blank=True,
    )
    verification_token_expires_at = models.DateTimeField(null=True, blank=True)
    consumed_verification_digest = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
    )

    reset_token = models.CharField(
        max_length=128,
        unique=True,
        null=True,
        blank=True,
    )
    reset_token_expires_at = models.DateTimeField(null=True, blank=True)

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    @property
    def username(self):
        """Username from the profile, or None before linking completes."""
        try:
            return self.profile.username
        except Profile.DoesNotExist:
            return None


class Profile(BaseModel):
    """
    Public identity bound 1:1 to a User.

    Fields:
        user: OneToOne link to User (also serves as primary key)
        username: Unique (case-insensitive) username; null only while a
            Google account is waiting for the user to pick one
        avatar_url: Avatar reference; the platform default when the
            provider supplied none

    Usernames are stored lower-cased.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        primary_key=True,
    )
    username = models.CharField(
        max_length=30,
        null=True,
        blank=True,
        validators=[validate_username_format, validate_username_not_reserved],
        help_text="Unique username (3-30 chars, alphanumeric + _ + -)",
    )
    avatar_url = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="Avatar image URL",
    )

    class Meta:
        db_table = "authentication_profile"
        verbose_name = "profile"
        verbose_name_plural = "profiles"
        constraints = [
            models.UniqueConstraint(
                Lower("username"),
                name="unique_username_case_insensitive",
                condition=models.Q(username__isnull=False),
            ),
        ]

    def __str__(self):
        return self.username or str(self.user)

    def save(self, *args, **kwargs):
        """Normalize username before saving."""
        if self.username:
            self.username = self.username.strip().lower()
        super().save(*args, **kwargs)
