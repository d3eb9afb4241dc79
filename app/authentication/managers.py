"""
Custom user manager for email-based authentication.

Related files:
    - models.py: User model that uses this manager

Security:
    - Passwords are hashed via set_password() (bcrypt-sha256, see hashers.py)
    - Accounts without a password (Google sign-in) get an unusable hash
    - Email addresses are trimmed and lower-cased in full
"""

from django.contrib.auth.models import BaseUserManager
from django.db import transaction


class UserManager(BaseUserManager):
    """
    Custom manager for User model with email-based authentication.

    Note:
        create_user() only writes the User row. The services that
        provision accounts create the Profile in the same transaction.
    """

    @classmethod
    def normalize_email(cls, email):
        """Trim and lower-case the whole address."""
        return (email or "").strip().lower()

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a user with the given email and password.

        Args:
            email: User's email address (required)
            password: Raw password, or None for Google-only accounts
            **extra_fields: Additional fields to set on the user

        Raises:
            ValueError: If email is not provided
        """
        if not email:
            raise ValueError("The Email field must be set")

        email = self.normalize_email(email)

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a verified superuser together with its profile.

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        from authentication.models import Profile

        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("email_verified", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        with transaction.atomic(using=self._db):
            user = self.create_user(email, password, **extra_fields)
            Profile.objects.using(self._db).create(user=user)
        return user
