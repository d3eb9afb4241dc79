"""
Base service layer patterns for business logic encapsulation.

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.
    Collaborators (store, codec, notifier) are passed to the constructor
    so every service can be built with fakes in tests.

Pattern Comparison:
    - Result dataclasses: expected outcomes (created, already verified,
      username required)
    - Exceptions from core.exceptions: failures the caller must branch on

Usage:
    from core.services import BaseService

    class SigninService(BaseService):
        def __init__(self, store, codec):
            self.store = store
            self.codec = codec

        def sign_in(self, email, password):
            email, password = self.require_fields(email=email, password=password)
"""

from __future__ import annotations

from core.exceptions import ValidationError


class BaseService:
    """
    Base class for service layer classes.

    Provides required-field validation that runs before any database
    access. Services log through their own module-level logger.
    """

    @classmethod
    def require_fields(cls, **kwargs) -> tuple:
        """
        Validate that required string fields are present and non-blank.

        Values are returned trimmed, in the order they were passed.

        Raises:
            ValidationError: listing every missing field

        Example:
            email, password = cls.require_fields(email=email, password=password)
        """
        missing = []
        cleaned = []
        for field_name, value in kwargs.items():
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field_name)
                continue
            cleaned.append(value.strip() if isinstance(value, str) else value)

        if missing:
            raise ValidationError(
                "Missing required fields",
                error_code="MISSING_FIELDS",
                details={"fields": missing},
            )
        return tuple(cleaned)
