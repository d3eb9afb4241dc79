"""
Base exception classes for application-wide error handling.

This module provides the exception taxonomy shared by the identity services:
- Consistent error responses across the API
- Machine-readable error codes for client handling
- An HTTP status per error class so views never guess

Exception Hierarchy:
    BaseApplicationError (base, 500)
    ├── ValidationError - Missing or malformed input (400)
    ├── NotFoundError - Token or email lookup miss (404)
    ├── ConflictError - Email/username/subject id already taken (409)
    ├── ExpiredError - Verification or reset token past its expiry (410)
    ├── AuthError - Bad credentials or an unusable signed token (401)
    │   └── ForbiddenError - Authenticated but not allowed (403)
    ├── TransientStoreError - Lock or connection conflict, safe to retry (500)
    └── ConfigurationError - Required setting missing (500)

Usage:
    from core.exceptions import ValidationError, ExpiredError

    raise ValidationError("Missing required fields", details={"fields": ["email"]})

    raise ExpiredError(
        "Verification token expired",
        details={"userId": user.id, "email": user.email},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)

Note:
    These exceptions are for domain/business logic errors.
    core.views.api_exception_handler renders them for DRF views.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context echoed to the client
        status_code: HTTP status used when the error reaches a view
        is_retryable: Whether retrying the same operation may succeed
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 500
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Verification token expired",
                "error_code": "TOKEN_EXPIRED",
                "details": {"userId": 12, "email": "a@x.com"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Always raised before the credential store is touched.
    """

    default_error_code: str = "VALIDATION_ERROR"
    status_code: int = 400


class NotFoundError(BaseApplicationError):
    """Raised when a token or an email address matches no account."""

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation collides with an existing unique value.

    Use for:
    - Email or username already in use
    - External subject id already bound to another account
    - Database unique constraint violations surfaced by the store

    Note:
        Conflicts are never transient. Callers must not retry them.
    """

    default_error_code: str = "CONFLICT"
    status_code: int = 409


class ExpiredError(BaseApplicationError):
    """
    Raised when a single-use token is redeemed after its expiry instant.

    details carries the account id and email so the client can offer
    to issue a fresh token.
    """

    default_error_code: str = "TOKEN_EXPIRED"
    status_code: int = 410


class AuthError(BaseApplicationError):
    """
    Raised when credentials or a signed token cannot be accepted.

    The token codec raises the specific subclasses in authentication.tokens
    so callers can tell an expired token from a forged one.
    """

    default_error_code: str = "AUTHENTICATION_FAILED"
    status_code: int = 401


class ForbiddenError(AuthError):
    """Raised when the caller is identified but the action is refused."""

    default_error_code: str = "FORBIDDEN"
    status_code: int = 403


class TransientStoreError(BaseApplicationError):
    """
    Raised when the credential store hits a lock conflict or a dropped
    connection.

    The signup orchestrator retries these a bounded number of times.
    Anything that escapes the retry loop is a generic server error.
    """

    default_error_code: str = "STORE_UNAVAILABLE"
    status_code: int = 500
    is_retryable: bool = True


class ConfigurationError(BaseApplicationError):
    """Raised when a required setting (secret, sender address) is missing."""

    default_error_code: str = "CONFIGURATION_ERROR"
    status_code: int = 500
