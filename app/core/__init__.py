"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by the domain apps:

- Generic, reusable base classes (no domain-specific logic)
- The application error taxonomy and its HTTP rendering
- Small helpers for tokens, hashing, retries and requests

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes and HTTP status
    - ValidationError: Input validation failures (400)
    - AuthError: Authentication failures (401)
    - ForbiddenError: Authenticated but not allowed (403)
    - NotFoundError: Resource not found (404)
    - ConflictError: Uniqueness conflicts (409)
    - ExpiredError: Expired tokens (410)
    - TransientStoreError: Retryable storage failures (500 once retries run out)
    - ConfigurationError: Missing or invalid settings (500)

Helpers (import from core.helpers):
    - generate_token: Cryptographically secure token generation
    - hash_string: String hashing
    - backoff_delay: Exponential backoff for retries
    - get_client_ip: Client IP extraction from request
    - get_bearer_token: Bearer token extraction from request

Views (import from core.views):
    - health_check: Liveness/readiness endpoint
    - api_exception_handler: DRF exception handler for application errors

Note:
    Models are NOT imported here to avoid AppRegistryNotReady errors.
    Import them directly from core.models.
"""

# Services (no Django model dependencies)
from .services import BaseService

# Exceptions (no Django dependencies)
from .exceptions import (
    AuthError,
    BaseApplicationError,
    ConfigurationError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)

# Helpers (no Django model dependencies)
from .helpers import (
    backoff_delay,
    generate_token,
    get_bearer_token,
    get_client_ip,
    hash_string,
)

__all__ = [
    # Services
    "BaseService",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "AuthError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ExpiredError",
    "TransientStoreError",
    "ConfigurationError",
    # Helpers
    "generate_token",
    "hash_string",
    "backoff_delay",
    "get_client_ip",
    "get_bearer_token",
]
