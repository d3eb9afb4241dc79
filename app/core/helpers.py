"""
Helper functions for common infrastructure operations.

This module provides domain-agnostic utility functions for:
- Token generation (cryptographic)
- String hashing
- Retry backoff calculation
- HTTP request helpers (client IP extraction, bearer parsing)

These utilities are pure infrastructure - they know nothing about
accounts, profiles, or token lifecycles.

Usage:
    from core.helpers import generate_token, hash_string, backoff_delay

    token = generate_token(32)
    digest = hash_string(token)
    delay = backoff_delay(attempt=1, base=0.5)  # 1.0
"""

from __future__ import annotations

import hashlib
import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest


def generate_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure random token.

    Args:
        length: Number of bytes (resulting string is 2x length in hex)

    Returns:
        Hexadecimal token string
    """
    return secrets.token_hex(length)


def hash_string(value: str, algorithm: str = "sha256") -> str:
    """
    Hash a string using the specified algorithm.

    Args:
        value: String to hash
        algorithm: Hash algorithm (sha256, sha512, ...)

    Returns:
        Hexadecimal hash string
    """
    hasher = hashlib.new(algorithm)
    hasher.update(value.encode("utf-8"))
    return hasher.hexdigest()


def backoff_delay(
    attempt: int,
    base: float = 0.5,
    max_delay: float = 10.0,
) -> float:
    """
    Calculate exponential backoff delay.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Delay for the first retry in seconds
        max_delay: Upper bound in seconds

    Returns:
        Delay in seconds

    Example:
        # base=0.5 -> 0.5s, 1.0s, 2.0s ...
        delay = backoff_delay(attempt=1, base=0.5)
    """
    return min(base * (2**attempt), max_delay)


def get_client_ip(request: HttpRequest) -> str:
    """
    Extract client IP from request, handling proxies.

    Checks X-Forwarded-For header for proxy chains.
    """
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        # First entry is the original client
        ip = x_forwarded_for.split(",")[0].strip()
    else:
        ip = request.META.get("REMOTE_ADDR", "")
    return ip


def get_bearer_token(request: HttpRequest) -> str | None:
    """
    Return the token from an ``Authorization: Bearer <token>`` header.

    Returns None when the header is missing or uses another scheme.
    """
    header = request.META.get("HTTP_AUTHORIZATION", "")
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
