"""
Identity configuration.

AuthConfig collects every setting the identity services need and checks
that the required ones are present. It is built from Django settings by
the service container (dependencies.py) on first use, so a missing secret
turns into a ConfigurationError (HTTP 500) for the request instead of a
crash at import time.

Required settings:
    JWT_ACCESS_SECRET, JWT_REFRESH_SECRET, DEFAULT_FROM_EMAIL, DATABASES

Optional settings (defaults in parentheses):
    ACCESS_TOKEN_LIFETIME (1h), REFRESH_TOKEN_LIFETIME (7d),
    EMAIL_VERIFICATION_LIFETIME (24h), PASSWORD_RESET_LIFETIME (1h),
    SIGNUP_MAX_RETRIES (2), SIGNUP_RETRY_BASE_DELAY (0.5s),
    NOTIFIER_TIMEOUT_SECONDS (1.5), FRONTEND_URL, DEFAULT_AVATAR_URL,
    GOOGLE_CLIENT_ID
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from core.exceptions import ConfigurationError

REQUIRED_SETTINGS = ("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET", "DEFAULT_FROM_EMAIL")


@dataclass(frozen=True)
class AuthConfig:
    access_secret: str
    refresh_secret: str
    from_email: str
    frontend_url: str
    default_avatar_url: str
    google_client_id: str = ""
    access_token_lifetime: timedelta = timedelta(hours=1)
    refresh_token_lifetime: timedelta = timedelta(days=7)
    verification_lifetime: timedelta = timedelta(hours=24)
    reset_lifetime: timedelta = timedelta(hours=1)
    signup_max_retries: int = 2
    signup_retry_base_delay: float = 0.5
    notifier_timeout: float = 1.5
    debug: bool = False

    @classmethod
    def from_settings(cls, settings) -> AuthConfig:
        """
        Build the configuration from a Django settings object.

        Raises:
            ConfigurationError: a required setting is missing or blank, the
                two token secrets are identical, or no database is configured
        """
        missing = [
            name for name in REQUIRED_SETTINGS if not getattr(settings, name, "")
        ]
        if not getattr(settings, "DATABASES", {}).get("default"):
            missing.append("DATABASES")
        if missing:
            raise ConfigurationError(
                "Identity service is not configured",
                error_code="MISSING_CONFIGURATION",
                details={"missing": missing},
            )
        if settings.JWT_ACCESS_SECRET == settings.JWT_REFRESH_SECRET:
            raise ConfigurationError(
                "Access and refresh token secrets must differ",
                error_code="INVALID_CONFIGURATION",
            )

        return cls(
            access_secret=settings.JWT_ACCESS_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            from_email=settings.DEFAULT_FROM_EMAIL,
            frontend_url=getattr(settings, "FRONTEND_URL", "").rstrip("/"),
            default_avatar_url=getattr(settings, "DEFAULT_AVATAR_URL", ""),
            google_client_id=getattr(settings, "GOOGLE_CLIENT_ID", ""),
            access_token_lifetime=getattr(
                settings, "ACCESS_TOKEN_LIFETIME", timedelta(hours=1)
            ),
            refresh_token_lifetime=getattr(
                settings, "REFRESH_TOKEN_LIFETIME", timedelta(days=7)
            ),
            verification_lifetime=getattr(
                settings, "EMAIL_VERIFICATION_LIFETIME", timedelta(hours=24)
            ),
            reset_lifetime=getattr(
                settings, "PASSWORD_RESET_LIFETIME", timedelta(hours=1)
            ),
            signup_max_retries=getattr(settings, "SIGNUP_MAX_RETRIES", 2),
            signup_retry_base_delay=getattr(settings, "SIGNUP_RETRY_BASE_DELAY", 0.5),
            notifier_timeout=getattr(settings, "NOTIFIER_TIMEOUT_SECONDS", 1.5),
            debug=settings.DEBUG,
        )

    def verification_url(self, token: str) -> str:
        return f"{self.frontend_url}/verify-email?token={token}"

    def reset_url(self, token: str) -> str:
        return f"{self.frontend_url}/reset-password?token={token}"
