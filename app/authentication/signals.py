"""
Signal handlers for authentication.

Handlers:
    - reset_services_on_settings_change: rebuilds the identity services
      when an identity-related setting changes (override_settings and the
      pytest-django ``settings`` fixture send setting_changed)
"""

import logging

from django.core.signals import setting_changed
from django.dispatch import receiver

from authentication.config import REQUIRED_SETTINGS

logger = logging.getLogger(__name__)

WATCHED_SETTINGS = frozenset(
    REQUIRED_SETTINGS
    + (
        "DEBUG",
        "FRONTEND_URL",
        "DEFAULT_AVATAR_URL",
        "GOOGLE_CLIENT_ID",
        "ACCESS_TOKEN_LIFETIME",
        "REFRESH_TOKEN_LIFETIME",
        "EMAIL_VERIFICATION_LIFETIME",
        "PASSWORD_RESET_LIFETIME",
        "SIGNUP_MAX_RETRIES",
        "SIGNUP_RETRY_BASE_DELAY",
        "NOTIFIER_TIMEOUT_SECONDS",
    )
)


@receiver(setting_changed)
def reset_services_on_settings_change(sender, setting, **kwargs):
    """Drop cached identity services when a watched setting changes."""
    if setting not in WATCHED_SETTINGS:
        return

    from authentication.dependencies import reset_auth_services

    reset_auth_services()
    logger.debug(f"Identity services reset after {setting} changed")
