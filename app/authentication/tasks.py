"""
Celery tasks for authentication.

This module defines periodic maintenance:
- purge_stale_tokens: clear expired reset tokens, and verification tokens
  that expired long enough ago that nobody will ask to re-issue them

Scheduled daily through CELERY_BEAT_SCHEDULE in config/settings.py.

Usage:
    from authentication.tasks import purge_stale_tokens
    purge_stale_tokens.delay()
"""

import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

logger = logging.getLogger(__name__)

# Expired verification tokens are kept this long so the verify endpoint
# can still answer "expired" (with a re-issue offer) instead of "invalid".
VERIFICATION_GRACE_DAYS = 30


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def purge_stale_tokens(self, grace_days: int = VERIFICATION_GRACE_DAYS) -> dict:
    """
    Null out stale verification and reset tokens.

    Args:
        grace_days: How long after expiry a verification token is kept

    Returns:
        Dict with the number of accounts cleaned per token type
    """
    from authentication.models import User

    now = timezone.now()

    reset_cleared = User.objects.filter(
        reset_token__isnull=False,
        reset_token_expires_at__lt=now,
    ).update(reset_token=None, reset_token_expires_at=None, updated_at=now)

    verification_cleared = User.objects.filter(
        verification_token__isnull=False,
        verification_token_expires_at__lt=now - timedelta(days=grace_days),
    ).update(
        verification_token=None,
        verification_token_expires_at=None,
        updated_at=now,
    )

    logger.info(
        f"Purged stale tokens: {reset_cleared} reset, "
        f"{verification_cleared} verification"
    )
    return {"reset": reset_cleared, "verification": verification_cleared}
