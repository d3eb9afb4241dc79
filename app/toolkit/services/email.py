"""
Email service for outbound account mail.

This module provides:
- EmailService: EmailSender implementation backed by Django's mail API
- render_email: render an HTML body from a Django template
- send_with_deadline: run any EmailSender under a hard time limit

Configuration:
    Email settings are read from Django settings:
    - EMAIL_BACKEND
    - EMAIL_HOST, EMAIL_PORT, EMAIL_HOST_USER, EMAIL_HOST_PASSWORD
    - DEFAULT_FROM_EMAIL (overridable per instance)

Usage:
    from toolkit.services.email import EmailService, render_email, send_with_deadline

    sender = EmailService(from_email="noreply@example.com")
    html = render_email("authentication/emails/verify_email.html", {"url": url})
    result = send_with_deadline(sender, "user@example.com", "Verify", html, timeout=1.5)
    if not result.success:
        logger.warning(result.error)
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from toolkit.helpers import mask_email
from toolkit.protocols import DeliveryResult, EmailSender

logger = logging.getLogger(__name__)


def render_email(template_name: str, context: dict) -> str:
    """Render an HTML email body from a template."""
    return render_to_string(template_name, context)


class EmailService:
    """
    Send HTML email through the configured Django email backend.

    Never raises: backend failures become ``DeliveryResult(success=False)``.

    Args:
        from_email: Sender address (defaults to DEFAULT_FROM_EMAIL)
    """

    def __init__(self, from_email: str | None = None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def send(self, to: str, subject: str, html_body: str) -> DeliveryResult:
        message = EmailMultiAlternatives(
            subject=subject,
            body=strip_tags(html_body),
            from_email=self.from_email,
            to=[to],
        )
        message.attach_alternative(html_body, "text/html")

        try:
            message.send(fail_silently=False)
        except Exception as e:
            # Any transport failure is reported, never raised
            logger.error(f"Failed to send email to {mask_email(to)}: {e}")
            return DeliveryResult(success=False, error=str(e))

        logger.info(f"Email sent to {mask_email(to)}: {subject}")
        return DeliveryResult(success=True)


def send_with_deadline(
    sender: EmailSender,
    to: str,
    subject: str,
    html_body: str,
    timeout: float,
) -> DeliveryResult:
    """
    Call ``sender.send`` but give up waiting after ``timeout`` seconds.

    A timed-out send keeps running in its worker thread; its eventual
    result is discarded. Neither a timeout nor an exception raised by a
    misbehaving sender propagates to the caller.
    """
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="email-send")
    future = executor.submit(sender.send, to, subject, html_body)
    try:
        result = future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.warning(
            f"Email to {mask_email(to)} not confirmed within {timeout}s",
            extra={"subject": subject},
        )
        return DeliveryResult(success=False, error=f"Timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Email sender raised for {mask_email(to)}: {e}")
        return DeliveryResult(success=False, error=str(e))
    finally:
        executor.shutdown(wait=False)

    if not isinstance(result, DeliveryResult):
        return DeliveryResult(success=bool(result))
    return result
