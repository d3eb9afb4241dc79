"""
Protocol definitions (interfaces) for outbound delivery services.

Protocols define contracts that services must fulfill, enabling:
- Duck typing with static type checking
- Dependency inversion (the identity services depend on EmailSender,
  not on a mail backend)
- Easy fakes in tests

Usage:
    from toolkit.protocols import DeliveryResult, EmailSender

    class FakeSender:
        def send(self, to: str, subject: str, html_body: str) -> DeliveryResult:
            return DeliveryResult(success=True)

    sender: EmailSender = FakeSender()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class DeliveryResult:
    """
    Outcome of a delivery attempt.

    Failure is a value, never an exception.
    """

    success: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success


@runtime_checkable
class EmailSender(Protocol):
    """
    Protocol for email sending services.

    Implementations must not raise: any transport problem is reported as
    ``DeliveryResult(success=False, error=...)``.
    """

    def send(self, to: str, subject: str, html_body: str) -> DeliveryResult:
        """
        Send one HTML email.

        Args:
            to: Recipient email address
            subject: Email subject
            html_body: HTML content; a plain-text part is derived from it

        Returns:
            DeliveryResult describing whether the message was handed off
        """
        ...
