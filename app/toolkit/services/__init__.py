"""
Service classes for toolkit app.

Usage:
    from toolkit.services import EmailService
"""

from toolkit.services.email import EmailService, send_with_deadline

__all__ = ["EmailService", "send_with_deadline"]
