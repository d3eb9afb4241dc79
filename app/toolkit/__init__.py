"""
Toolkit - Delivery services and PII helpers.

Key components:
    - services/email.py: EmailService (Django mail) and send_with_deadline
    - protocols.py: EmailSender contract and DeliveryResult
    - helpers.py: mask_email for logs

Usage:
    from toolkit.services.email import EmailService, send_with_deadline
    from toolkit.protocols import EmailSender, DeliveryResult

Note:
    - This app has no models.
    - For generic infrastructure (tokens, hashing, backoff), see core/
"""
