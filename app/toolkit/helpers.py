"""
Helper functions for handling personal data in logs.

Usage:
    from toolkit.helpers import mask_email

    logger.info(f"Verification email sent to {mask_email(user.email)}")

Note:
    - For generic infrastructure helpers (token generation, hashing,
      backoff, client IP), see core.helpers
"""


def mask_email(email: str) -> str:
    """
    Mask email for logging.

    Keeps the first character and the domain visible.

    Example:
        masked = mask_email("john.doe@example.com")  # "j***@example.com"
    """
    if not email or "@" not in email:
        return "***"

    local, domain = email.rsplit("@", 1)

    if len(local) > 1:
        masked_local = local[0] + "***"
    else:
        masked_local = "***"

    return f"{masked_local}@{domain}"
