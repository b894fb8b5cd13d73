"""Utility functions for masking sensitive data in logs and outputs."""


def mask_email(email: str) -> str:
    """
    Mask email address for logging purposes.

    Example: user@example.com -> u***@e***.com

    Args:
        email: Email address to mask

    Returns:
        Masked email address
    """
    if not email or "@" not in email:
        return "***"

    parts = email.split("@")
    if len(parts) != 2:
        return "***"

    local, domain = parts
    masked_local = local[0] + "***" if local else "***"

    domain_parts = domain.split(".")
    if len(domain_parts) >= 2 and domain_parts[0]:
        masked_domain = domain_parts[0][0] + "***." + domain_parts[-1]
    else:
        masked_domain = "***"

    return f"{masked_local}@{masked_domain}"


def mask_username(username: str) -> str:
    """Mask a login name that may or may not be an email address."""
    if "@" in (username or ""):
        return mask_email(username)
    if not username:
        return "***"
    return username[0] + "***"
