"""Email masking utility for privacy in logs and admin summaries."""


def mask_email(email: str) -> str:
    """
    Mask an email address so requester identities stay out of log files.

    Examples:
        john@example.com    → j***@example.com
        a@example.com       → ***@example.com
    """
    if "@" not in email:
        return "***"

    local, domain = email.split("@", 1)
    masked_local = local[0] + "***" if len(local) > 1 else "***"
    return f"{masked_local}@{domain}"
