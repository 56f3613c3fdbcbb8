"""Advisory email syntax check used by the generator."""

from email_validator import EmailNotValidError, validate_email


def is_valid(email: str) -> bool:
    """Syntax-only check; deliverability (DNS) is not consulted."""
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True
