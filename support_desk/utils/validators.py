"""
Input validation utilities
"""
import re

TICKET_ID_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$')
EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def validate_ticket_id(ticket_id: str) -> bool:
    """
    Validate ticket ID format

    Store-assigned IDs are opaque, but they are always short
    alphanumeric tokens such as ``TKT-001`` or a UUID.

    Args:
        ticket_id: Ticket ID to validate

    Returns:
        True if valid format
    """
    return bool(ticket_id) and TICKET_ID_PATTERN.match(ticket_id) is not None


def validate_email(email: str) -> bool:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    return EMAIL_PATTERN.match(email) is not None


def sanitize_input(text: str, max_length: int = 10000) -> str:
    """
    Sanitize user input

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    # Remove null bytes
    text = text.replace('\x00', '')

    # Truncate to max length
    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()
