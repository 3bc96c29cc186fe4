"""
Utility functions
"""
from support_desk.utils.logger import get_logger
from support_desk.utils.validators import (
    validate_ticket_id,
    validate_email,
    sanitize_input
)

__all__ = [
    "get_logger",
    "validate_ticket_id",
    "validate_email",
    "sanitize_input",
]
