"""
Pydantic models for Support Desk
"""

from support_desk.models.schemas import (
    # Enums
    TicketStatus,
    Priority,
    EmailNotificationStatus,

    # Domain Models
    Ticket,
    Feedback,
    TicketDraft,
    FeedbackSubmission,

    # Query Models
    TicketFilters,
    TicketStats,
)
from support_desk.models.display import DisplayEntry

__all__ = [
    # Enums
    "TicketStatus",
    "Priority",
    "EmailNotificationStatus",

    # Domain Models
    "Ticket",
    "Feedback",
    "TicketDraft",
    "FeedbackSubmission",

    # Query Models
    "TicketFilters",
    "TicketStats",

    # Display
    "DisplayEntry",
]
