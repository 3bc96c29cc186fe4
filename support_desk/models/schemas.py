"""
Pydantic models for Support Desk

Tickets and feedback as held in memory by the synchronization controller.

Attributes are snake_case, matching the Supabase columns. When a model is
serialised for the dashboard (``model_dump(by_alias=True)``) the keys are
camelCase (``createdAt``, ``aiResponse``); both spellings are accepted on
input.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from support_desk.utils.validators import sanitize_input, validate_email


# ============================================================================
# Enums
# ============================================================================

class TicketStatus(str, Enum):
    """Ticket lifecycle statuses"""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    AWAITING_INFO = "awaiting_info"
    CLOSED = "closed"
    RESOLVED = "resolved"


class Priority(str, Enum):
    """Ticket priorities, fixed at creation"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class EmailNotificationStatus(str, Enum):
    """Delivery state written by the notification collaborator"""
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base model serialising to camelCase for the presentation layer"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ============================================================================
# Domain Models
# ============================================================================

class Feedback(CamelModel):
    """
    One-time rating of a ticket's AI response.

    Matches the ``feedback`` table. Immutable once created; at most one
    row exists per ticket.
    """
    id: str = Field(..., min_length=1, description="Feedback identifier")
    ticket_id: str = Field(..., min_length=1, description="Owning ticket")
    rating: int = Field(..., ge=1, le=5, description="Rating 1-5")
    comment: Optional[str] = Field(None, max_length=2000, description="Optional comment")
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("comment")
    @classmethod
    def blank_comment_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class Ticket(CamelModel):
    """
    Support ticket tracked through the status lifecycle.

    This model matches the ``tickets`` table in Supabase, with the
    ``feedback`` relation embedded. ``ai_response`` and
    ``email_notification_status`` are written by external collaborators
    at arbitrary times; no combination with ``status`` is rejected.

    Attributes:
        id: Store-assigned identifier (e.g. ``TKT-001``)
        subject: Short summary entered by the requester
        description: Full problem description
        priority: Priority chosen at intake
        status: Current lifecycle status
        created_at: Creation timestamp
        updated_at: Last mutation timestamp
        file_url: Attachment URL (paired with file_name)
        file_name: Attachment display name (paired with file_url)
        email: Requester contact address
        ai_response: Generated answer, absent until the AI process writes it
        ai_response_generated_at: When ai_response was written
        feedback: Rating of the AI response, if submitted
        email_notification_status: pending / sent / failed
    """
    id: str = Field(..., min_length=1)
    subject: str
    description: str
    priority: Priority = Priority.MEDIUM
    status: TicketStatus = TicketStatus.OPEN
    created_at: datetime
    updated_at: datetime
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    email: Optional[str] = None
    ai_response: Optional[str] = None
    ai_response_generated_at: Optional[datetime] = None
    feedback: Optional[Feedback] = None
    email_notification_status: EmailNotificationStatus = EmailNotificationStatus.PENDING

    @model_validator(mode="after")
    def validate_attachment_pair(self) -> "Ticket":
        if (self.file_url is None) != (self.file_name is None):
            raise ValueError("file_url and file_name must be both present or both absent")
        return self

    @property
    def has_ai_response(self) -> bool:
        return bool(self.ai_response and self.ai_response.strip())

    @computed_field(alias="emailNotificationSent")
    @property
    def email_notification_sent(self) -> bool:
        return self.email_notification_status == EmailNotificationStatus.SENT

    @property
    def awaiting_ai_response(self) -> bool:
        return not self.has_ai_response


class TicketDraft(CamelModel):
    """
    Ticket creation input, validated before any store call.

    Required: subject, description and a well-formed contact email.
    """
    subject: str = Field(..., max_length=200)
    description: str = Field(..., max_length=10000)
    priority: Priority = Priority.MEDIUM
    email: str = Field(..., max_length=320)
    file_url: Optional[str] = Field(None, max_length=2048)
    file_name: Optional[str] = Field(None, max_length=255)

    @field_validator("subject", "description")
    @classmethod
    def required_text(cls, v: str) -> str:
        v = sanitize_input(v)
        if not v:
            raise ValueError("This field is required")
        return v

    @field_validator("email")
    @classmethod
    def valid_email(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("This field is required")
        if not validate_email(v):
            raise ValueError("Please enter a valid email address")
        return v

    @model_validator(mode="after")
    def validate_attachment_pair(self) -> "TicketDraft":
        if (self.file_url is None) != (self.file_name is None):
            raise ValueError("file_url and file_name must be both present or both absent")
        return self


class FeedbackSubmission(CamelModel):
    """Rating submitted by the requester for a ticket's AI response"""
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


# ============================================================================
# Query / Aggregate Models
# ============================================================================

class TicketFilters(CamelModel):
    """Dashboard list filters; None means no filtering on that field"""
    status: Optional[TicketStatus] = None
    priority: Optional[Priority] = None
    search: Optional[str] = None


class TicketStats(CamelModel):
    """Aggregated counts for the dashboard header"""
    total: int = 0
    open: int = 0
    in_progress: int = 0
    awaiting_info: int = 0
    closed: int = 0
    resolved: int = 0
    ai_responses: int = 0
    pending_ai_responses: int = 0
    feedback_count: int = 0
    satisfaction_rate: Optional[float] = Field(None, description="Mean feedback rating (1-5)")
    resolution_rate: float = Field(0.0, description="Share of tickets resolved or closed (0-1)")
    avg_response_time_seconds: Optional[float] = Field(
        None, description="Mean seconds from creation to the AI response, over answered tickets"
    )
