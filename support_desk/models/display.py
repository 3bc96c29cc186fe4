"""
Display tables for statuses, priorities and notification states

Every table is total over its enum; ``tests/test_display.py`` checks this.
"""
from datetime import datetime, timezone
from typing import Dict, Optional

from support_desk.models.schemas import (
    CamelModel,
    EmailNotificationStatus,
    Priority,
    TicketStatus,
)


class DisplayEntry(CamelModel):
    """Label, icon name and visual class for one enum value"""
    label: str
    icon: str
    css_class: str


STATUS_DISPLAY: Dict[TicketStatus, DisplayEntry] = {
    TicketStatus.OPEN: DisplayEntry(
        label="Open", icon="clock", css_class="status-open"),
    TicketStatus.IN_PROGRESS: DisplayEntry(
        label="In Progress", icon="play-circle", css_class="status-in-progress"),
    TicketStatus.AWAITING_INFO: DisplayEntry(
        label="Awaiting Info", icon="alert-circle", css_class="status-awaiting-info"),
    TicketStatus.CLOSED: DisplayEntry(
        label="Closed", icon="check-circle", css_class="status-closed"),
    TicketStatus.RESOLVED: DisplayEntry(
        label="Resolved", icon="check-circle", css_class="status-resolved"),
}

PRIORITY_DISPLAY: Dict[Priority, DisplayEntry] = {
    Priority.URGENT: DisplayEntry(label="Urgent", icon="flag", css_class="priority-urgent"),
    Priority.HIGH: DisplayEntry(label="High", icon="flag", css_class="priority-high"),
    Priority.MEDIUM: DisplayEntry(label="Medium", icon="flag", css_class="priority-medium"),
    Priority.LOW: DisplayEntry(label="Low", icon="flag", css_class="priority-low"),
}

EMAIL_STATUS_DISPLAY: Dict[EmailNotificationStatus, DisplayEntry] = {
    EmailNotificationStatus.PENDING: DisplayEntry(
        label="Email pending", icon="loader", css_class="email-pending"),
    EmailNotificationStatus.SENT: DisplayEntry(
        label="Email sent", icon="mail", css_class="email-sent"),
    EmailNotificationStatus.FAILED: DisplayEntry(
        label="Email failed", icon="mail-x", css_class="email-failed"),
}


def status_display(status: TicketStatus) -> DisplayEntry:
    return STATUS_DISPLAY[status]


def priority_display(priority: Priority) -> DisplayEntry:
    return PRIORITY_DISPLAY[priority]


def email_status_display(status: EmailNotificationStatus) -> DisplayEntry:
    return EMAIL_STATUS_DISPLAY[status]


def format_relative_time(moment: datetime, now: Optional[datetime] = None) -> str:
    """
    Short relative age used in ticket lists.

    "Just now" under an hour, "<n>h ago" under a day, "Yesterday" under
    two days, otherwise the ISO date.
    """
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    hours = int((now - moment).total_seconds() // 3600)

    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours}h ago"
    if hours < 48:
        return "Yesterday"
    return moment.date().isoformat()
