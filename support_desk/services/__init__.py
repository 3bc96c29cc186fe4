"""
Business Logic Services
"""
from .results import ErrorKind, OperationError, OperationResult
from .ai_responder import MockAIResponder, WebhookAIDispatcher
from .ticket_query import filter_tickets, compute_stats
from .sync_controller import (
    TicketSyncController,
    TicketListView,
    TicketDetailView,
    ViewState,
    can_submit_feedback,
)

__all__ = [
    "ErrorKind",
    "OperationError",
    "OperationResult",
    "MockAIResponder",
    "WebhookAIDispatcher",
    "filter_tickets",
    "compute_stats",
    "TicketSyncController",
    "TicketListView",
    "TicketDetailView",
    "ViewState",
    "can_submit_feedback",
]
