"""
Dashboard list filtering and statistics

Both operate on a list snapshot already loaded by the controller; neither
touches the store.
"""
from typing import Iterable, List

from support_desk.models.schemas import Ticket, TicketFilters, TicketStats, TicketStatus


def filter_tickets(tickets: Iterable[Ticket], filters: TicketFilters) -> List[Ticket]:
    """
    Apply status, priority and free-text filters, preserving order.

    The search term matches case-insensitively against subject,
    description and id.
    """
    filtered = list(tickets)

    if filters.status:
        filtered = [t for t in filtered if t.status == filters.status]
    if filters.priority:
        filtered = [t for t in filtered if t.priority == filters.priority]

    term = (filters.search or "").strip().lower()
    if term:
        filtered = [
            t for t in filtered
            if term in t.subject.lower()
            or term in t.description.lower()
            or term in t.id.lower()
        ]

    return filtered


def compute_stats(tickets: Iterable[Ticket]) -> TicketStats:
    """Aggregate counts, mean feedback rating, resolution rate and AI response time."""
    tickets = list(tickets)
    total = len(tickets)

    def count(status: TicketStatus) -> int:
        return sum(1 for t in tickets if t.status == status)

    ratings = [t.feedback.rating for t in tickets if t.feedback is not None]
    ai_responses = sum(1 for t in tickets if t.has_ai_response)
    finished = count(TicketStatus.RESOLVED) + count(TicketStatus.CLOSED)
    response_times = [
        max((t.ai_response_generated_at - t.created_at).total_seconds(), 0.0)
        for t in tickets
        if t.has_ai_response and t.ai_response_generated_at is not None
    ]

    return TicketStats(
        total=total,
        open=count(TicketStatus.OPEN),
        in_progress=count(TicketStatus.IN_PROGRESS),
        awaiting_info=count(TicketStatus.AWAITING_INFO),
        closed=count(TicketStatus.CLOSED),
        resolved=count(TicketStatus.RESOLVED),
        ai_responses=ai_responses,
        pending_ai_responses=total - ai_responses,
        feedback_count=len(ratings),
        satisfaction_rate=round(sum(ratings) / len(ratings), 2) if ratings else None,
        resolution_rate=round(finished / total, 4) if total else 0.0,
        avg_response_time_seconds=(
            round(sum(response_times) / len(response_times), 1) if response_times else None
        ),
    )
