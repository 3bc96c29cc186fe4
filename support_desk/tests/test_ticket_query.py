"""
Tests for list filtering and dashboard statistics
"""
from datetime import timedelta

from support_desk.models.schemas import Feedback, Priority, TicketFilters, TicketStatus
from support_desk.services.ticket_query import compute_stats, filter_tickets
from support_desk.tests.fakes import BASE_TIME, make_ticket


def sample_tickets():
    return [
        make_ticket("TKT-004", status=TicketStatus.RESOLVED, ai_response="Done", minutes=30,
                    feedback=Feedback(id="fb-1", ticket_id="TKT-004", rating=5)),
        make_ticket("TKT-003", status=TicketStatus.IN_PROGRESS, ai_response="Try this", minutes=20,
                    subject="Printer offline", priority=Priority.LOW,
                    feedback=Feedback(id="fb-2", ticket_id="TKT-003", rating=2)),
        make_ticket("TKT-002", status=TicketStatus.OPEN, minutes=10,
                    subject="Password reset", priority=Priority.URGENT),
        make_ticket("TKT-001", status=TicketStatus.CLOSED, ai_response="Closed", minutes=0),
    ]


class TestFilterTickets:
    def test_no_filters(self):
        tickets = sample_tickets()
        assert filter_tickets(tickets, TicketFilters()) == tickets

    def test_status(self):
        result = filter_tickets(sample_tickets(), TicketFilters(status=TicketStatus.OPEN))
        assert [t.id for t in result] == ["TKT-002"]

    def test_priority(self):
        result = filter_tickets(sample_tickets(), TicketFilters(priority=Priority.HIGH))
        assert [t.id for t in result] == ["TKT-004", "TKT-001"]

    def test_search_is_case_insensitive(self):
        result = filter_tickets(sample_tickets(), TicketFilters(search="  PRINTER "))
        assert [t.id for t in result] == ["TKT-003"]

    def test_search_matches_id(self):
        result = filter_tickets(sample_tickets(), TicketFilters(search="tkt-001"))
        assert [t.id for t in result] == ["TKT-001"]

    def test_combined(self):
        filters = TicketFilters(status=TicketStatus.RESOLVED, search="vpn")
        assert [t.id for t in filter_tickets(sample_tickets(), filters)] == ["TKT-004"]


class TestComputeStats:
    def test_counts(self):
        stats = compute_stats(sample_tickets())

        assert stats.total == 4
        assert stats.open == 1
        assert stats.in_progress == 1
        assert stats.resolved == 1
        assert stats.closed == 1
        assert stats.awaiting_info == 0
        assert stats.ai_responses == 3
        assert stats.pending_ai_responses == 1
        assert stats.feedback_count == 2
        assert stats.satisfaction_rate == 3.5
        assert stats.resolution_rate == 0.5

    def test_empty(self):
        stats = compute_stats([])

        assert stats.total == 0
        assert stats.satisfaction_rate is None
        assert stats.resolution_rate == 0.0
        assert stats.avg_response_time_seconds is None

    def test_camel_case_output(self):
        data = compute_stats(sample_tickets()).model_dump(by_alias=True)
        assert data["inProgress"] == 1
        assert data["pendingAiResponses"] == 1
        assert data["avgResponseTimeSeconds"] == 120.0

    def test_average_response_time_over_answered_tickets(self):
        tickets = sample_tickets() + [
            make_ticket("TKT-005", ai_response="Reboot", minutes=40,
                        ai_response_generated_at=BASE_TIME + timedelta(minutes=50)),
        ]

        # Three answers after 2 minutes, one after 10; the open ticket is ignored
        assert compute_stats(tickets).avg_response_time_seconds == 240.0

    def test_no_answered_tickets(self):
        stats = compute_stats([make_ticket(), make_ticket("TKT-101", minutes=5)])
        assert stats.avg_response_time_seconds is None

    def test_response_before_creation_counts_as_zero(self):
        ticket = make_ticket(ai_response="Clock skew", minutes=10)
        ticket = ticket.model_copy(update={
            "ai_response_generated_at": ticket.created_at - timedelta(minutes=1),
        })
        assert compute_stats([ticket]).avg_response_time_seconds == 0.0
