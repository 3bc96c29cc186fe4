"""
Tests for one-time feedback on AI responses
"""
import pytest

from support_desk.models.schemas import TicketStatus
from support_desk.services.results import ErrorKind
from support_desk.services.sync_controller import TicketDetailView, can_submit_feedback
from support_desk.tests.fakes import make_ticket

ANSWER = "Update the VPN client to version 5.2 and reconnect."


@pytest.fixture
def answered_view(store):
    """Detail view of a ticket that already has its AI response"""
    ticket = store.add(make_ticket(status=TicketStatus.IN_PROGRESS, ai_response=ANSWER))
    return TicketDetailView(ticket.id, ticket)


class TestCanSubmitFeedback:
    def test_requires_ai_response(self):
        assert not can_submit_feedback(make_ticket())
        assert can_submit_feedback(make_ticket(ai_response=ANSWER))

    def test_any_status_once_answered(self):
        for status in TicketStatus:
            assert can_submit_feedback(make_ticket(status=status, ai_response=ANSWER))


class TestSubmitFeedback:
    """Feedback submission through the controller"""

    @pytest.mark.asyncio
    async def test_submit(self, store, controller, answered_view):
        result = await controller.submit_feedback(answered_view, 4, "Worked after a reboot")

        assert result.success
        assert result.message.startswith("Thank you for your feedback!")
        assert result.data.id.startswith("feedback_")
        assert result.data.rating == 4
        assert answered_view.ticket.feedback.comment == "Worked after a reboot"
        assert not answered_view.can_submit_feedback

        stored = await store.get_by_id("TKT-100")
        assert stored.feedback.rating == 4

    @pytest.mark.asyncio
    async def test_blank_comment_sent_as_absent(self, store, controller, answered_view):
        await controller.submit_feedback(answered_view, 3, "   ")

        assert store.calls_to("create_feedback") == [("create_feedback", "TKT-100", 3, None)]
        assert answered_view.ticket.feedback.comment is None

    @pytest.mark.asyncio
    async def test_second_submission_rejected(self, store, controller, answered_view):
        await controller.submit_feedback(answered_view, 5)

        result = await controller.submit_feedback(answered_view, 1)

        assert result.error.kind == ErrorKind.ALREADY_SUBMITTED
        assert len(store.calls_to("create_feedback")) == 1
        assert answered_view.ticket.feedback.rating == 5

    @pytest.mark.asyncio
    async def test_requires_ai_response(self, store, controller):
        ticket = store.add(make_ticket(status=TicketStatus.IN_PROGRESS))
        view = TicketDetailView(ticket.id, ticket)

        result = await controller.submit_feedback(view, 5)

        assert result.error.kind == ErrorKind.PRECONDITION_FAILED
        assert store.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6, -3, 3.5])
    async def test_invalid_rating(self, store, controller, answered_view, rating):
        result = await controller.submit_feedback(answered_view, rating)

        assert result.error.kind == ErrorKind.VALIDATION_FAILURE
        assert result.error.message == "Rating must be a whole number between 1 and 5"
        assert "rating" in result.error.field_errors
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_store_failure_leaves_snapshot_unchanged(self, store, controller, answered_view):
        store.fail["create_feedback"] = 1

        result = await controller.submit_feedback(answered_view, 2)

        assert result.error.kind == ErrorKind.STORE_WRITE_FAILURE
        assert result.error.message == "Failed to submit feedback. Please try again."
        assert result.retryable
        assert answered_view.ticket.feedback is None
        assert not answered_view.is_submitting_feedback

        # Retry succeeds
        assert (await controller.submit_feedback(answered_view, 2)).success

    @pytest.mark.asyncio
    async def test_submission_in_flight(self, controller, answered_view):
        answered_view.is_submitting_feedback = True

        result = await controller.submit_feedback(answered_view, 5)

        assert result.error.kind == ErrorKind.IN_FLIGHT
        assert not answered_view.can_submit_feedback

    @pytest.mark.asyncio
    async def test_unavailable_view(self, controller):
        view = await controller.open_ticket("TKT-404")

        result = await controller.submit_feedback(view, 5)

        assert result.error.kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_closed_view(self, store, controller, answered_view):
        answered_view.close()

        result = await controller.submit_feedback(answered_view, 5)

        assert result.error.kind == ErrorKind.VIEW_CLOSED
        assert store.calls == []
