"""
Unit tests for the ticket lifecycle state machine
"""
import pytest

from support_desk.exceptions import IllegalTransitionError
from support_desk.models import lifecycle
from support_desk.models.schemas import TicketStatus


class TestAllowedTransitions:
    """Transitions this system performs"""

    def test_open_to_in_progress(self):
        assert lifecycle.transition(TicketStatus.OPEN, TicketStatus.IN_PROGRESS) == TicketStatus.IN_PROGRESS

    def test_in_progress_to_resolved(self):
        assert lifecycle.transition(TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED) == TicketStatus.RESOLVED

    @pytest.mark.parametrize("status", list(TicketStatus))
    def test_same_status_is_noop(self, status):
        """Re-requesting the current status succeeds without error"""
        assert lifecycle.can_transition(status, status)
        assert lifecycle.transition(status, status) == status
        assert lifecycle.is_noop(status, status)

    def test_table_covers_every_status(self):
        assert set(lifecycle.ALLOWED_TRANSITIONS) == set(TicketStatus)


class TestIllegalTransitions:
    """Everything else is a programming error"""

    @pytest.mark.parametrize("current,target", [
        (TicketStatus.OPEN, TicketStatus.RESOLVED),
        (TicketStatus.OPEN, TicketStatus.AWAITING_INFO),
        (TicketStatus.OPEN, TicketStatus.CLOSED),
        (TicketStatus.IN_PROGRESS, TicketStatus.OPEN),
        (TicketStatus.IN_PROGRESS, TicketStatus.CLOSED),
        (TicketStatus.RESOLVED, TicketStatus.IN_PROGRESS),
        (TicketStatus.CLOSED, TicketStatus.RESOLVED),
        (TicketStatus.AWAITING_INFO, TicketStatus.OPEN),
    ])
    def test_transition_raises(self, current, target):
        assert not lifecycle.can_transition(current, target)
        with pytest.raises(IllegalTransitionError) as exc_info:
            lifecycle.transition(current, target)
        assert exc_info.value.current == current
        assert exc_info.value.target == target

    def test_no_transition_into_awaiting_info_or_closed(self):
        for current in TicketStatus:
            if current not in (TicketStatus.AWAITING_INFO, TicketStatus.CLOSED):
                assert not lifecycle.can_transition(current, TicketStatus.AWAITING_INFO)
                assert not lifecycle.can_transition(current, TicketStatus.CLOSED)

    def test_illegal_transition_is_value_error(self):
        with pytest.raises(ValueError):
            lifecycle.ensure_transition(TicketStatus.RESOLVED, TicketStatus.OPEN)


class TestPredicates:
    def test_terminal_statuses(self):
        assert lifecycle.is_terminal(TicketStatus.RESOLVED)
        assert lifecycle.is_terminal(TicketStatus.CLOSED)
        assert not lifecycle.is_terminal(TicketStatus.OPEN)
        assert not lifecycle.is_terminal(TicketStatus.IN_PROGRESS)

    def test_only_open_needs_acknowledgement(self):
        assert [s for s in TicketStatus if lifecycle.needs_acknowledgement(s)] == [TicketStatus.OPEN]

    def test_only_in_progress_is_resolvable(self):
        assert [s for s in TicketStatus if lifecycle.is_resolvable(s)] == [TicketStatus.IN_PROGRESS]
