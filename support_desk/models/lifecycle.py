"""
Ticket lifecycle state machine

Transitions this system performs itself:

    open --acknowledge--> in_progress --resolve--> resolved

``awaiting_info`` and ``closed`` are valid statuses that other
collaborators may set; nothing here moves a ticket into them.
Requesting the current status again is a successful no-op.
"""
from typing import Dict, FrozenSet

from support_desk.exceptions import IllegalTransitionError
from support_desk.models.schemas import TicketStatus


ALLOWED_TRANSITIONS: Dict[TicketStatus, FrozenSet[TicketStatus]] = {
    TicketStatus.OPEN: frozenset({TicketStatus.IN_PROGRESS}),
    TicketStatus.IN_PROGRESS: frozenset({TicketStatus.RESOLVED}),
    TicketStatus.AWAITING_INFO: frozenset(),
    TicketStatus.CLOSED: frozenset(),
    TicketStatus.RESOLVED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[TicketStatus] = frozenset({
    TicketStatus.RESOLVED,
    TicketStatus.CLOSED,
})


def can_transition(current: TicketStatus, target: TicketStatus) -> bool:
    """True if moving from current to target is allowed (or a no-op)."""
    return current == target or target in ALLOWED_TRANSITIONS[current]


def is_noop(current: TicketStatus, target: TicketStatus) -> bool:
    return current == target


def ensure_transition(current: TicketStatus, target: TicketStatus) -> None:
    """
    Validate a transition.

    Raises:
        IllegalTransitionError: if the transition is not permitted
    """
    if not can_transition(current, target):
        raise IllegalTransitionError(current, target)


def transition(current: TicketStatus, target: TicketStatus) -> TicketStatus:
    """
    Apply a transition and return the resulting status.

    Args:
        current: Status the ticket is in now
        target: Requested status

    Returns:
        target, once validated

    Raises:
        IllegalTransitionError: for any transition outside ALLOWED_TRANSITIONS
    """
    ensure_transition(current, target)
    return target


def is_terminal(status: TicketStatus) -> bool:
    return status in TERMINAL_STATUSES


def needs_acknowledgement(status: TicketStatus) -> bool:
    """Viewing a ticket in this status starts work on it."""
    return status == TicketStatus.OPEN


def is_resolvable(status: TicketStatus) -> bool:
    return status == TicketStatus.IN_PROGRESS
