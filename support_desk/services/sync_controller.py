"""
Synchronization Controller

Keeps the dashboard's ticket snapshots in step with the store while two
things change them:

- user intents (select, resolve, submit feedback), applied optimistically
  where the UI needs to stay responsive;
- background writes by the AI and notification collaborators, which are
  only visible by re-reading.

Rules:
- Every reconciliation replaces the whole snapshot with a fresh read;
  fields from two reads are never merged.
- Completion order decides (last response wins). With
  ``reject_stale_reads`` a read older (by ``updated_at``) than the last
  server snapshot a view applied is dropped.
- A closed view ignores any result that arrives later. Requests are not
  cancelled; their results are discarded.
- Store failures are turned into ``OperationResult``s here and never
  propagate to the caller.
"""
import asyncio
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Set, Union
from uuid import uuid4

from pydantic import ValidationError

from support_desk.config import get_settings
from support_desk.models import lifecycle
from support_desk.models.display import status_display
from support_desk.models.schemas import (
    Feedback,
    FeedbackSubmission,
    Ticket,
    TicketDraft,
    TicketFilters,
    TicketStats,
    TicketStatus,
)
from support_desk.repositories.base_repository import TicketStore
from support_desk.services.ai_responder import WebhookAIDispatcher
from support_desk.services.results import ErrorKind, OperationError, OperationResult
from support_desk.services.ticket_query import compute_stats, filter_tickets
from support_desk.utils.logger import get_logger
from support_desk.utils.validators import validate_ticket_id

logger = get_logger(__name__)
settings = get_settings()

AI_PLACEHOLDER = "AI is analyzing your request..."

# Ticket ids this controller remembers having acknowledged (oldest evicted first)
ACKNOWLEDGED_MEMORY = 1024


class ViewState(str, Enum):
    """What a view can currently render"""
    LOADING = "loading"
    READY = "ready"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


# ============================================================================
# Views
# ============================================================================

class _View:
    """Liveness flag and background work shared by list and detail views"""

    def __init__(self):
        self.state = ViewState.LOADING
        self.error: Optional[OperationError] = None
        self.write_error: Optional[OperationError] = None
        self.pending_reads = 0
        self._active = True
        self._tasks: Set[asyncio.Task] = set()

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_loading(self) -> bool:
        return self.pending_reads > 0

    def close(self) -> None:
        """Stop applying results; in-flight requests finish and are ignored."""
        self._active = False

    def track(self, awaitable: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def settle(self) -> None:
        """Wait until all work scheduled for this view has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


class TicketListView(_View):
    """Dashboard list: one snapshot of every ticket plus client-side filters"""

    def __init__(self, filters: Optional[TicketFilters] = None):
        super().__init__()
        self.tickets: List[Ticket] = []
        self.filters = filters or TicketFilters()

    @property
    def visible_tickets(self) -> List[Ticket]:
        return filter_tickets(self.tickets, self.filters)

    @property
    def stats(self) -> TicketStats:
        return compute_stats(self.tickets)

    def pending_response_ids(self) -> List[str]:
        return [t.id for t in self.tickets if t.awaiting_ai_response]

    def get(self, ticket_id: str) -> Optional[Ticket]:
        for ticket in self.tickets:
            if ticket.id == ticket_id:
                return ticket
        return None

    def replace(self, ticket: Ticket) -> bool:
        """Swap in a newer snapshot of a listed ticket; False if not listed."""
        for index, current in enumerate(self.tickets):
            if current.id == ticket.id:
                self.tickets[index] = ticket
                return True
        return False

    def remove(self, ticket_id: str) -> None:
        self.tickets = [t for t in self.tickets if t.id != ticket_id]


class TicketDetailView(_View):
    """Single-ticket view holding one snapshot"""

    def __init__(
        self,
        ticket_id: str,
        ticket: Optional[Ticket] = None,
        parent: Optional[TicketListView] = None
    ):
        super().__init__()
        self.ticket_id = ticket_id
        self.ticket = ticket
        self.parent = parent
        self.is_resolving = False
        self.is_submitting_feedback = False
        self._server_updated_at: Optional[datetime] = None
        if ticket is not None:
            self.state = ViewState.READY

    @property
    def is_unavailable(self) -> bool:
        return self.state == ViewState.UNAVAILABLE

    @property
    def ai_response_text(self) -> Optional[str]:
        """The AI response, or the analyzing placeholder while it is pending."""
        if self.ticket is None:
            return None
        return self.ticket.ai_response if self.ticket.has_ai_response else AI_PLACEHOLDER

    @property
    def can_resolve(self) -> bool:
        return (
            self.ticket is not None
            and not self.is_resolving
            and lifecycle.is_resolvable(self.ticket.status)
        )

    @property
    def can_submit_feedback(self) -> bool:
        return (
            self.ticket is not None
            and not self.is_submitting_feedback
            and can_submit_feedback(self.ticket)
        )

    def apply_local(self, ticket: Ticket) -> None:
        """Show a locally derived snapshot (optimistic status, new feedback)."""
        self.ticket = ticket
        self.state = ViewState.READY
        self._publish(ticket)

    def apply_server(self, ticket: Ticket, reject_stale: bool = True) -> bool:
        """
        Replace the snapshot with a fresh read.

        Returns:
            False if the read was older than the last server snapshot
            applied and was discarded
        """
        fetched_at = _as_utc(ticket.updated_at)
        if reject_stale and self._server_updated_at and fetched_at < self._server_updated_at:
            return False

        self._server_updated_at = fetched_at
        self.ticket = ticket
        self.state = ViewState.READY
        self.error = None
        self._publish(ticket)
        return True

    def mark_unavailable(self, error: OperationError) -> None:
        self.ticket = None
        self.state = ViewState.UNAVAILABLE
        self.error = error

    def _publish(self, ticket: Ticket) -> None:
        if self.parent is not None and self.parent.is_active:
            self.parent.replace(ticket)


def can_submit_feedback(ticket: Ticket) -> bool:
    """Feedback opens once an AI response exists and only once per ticket."""
    return ticket.has_ai_response and ticket.feedback is None


def _field_errors(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "__root__"
        errors.setdefault(field, error["msg"])
    return errors


# ============================================================================
# Controller
# ============================================================================

class TicketSyncController:
    """
    Orchestrates reads and writes against a TicketStore for the dashboard.

    One controller serves one user session. It holds no ticket data itself;
    snapshots live in the views it hands out.
    """

    def __init__(
        self,
        store: TicketStore,
        dispatcher: Optional[WebhookAIDispatcher] = None,
        poll_interval: Optional[float] = None,
        max_poll_attempts: Optional[int] = None,
        reject_stale_reads: Optional[bool] = None
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.poll_interval = (
            poll_interval if poll_interval is not None
            else settings.response_poll_interval_seconds
        )
        self.max_poll_attempts = (
            max_poll_attempts if max_poll_attempts is not None
            else settings.response_poll_max_attempts
        )
        self.reject_stale_reads = (
            reject_stale_reads if reject_stale_reads is not None
            else settings.reject_stale_reads
        )
        self._acknowledging: Dict[str, asyncio.Task] = {}
        self._acknowledged: Dict[str, None] = {}
        self._background: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Store calls (every failure becomes a result)
    # ------------------------------------------------------------------
    async def _fetch(self, ticket_id: str) -> OperationResult:
        try:
            ticket = await self.store.get_by_id(ticket_id)
        except Exception as e:
            logger.warning(f"Fetching ticket {ticket_id} failed: {e}")
            return OperationResult.fail(
                ErrorKind.TRANSPORT_FAILURE,
                "Failed to fetch ticket details"
            )

        if ticket is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Ticket not found")
        return OperationResult.ok(ticket)

    async def _write_status(self, ticket_id: str, status: TicketStatus) -> OperationResult:
        try:
            await self.store.update_status(ticket_id, status)
        except Exception as e:
            logger.warning(f"Status update {ticket_id} -> {status.value} failed: {e}")
            return OperationResult.fail(
                ErrorKind.STORE_WRITE_FAILURE,
                "Failed to update ticket status. Please try again."
            )
        return OperationResult.ok(message="Ticket status updated successfully")

    def _spawn(self, awaitable: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def drain(self) -> None:
        """Wait for fire-and-forget work (webhook dispatch) to finish."""
        while self._background:
            await asyncio.gather(*list(self._background))

    # ------------------------------------------------------------------
    # Ticket intake
    # ------------------------------------------------------------------
    async def create_ticket(self, draft: Union[TicketDraft, Mapping[str, Any]]) -> OperationResult:
        """
        Validate and persist a new ticket.

        Invalid input is rejected before the store is called.

        Args:
            draft: TicketDraft or raw form data

        Returns:
            Result carrying the created Ticket
        """
        if not isinstance(draft, TicketDraft):
            try:
                draft = TicketDraft.model_validate(draft)
            except ValidationError as e:
                errors = _field_errors(e)
                message = (
                    "Please enter a valid email address."
                    if set(errors) == {"email"}
                    else "Please fill in all required fields."
                )
                return OperationResult.fail(ErrorKind.VALIDATION_FAILURE, message, field_errors=errors)

        try:
            ticket = await self.store.create(draft)
        except Exception as e:
            logger.error(f"Ticket creation failed: {e}")
            return OperationResult.fail(
                ErrorKind.STORE_WRITE_FAILURE,
                "Failed to create ticket. Please try again."
            )

        if self.dispatcher is not None and self.dispatcher.enabled:
            self._spawn(self.dispatcher.dispatch(ticket))

        return OperationResult.ok(
            ticket,
            message=(
                "Ticket created successfully! AI is analyzing your request "
                "and will provide a response shortly."
            ),
        )

    # ------------------------------------------------------------------
    # List view
    # ------------------------------------------------------------------
    def open_list(self, filters: Optional[TicketFilters] = None) -> TicketListView:
        return TicketListView(filters)

    async def load_tickets(self, view: TicketListView) -> OperationResult:
        """Replace the list snapshot with a fresh store listing."""
        if not view.is_active:
            return OperationResult.fail(ErrorKind.VIEW_CLOSED, "View closed")

        view.pending_reads += 1
        if not view.tickets:
            view.state = ViewState.LOADING
        try:
            tickets = await self.store.list()
        except Exception as e:
            logger.warning(f"Listing tickets failed: {e}")
            result = OperationResult.fail(
                ErrorKind.TRANSPORT_FAILURE,
                "Failed to fetch tickets. Please try again."
            )
        else:
            result = OperationResult.ok(tickets)
        finally:
            view.pending_reads -= 1

        if not view.is_active:
            logger.debug("Discarding ticket list for closed view")
            return OperationResult.fail(ErrorKind.VIEW_CLOSED, "View closed")

        if result.success:
            view.tickets = list(result.data)
            view.state = ViewState.READY
            view.error = None
        else:
            view.state = ViewState.ERROR
            view.error = result.error
        return result

    async def poll_pending_responses(
        self,
        view: TicketListView,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None
    ) -> int:
        """
        Re-read every listed ticket still waiting for its AI response.

        The first round runs immediately; later rounds wait ``interval``
        seconds. Stops when nothing is pending, the view closes, or
        ``max_attempts`` rounds have run.

        Returns:
            Number of AI responses picked up
        """
        interval = self.poll_interval if interval is None else interval
        max_attempts = self.max_poll_attempts if max_attempts is None else max_attempts
        picked_up = 0

        for attempt in range(max_attempts):
            if attempt:
                await asyncio.sleep(interval)
            if not view.is_active:
                break

            pending = view.pending_response_ids()
            if not pending:
                break

            results = await asyncio.gather(*(self._fetch(ticket_id) for ticket_id in pending))
            if not view.is_active:
                logger.debug("Discarding poll results for closed list view")
                break

            for ticket_id, result in zip(pending, results):
                if result.success:
                    if view.replace(result.data) and result.data.has_ai_response:
                        picked_up += 1
                elif result.error.kind == ErrorKind.NOT_FOUND:
                    view.remove(ticket_id)

        if picked_up:
            logger.info(f"Picked up {picked_up} AI responses by polling")
        return picked_up

    def start_polling(self, view: TicketListView) -> asyncio.Task:
        """Schedule ``poll_pending_responses`` in the background of a list view."""
        return view.track(self.poll_pending_responses(view))

    # ------------------------------------------------------------------
    # Detail view
    # ------------------------------------------------------------------
    def select_ticket(
        self,
        ticket: Ticket,
        acknowledge: bool = True,
        parent: Optional[TicketListView] = None
    ) -> TicketDetailView:
        """
        Open the detail view for a ticket the caller already holds.

        Returns at once with a view showing ``ticket``. If the ticket is
        open it is acknowledged (optimistically shown as in progress and
        written). A fresh read is scheduled independently and replaces
        the snapshot when it arrives. ``await view.settle()`` waits for
        both.
        """
        view = TicketDetailView(ticket.id, ticket, parent=parent)
        if acknowledge:
            self.acknowledge(view)
        view.track(self.refresh(view))
        return view

    async def open_ticket(
        self,
        ticket_id: str,
        acknowledge: bool = True,
        parent: Optional[TicketListView] = None
    ) -> TicketDetailView:
        """
        Open the detail view for a ticket known only by id.

        Reads first, then acknowledges if the fresh ticket is open.
        Malformed ids go straight to the unavailable state.
        """
        view = TicketDetailView(ticket_id, parent=parent)
        if not validate_ticket_id(ticket_id):
            view.mark_unavailable(OperationError(kind=ErrorKind.NOT_FOUND, message="Ticket not found"))
            return view

        result = await self.refresh(view)
        if result.success and acknowledge:
            self.acknowledge(view)
        return view

    def acknowledge(self, view: TicketDetailView) -> bool:
        """
        Mark an open ticket as in progress because someone is viewing it.

        No-op (and no write) unless the snapshot is open and this
        controller has not already acknowledged the ticket. The view is
        re-read once the write has completed or failed.

        Returns:
            True if a status write was scheduled
        """
        ticket = view.ticket
        if ticket is None or not view.is_active:
            return False
        if not lifecycle.needs_acknowledgement(ticket.status):
            return False
        if ticket.id in self._acknowledging or ticket.id in self._acknowledged:
            logger.debug(f"Ticket {ticket.id} already acknowledged, skipping write")
            return False

        target = lifecycle.transition(ticket.status, TicketStatus.IN_PROGRESS)
        view.apply_local(ticket.model_copy(update={"status": target}))
        self._acknowledging[ticket.id] = view.track(self._persist_acknowledgement(view, ticket.id))
        return True

    async def _persist_acknowledgement(self, view: TicketDetailView, ticket_id: str) -> None:
        try:
            result = await self._write_status(ticket_id, TicketStatus.IN_PROGRESS)
        finally:
            self._acknowledging.pop(ticket_id, None)

        if result.success:
            self._remember_acknowledged(ticket_id)
        elif view.is_active:
            view.write_error = result.error
        # Confirmed or rolled back, the view shows what the store holds
        await self.refresh(view)

    def _remember_acknowledged(self, ticket_id: str) -> None:
        self._acknowledged.pop(ticket_id, None)
        self._acknowledged[ticket_id] = None
        while len(self._acknowledged) > ACKNOWLEDGED_MEMORY:
            del self._acknowledged[next(iter(self._acknowledged))]

    async def refresh(self, view: TicketDetailView) -> OperationResult:
        """
        Replace the view's snapshot with a fresh read.

        Not found and read failures both leave the view unavailable,
        with the error kind telling them apart.
        """
        if not view.is_active:
            return OperationResult.fail(ErrorKind.VIEW_CLOSED, "View closed")

        view.pending_reads += 1
        try:
            result = await self._fetch(view.ticket_id)
        finally:
            view.pending_reads -= 1

        if not view.is_active:
            logger.debug(f"Discarding read of {view.ticket_id} for closed view")
            return OperationResult.fail(ErrorKind.VIEW_CLOSED, "View closed")

        if not result.success:
            view.mark_unavailable(result.error)
            return result

        if not view.apply_server(result.data, reject_stale=self.reject_stale_reads):
            logger.debug(f"Discarding stale read of ticket {view.ticket_id}")
            return OperationResult.ok(view.ticket, message="Stale read discarded")

        return result

    async def watch_ai_response(
        self,
        view: TicketDetailView,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None
    ) -> bool:
        """
        Re-read a detail view until its AI response appears.

        Returns:
            True once the snapshot carries an AI response
        """
        interval = self.poll_interval if interval is None else interval
        max_attempts = self.max_poll_attempts if max_attempts is None else max_attempts

        for attempt in range(max_attempts):
            if view.ticket is not None and view.ticket.has_ai_response:
                return True
            if attempt:
                await asyncio.sleep(interval)
            if not view.is_active:
                return False

            result = await self.refresh(view)
            if not result.success:
                return False

        return view.ticket is not None and view.ticket.has_ai_response

    def start_watching(self, view: TicketDetailView) -> asyncio.Task:
        """Schedule ``watch_ai_response`` in the background of a detail view."""
        return view.track(self.watch_ai_response(view))

    async def resolve(self, view: TicketDetailView) -> OperationResult:
        """
        Resolve an in-progress ticket and show the store's confirmed state.

        Already resolved: succeeds without a store call. Any other status:
        rejected without a store call. A pending acknowledgement of the same
        ticket is awaited before the status is checked. After the write,
        successful or not, the view is re-read.
        """
        if not view.is_active:
            return OperationResult.fail(ErrorKind.VIEW_CLOSED, "View closed")
        if view.ticket is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Ticket unavailable")
        if view.is_resolving:
            return OperationResult.fail(ErrorKind.IN_FLIGHT, "Resolution already in progress")

        view.is_resolving = True
        try:
            return await self._resolve(view)
        finally:
            view.is_resolving = False

    async def _resolve(self, view: TicketDetailView) -> OperationResult:
        pending = self._acknowledging.get(view.ticket_id)
        if pending is not None:
            # An acknowledgement write landing after ours would reopen the ticket
            await pending
            if not view.is_active:
                return OperationResult.fail(ErrorKind.VIEW_CLOSED, "View closed")

        ticket = view.ticket
        if ticket is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Ticket unavailable")
        if lifecycle.is_noop(ticket.status, TicketStatus.RESOLVED):
            return OperationResult.ok(ticket, message="Ticket already resolved")
        if not lifecycle.is_resolvable(ticket.status):
            label = status_display(ticket.status).label
            logger.warning(f"Rejected resolve of ticket {ticket.id} in status {ticket.status.value}")
            return OperationResult.fail(
                ErrorKind.INVALID_TRANSITION,
                f"Only in-progress tickets can be resolved (current status: {label})"
            )

        lifecycle.ensure_transition(ticket.status, TicketStatus.RESOLVED)
        write = await self._write_status(ticket.id, TicketStatus.RESOLVED)
        await self.refresh(view)

        if not write.success:
            if view.is_active:
                view.write_error = write.error
            return write

        return OperationResult.ok(view.ticket, message="Ticket resolved")

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------
    async def submit_feedback(
        self,
        view: TicketDetailView,
        rating: int,
        comment: Optional[str] = None
    ) -> OperationResult:
        """
        Record the one-time rating of a ticket's AI response.

        On success the view's snapshot carries a locally built Feedback
        (the store reports only success). On failure nothing changes
        locally.
        """
        if not view.is_active:
            return OperationResult.fail(ErrorKind.VIEW_CLOSED, "View closed")

        ticket = view.ticket
        if ticket is None:
            return OperationResult.fail(ErrorKind.NOT_FOUND, "Ticket unavailable")
        if ticket.feedback is not None:
            return OperationResult.fail(
                ErrorKind.ALREADY_SUBMITTED,
                "Feedback has already been submitted for this ticket"
            )
        if view.is_submitting_feedback:
            return OperationResult.fail(ErrorKind.IN_FLIGHT, "Feedback submission in progress")
        if not ticket.has_ai_response:
            return OperationResult.fail(
                ErrorKind.PRECONDITION_FAILED,
                "Feedback can be submitted once the AI response is available"
            )

        try:
            submission = FeedbackSubmission(rating=rating, comment=comment)
        except ValidationError as e:
            return OperationResult.fail(
                ErrorKind.VALIDATION_FAILURE,
                "Rating must be a whole number between 1 and 5",
                field_errors=_field_errors(e),
            )
        comment = (submission.comment or "").strip() or None

        view.is_submitting_feedback = True
        try:
            await self.store.create_feedback(ticket.id, submission.rating, comment)
        except Exception as e:
            logger.warning(f"Feedback for ticket {ticket.id} failed: {e}")
            return OperationResult.fail(
                ErrorKind.STORE_WRITE_FAILURE,
                "Failed to submit feedback. Please try again."
            )
        finally:
            view.is_submitting_feedback = False

        feedback = Feedback(
            id=f"feedback_{uuid4().hex}",
            ticket_id=ticket.id,
            rating=submission.rating,
            comment=comment,
            created_at=datetime.now(timezone.utc),
        )
        current = view.ticket
        if view.is_active and current is not None and current.feedback is None:
            view.apply_local(current.model_copy(update={"feedback": feedback}))

        return OperationResult.ok(
            feedback,
            message="Thank you for your feedback! This helps us improve our AI responses."
        )
