"""
In-memory ticket store

Process-local TicketStore used by the test suite and by
``TICKET_STORE_BACKEND=memory``. Each instance owns its own tickets; no
module-level state is shared between instances.

When ``ai_delay`` is set, creating a ticket schedules a background task
that plays the external AI and notification collaborators: after the
delay it attaches a generated response and marks the email as sent.
"""
import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set
from uuid import uuid4

from support_desk.exceptions import StoreWriteError
from support_desk.models.schemas import (
    EmailNotificationStatus,
    Feedback,
    Ticket,
    TicketDraft,
    TicketStatus,
)
from support_desk.services.ai_responder import MockAIResponder
from support_desk.utils.logger import get_logger

logger = get_logger(__name__)


class InMemoryTicketStore:
    """Dictionary-backed TicketStore returning copies of stored tickets"""

    def __init__(
        self,
        responder: Optional[MockAIResponder] = None,
        ai_delay: Optional[float] = None,
        id_prefix: str = "TKT",
        first_number: int = 1
    ):
        self._tickets: Dict[str, Ticket] = {}
        self._sequence = first_number - 1
        self._background: Set[asyncio.Task] = set()
        self.responder = responder or MockAIResponder()
        self.ai_delay = ai_delay
        self.id_prefix = id_prefix

    def _next_id(self) -> str:
        self._sequence += 1
        return f"{self.id_prefix}-{self._sequence:03d}"

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    # ------------------------------------------------------------------
    # TicketStore
    # ------------------------------------------------------------------
    async def create(self, draft: TicketDraft) -> Ticket:
        now = self._now()
        ticket = Ticket(
            id=self._next_id(),
            subject=draft.subject,
            description=draft.description,
            priority=draft.priority,
            status=TicketStatus.OPEN,
            created_at=now,
            updated_at=now,
            file_url=draft.file_url,
            file_name=draft.file_name,
            email=draft.email,
            email_notification_status=EmailNotificationStatus.PENDING,
        )
        self._tickets[ticket.id] = ticket
        logger.info(f"Created ticket: {ticket.id}")

        if self.ai_delay is not None:
            task = asyncio.create_task(self._generate_later(ticket.id, self.ai_delay))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

        return ticket.model_copy(deep=True)

    async def list(self) -> List[Ticket]:
        tickets = sorted(self._tickets.values(), key=lambda t: t.created_at, reverse=True)
        return [ticket.model_copy(deep=True) for ticket in tickets]

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        ticket = self._tickets.get(ticket_id)
        return ticket.model_copy(deep=True) if ticket else None

    async def update_status(self, ticket_id: str, status: TicketStatus) -> None:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise StoreWriteError("update_status", f"ticket {ticket_id} not found")

        self._tickets[ticket_id] = ticket.model_copy(
            update={"status": status, "updated_at": self._now()}
        )
        logger.info(f"Updated ticket {ticket_id} status to {status.value}")

    async def create_feedback(
        self,
        ticket_id: str,
        rating: int,
        comment: Optional[str] = None
    ) -> None:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise StoreWriteError("create_feedback", f"ticket {ticket_id} not found")
        if ticket.feedback is not None:
            raise StoreWriteError("create_feedback", f"ticket {ticket_id} already has feedback")

        feedback = Feedback(
            id=uuid4().hex,
            ticket_id=ticket_id,
            rating=rating,
            comment=comment,
            created_at=self._now(),
        )
        self._tickets[ticket_id] = ticket.model_copy(update={"feedback": feedback})
        logger.info(f"Created feedback for ticket: {ticket_id}")

    # ------------------------------------------------------------------
    # External collaborator hooks
    # ------------------------------------------------------------------
    def add(self, ticket: Ticket) -> Ticket:
        """Seed a fully formed ticket (fixtures and demo data)."""
        self._tickets[ticket.id] = ticket.model_copy(deep=True)
        return ticket

    def attach_ai_response(self, ticket_id: str, response: str) -> None:
        """Write an AI response the way the external generator does."""
        ticket = self._tickets[ticket_id]
        now = self._now()
        self._tickets[ticket_id] = ticket.model_copy(update={
            "ai_response": response,
            "ai_response_generated_at": now,
            "updated_at": now,
        })

    def set_email_notification_status(self, ticket_id: str, status: EmailNotificationStatus) -> None:
        """Write the notification outcome the way the mailer does."""
        ticket = self._tickets[ticket_id]
        self._tickets[ticket_id] = ticket.model_copy(update={
            "email_notification_status": status,
            "updated_at": self._now(),
        })

    async def _generate_later(self, ticket_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        ticket = self._tickets.get(ticket_id)
        if ticket is None or ticket.has_ai_response:
            return

        self.attach_ai_response(ticket_id, self.responder.generate(ticket.subject, ticket.description))
        self.set_email_notification_status(ticket_id, EmailNotificationStatus.SENT)
        logger.info(f"Attached AI response to ticket: {ticket_id}")

    async def drain(self) -> None:
        """Wait for scheduled background generation to finish."""
        if self._background:
            await asyncio.gather(*list(self._background))
