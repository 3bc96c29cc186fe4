"""
Ticket Store contract

Every store the synchronization controller talks to implements
``TicketStore``. The Supabase repository is the production backend;
``InMemoryTicketStore`` serves tests and local demos.
"""
from typing import List, Optional, Protocol, runtime_checkable

from support_desk.models.schemas import Ticket, TicketDraft, TicketStatus


@runtime_checkable
class TicketStore(Protocol):
    """
    Async CRUD surface over tickets and their feedback.

    Failures raise ``StoreReadError`` or ``StoreWriteError``. A call that
    returns normally has been persisted.
    """

    async def create(self, draft: TicketDraft) -> Ticket:
        """Insert a ticket; the store assigns id, timestamps and defaults."""
        ...

    async def list(self) -> List[Ticket]:
        """All tickets, newest ``created_at`` first."""
        ...

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """Latest persisted state of one ticket, or None if it does not exist."""
        ...

    async def update_status(self, ticket_id: str, status: TicketStatus) -> None:
        """Persist a status and refresh ``updated_at``. No lifecycle validation."""
        ...

    async def create_feedback(
        self,
        ticket_id: str,
        rating: int,
        comment: Optional[str] = None
    ) -> None:
        """Insert the feedback row for a ticket."""
        ...
