"""
Ticket Repository for the tickets and feedback tables

Features:
- Async TicketStore implementation over the Supabase client
- Explicit row <-> model mapping (snake_case columns, embedded feedback)
- Client errors logged and re-raised as StoreError subclasses
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from support_desk.config import get_settings
from support_desk.exceptions import StoreReadError, StoreWriteError
from support_desk.models.schemas import (
    EmailNotificationStatus,
    Feedback,
    Ticket,
    TicketDraft,
    TicketStatus,
)
from support_desk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

TICKET_COLUMNS = (
    "id",
    "subject",
    "description",
    "priority",
    "status",
    "created_at",
    "updated_at",
    "file_url",
    "file_name",
    "email",
    "ai_response",
    "ai_response_generated_at",
    "email_notification_status",
)

FEEDBACK_COLUMNS = ("id", "ticket_id", "rating", "comment", "created_at")


class TicketRepository:
    """Repository for tickets and feedback table operations"""

    def __init__(self, supabase_client=None):
        """
        Initialize repository with Supabase client

        Args:
            supabase_client: Supabase client instance (uses default if None)
        """
        if supabase_client is None:
            from supabase import create_client  # Lazy import for tests

            self.client = create_client(
                settings.supabase_url,
                settings.supabase_write_key
            )
        else:
            self.client = supabase_client

        self.table_name = settings.tickets_table
        self.feedback_table = settings.feedback_table
        self._select = f"*, {self.feedback_table}(*)"
        logger.info(f"TicketRepository initialized for table: {self.table_name}")

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------
    def _deserialize(self, row: Dict[str, Any]) -> Ticket:
        """Convert a Supabase row (with embedded feedback) into a Ticket."""
        data = {column: row.get(column) for column in TICKET_COLUMNS}
        if data["email_notification_status"] is None:
            data["email_notification_status"] = EmailNotificationStatus.PENDING

        embedded = row.get(self.feedback_table)
        # PostgREST embeds a list for one-to-many, an object for unique FKs
        if isinstance(embedded, list):
            embedded = embedded[0] if embedded else None
        if embedded:
            data["feedback"] = Feedback(
                **{column: embedded.get(column) for column in FEEDBACK_COLUMNS}
            )

        return Ticket(**data)

    @staticmethod
    def _serialize_draft(draft: TicketDraft) -> Dict[str, Any]:
        """Prepare an insert payload (enum values, no None columns)."""
        payload: Dict[str, Any] = {
            "subject": draft.subject,
            "description": draft.description,
            "priority": draft.priority.value,
            "email": draft.email,
            "status": TicketStatus.OPEN.value,
            "email_notification_status": EmailNotificationStatus.PENDING.value,
        }
        if draft.file_url is not None:
            payload["file_url"] = draft.file_url
            payload["file_name"] = draft.file_name
        return payload

    async def _execute(self, query):
        return await asyncio.to_thread(query.execute)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------
    async def create(self, draft: TicketDraft) -> Ticket:
        """
        Create a new ticket

        Args:
            draft: Validated ticket input

        Returns:
            Created Ticket as persisted

        Raises:
            StoreWriteError: If the insert fails or returns no row
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name).insert(self._serialize_draft(draft))
            )
        except Exception as e:
            logger.error(f"Failed to create ticket: {e}")
            raise StoreWriteError("create", str(e), e) from e

        if not response.data:
            logger.error("Ticket insert returned no data")
            raise StoreWriteError("create", "insert returned no data")

        ticket = self._deserialize(response.data[0])
        logger.info(f"Created ticket: {ticket.id}")
        return ticket

    async def create_feedback(
        self,
        ticket_id: str,
        rating: int,
        comment: Optional[str] = None
    ) -> None:
        """
        Insert the feedback row for a ticket

        The feedback table carries a unique constraint on ticket_id, so a
        second insert for the same ticket fails here.

        Raises:
            StoreWriteError: If the insert is rejected
        """
        payload: Dict[str, Any] = {"ticket_id": ticket_id, "rating": rating}
        if comment:
            payload["comment"] = comment

        try:
            response = await self._execute(
                self.client.table(self.feedback_table).insert(payload)
            )
        except Exception as e:
            logger.error(f"Failed to create feedback for ticket {ticket_id}: {e}")
            raise StoreWriteError("create_feedback", str(e), e) from e

        if not response.data:
            raise StoreWriteError("create_feedback", f"no row inserted for ticket {ticket_id}")

        logger.info(f"Created feedback for ticket: {ticket_id}")

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------
    async def list(self) -> List[Ticket]:
        """
        List all tickets, newest first

        Returns:
            List of Tickets ordered by created_at descending
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .select(self._select)
                .order("created_at", desc=True)
            )
        except Exception as e:
            logger.error(f"Failed to list tickets: {e}")
            raise StoreReadError("list", str(e), e) from e

        return [self._deserialize(row) for row in response.data or []]

    async def get_by_id(self, ticket_id: str) -> Optional[Ticket]:
        """
        Get ticket by ID

        Args:
            ticket_id: Ticket identifier

        Returns:
            Ticket if found, None otherwise
        """
        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .select(self._select)
                .eq("id", ticket_id)
                .limit(1)
            )
        except Exception as e:
            logger.error(f"Failed to get ticket {ticket_id}: {e}")
            raise StoreReadError("get_by_id", str(e), e) from e

        if not response.data:
            return None

        return self._deserialize(response.data[0])

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------
    async def update_status(self, ticket_id: str, status: TicketStatus) -> None:
        """
        Persist a status change and refresh updated_at

        Raises:
            StoreWriteError: If the update fails or matches no ticket
        """
        updates = {
            "status": status.value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            response = await self._execute(
                self.client.table(self.table_name)
                .update(updates)
                .eq("id", ticket_id)
            )
        except Exception as e:
            logger.error(f"Failed to update ticket {ticket_id}: {e}")
            raise StoreWriteError("update_status", str(e), e) from e

        if not response.data:
            raise StoreWriteError("update_status", f"ticket {ticket_id} not found")

        logger.info(f"Updated ticket {ticket_id} status to {status.value}")
