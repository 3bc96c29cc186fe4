"""
Repositories package for ticket store operations

Provides TicketStore implementations for:
- tickets / feedback tables in Supabase (TicketRepository)
- process-local storage for tests and demos (InMemoryTicketStore)
"""
from support_desk.repositories.base_repository import TicketStore
from support_desk.repositories.ticket_repository import TicketRepository
from support_desk.repositories.memory_repository import InMemoryTicketStore

__all__ = [
    "TicketStore",
    "TicketRepository",
    "InMemoryTicketStore",
]
