"""
FastAPI dependencies wiring the ticket store and controller
"""
from functools import lru_cache

from fastapi import Depends

from support_desk.config import get_settings
from support_desk.repositories import InMemoryTicketStore, TicketRepository, TicketStore
from support_desk.services.ai_responder import WebhookAIDispatcher
from support_desk.services.sync_controller import TicketSyncController
from support_desk.utils.logger import get_logger

logger = get_logger(__name__)


@lru_cache()
def get_store() -> TicketStore:
    """Process-wide store selected by TICKET_STORE_BACKEND"""
    settings = get_settings()
    if settings.uses_memory_store:
        logger.info("Using in-memory ticket store")
        return InMemoryTicketStore(ai_delay=settings.mock_ai_delay_seconds)
    return TicketRepository()


@lru_cache()
def get_dispatcher() -> WebhookAIDispatcher:
    return WebhookAIDispatcher()


def get_controller(
    store: TicketStore = Depends(get_store),
    dispatcher: WebhookAIDispatcher = Depends(get_dispatcher)
) -> TicketSyncController:
    """One controller per request; snapshots never outlive the request."""
    return TicketSyncController(store, dispatcher=dispatcher)
