"""
pytest configuration and shared fixtures
"""
from unittest.mock import MagicMock

import pytest

from support_desk.services.sync_controller import TicketSyncController
from support_desk.tests.fakes import RecordingStore


@pytest.fixture
def store() -> RecordingStore:
    """Fresh store per test"""
    return RecordingStore()


@pytest.fixture
def controller(store) -> TicketSyncController:
    return TicketSyncController(
        store,
        poll_interval=0.01,
        max_poll_attempts=5,
        reject_stale_reads=True,
    )


@pytest.fixture
def mock_supabase():
    """Fixture for mock Supabase client"""
    client = MagicMock()
    client.table.return_value = client
    client.select.return_value = client
    client.insert.return_value = client
    client.update.return_value = client
    client.eq.return_value = client
    client.order.return_value = client
    client.limit.return_value = client
    client.execute.return_value = MagicMock(data=[], count=0)
    return client
