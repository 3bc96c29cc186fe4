"""
Tests for picking up background AI responses by re-reading
"""
import asyncio

import pytest

from support_desk.models.schemas import TicketDraft, TicketStatus
from support_desk.services.sync_controller import (
    AI_PLACEHOLDER,
    TicketDetailView,
    TicketSyncController,
    ViewState,
)
from support_desk.tests.fakes import RecordingStore, make_ticket

ANSWER = "Reset the network adapter and reconnect."


class TestListPolling:
    """poll_pending_responses on the dashboard list"""

    @pytest.mark.asyncio
    async def test_picks_up_response(self, store, controller):
        store.add(make_ticket("TKT-001"))
        store.add(make_ticket("TKT-002", ai_response=ANSWER, minutes=1))
        listing = controller.open_list()
        await controller.load_tickets(listing)
        assert listing.pending_response_ids() == ["TKT-001"]

        asyncio.get_running_loop().call_later(0.01, store.attach_ai_response, "TKT-001", ANSWER)
        picked_up = await controller.poll_pending_responses(listing, interval=0.02, max_attempts=10)

        assert picked_up == 1
        assert listing.get("TKT-001").ai_response == ANSWER
        assert listing.pending_response_ids() == []
        # Only the pending ticket is re-read
        assert ("get_by_id", "TKT-002") not in store.calls

    @pytest.mark.asyncio
    async def test_nothing_pending(self, store, controller):
        store.add(make_ticket(ai_response=ANSWER))
        listing = controller.open_list()
        await controller.load_tickets(listing)

        assert await controller.poll_pending_responses(listing) == 0
        assert store.calls_to("get_by_id") == []

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, store, controller):
        store.add(make_ticket())
        listing = controller.open_list()
        await controller.load_tickets(listing)

        picked_up = await controller.poll_pending_responses(listing, interval=0, max_attempts=3)

        assert picked_up == 0
        assert len(store.calls_to("get_by_id")) == 3

    @pytest.mark.asyncio
    async def test_vanished_ticket_removed(self, store, controller):
        store.add(make_ticket("TKT-001"))
        listing = controller.open_list()
        await controller.load_tickets(listing)
        listing.tickets.append(make_ticket("TKT-404"))

        await controller.poll_pending_responses(listing, interval=0, max_attempts=1)

        assert listing.get("TKT-404") is None
        assert listing.get("TKT-001") is not None

    @pytest.mark.asyncio
    async def test_read_failure_keeps_ticket(self, store, controller):
        store.add(make_ticket())
        listing = controller.open_list()
        await controller.load_tickets(listing)
        store.fail["get_by_id"] = 1

        await controller.poll_pending_responses(listing, interval=0, max_attempts=1)

        assert listing.get("TKT-100") is not None

    @pytest.mark.asyncio
    async def test_closed_list_not_polled(self, store, controller):
        store.add(make_ticket())
        listing = controller.open_list()
        await controller.load_tickets(listing)
        listing.close()

        assert await controller.poll_pending_responses(listing) == 0
        assert store.calls_to("get_by_id") == []

    @pytest.mark.asyncio
    async def test_background_generation(self):
        store = RecordingStore(ai_delay=0.01)
        controller = TicketSyncController(store, poll_interval=0.02, max_poll_attempts=10)
        await store.create(TicketDraft(
            subject="Outlook crashes",
            description="Outlook closes when opening attachments",
            email="sam@example.com",
        ))
        listing = controller.open_list()
        await controller.load_tickets(listing)

        controller.start_polling(listing)
        await listing.settle()

        assert listing.tickets[0].has_ai_response
        assert listing.stats.pending_ai_responses == 0


class TestListLoading:
    @pytest.mark.asyncio
    async def test_load_failure_sets_error(self, store, controller):
        store.fail["list"] = 1
        listing = controller.open_list()

        result = await controller.load_tickets(listing)

        assert result.error.kind.value == "transport_failure"
        assert listing.state == ViewState.ERROR
        assert not listing.is_loading

        assert (await controller.load_tickets(listing)).success
        assert listing.state == ViewState.READY

    @pytest.mark.asyncio
    async def test_filters_apply_to_visible_tickets(self, store, controller):
        store.add(make_ticket("TKT-001", status=TicketStatus.OPEN))
        store.add(make_ticket("TKT-002", status=TicketStatus.IN_PROGRESS, minutes=1))
        listing = controller.open_list()
        listing.filters.status = TicketStatus.OPEN

        await controller.load_tickets(listing)

        assert [t.id for t in listing.visible_tickets] == ["TKT-001"]
        assert listing.stats.total == 2


class TestDetailWatching:
    """watch_ai_response on a single ticket"""

    @pytest.mark.asyncio
    async def test_placeholder_until_response(self, store, controller):
        ticket = store.add(make_ticket(status=TicketStatus.IN_PROGRESS))
        view = TicketDetailView(ticket.id, ticket)
        assert view.ai_response_text == AI_PLACEHOLDER

        asyncio.get_running_loop().call_later(0.01, store.attach_ai_response, ticket.id, ANSWER)
        found = await controller.watch_ai_response(view, interval=0.02, max_attempts=10)

        assert found
        assert view.ai_response_text == ANSWER
        assert view.ticket.ai_response_generated_at is not None

    @pytest.mark.asyncio
    async def test_already_answered(self, store, controller):
        ticket = store.add(make_ticket(ai_response=ANSWER))
        view = TicketDetailView(ticket.id, ticket)

        assert await controller.watch_ai_response(view)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_stops_when_ticket_disappears(self, controller):
        view = TicketDetailView("TKT-404", make_ticket("TKT-404"))

        assert not await controller.watch_ai_response(view, interval=0)
        assert view.is_unavailable

    @pytest.mark.asyncio
    async def test_closed_view_stops_watching(self, store, controller):
        ticket = store.add(make_ticket())
        view = TicketDetailView(ticket.id, ticket)
        view.close()

        assert not await controller.watch_ai_response(view)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_background_watch_updates_parent(self, store, controller):
        store.add(make_ticket(status=TicketStatus.IN_PROGRESS))
        listing = controller.open_list()
        await controller.load_tickets(listing)
        view = TicketDetailView("TKT-100", listing.get("TKT-100"), parent=listing)

        asyncio.get_running_loop().call_later(0.005, store.attach_ai_response, "TKT-100", ANSWER)
        controller.start_watching(view)
        await view.settle()

        assert listing.get("TKT-100").ai_response == ANSWER
