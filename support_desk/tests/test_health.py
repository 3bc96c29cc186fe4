"""
Tests for health check endpoints

Tests both basic and dependency health checks.
"""
import httpx
import pytest
from fastapi.testclient import TestClient

from support_desk.main import app
from support_desk.repositories import InMemoryTicketStore
from support_desk.routes import health
from support_desk.routes.dependencies import get_store
from support_desk.routes.health import (
    DependencyStatus,
    check_ai_webhook,
    check_ticket_store,
    determine_overall_status,
)
from support_desk.tests.fakes import RecordingStore


@pytest.fixture
def client():
    app.dependency_overrides[get_store] = lambda: InMemoryTicketStore()
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestBasicHealthCheck:
    """Test basic health check endpoint"""

    def test_basic_health_returns_200(self, client):
        """Basic health check should always return 200"""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

    def test_basic_health_response_structure(self, client):
        """Basic health check should have correct response structure"""
        data = client.get("/api/v1/health").json()

        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert "timestamp" in data
        assert data["uptime_seconds"] >= 0


class TestDependencyHealthCheck:
    """Test dependency health check endpoint"""

    def test_dependency_health_structure(self, client, monkeypatch):
        """Unconfigured webhook degrades but does not fail the check"""
        monkeypatch.setattr(health.settings, "ai_webhook_url", "")

        response = client.get("/api/v1/health/dependencies")

        assert response.status_code == 200
        data = response.json()
        assert set(data["dependencies"]) == {"ticket_store", "ai_webhook"}
        assert data["dependencies"]["ticket_store"]["status"] == "healthy"
        assert data["dependencies"]["ai_webhook"]["status"] == "degraded"
        assert data["overall_status"] == "degraded"


class TestDependencyChecks:
    """Individual check functions"""

    @pytest.mark.asyncio
    async def test_store_unreachable(self):
        store = RecordingStore()
        store.fail["list"] = 1

        result = await check_ticket_store(store)

        assert result.status == "unhealthy"
        assert "simulated outage" in result.error_message

    @pytest.mark.asyncio
    async def test_webhook_reachable(self, monkeypatch):
        monkeypatch.setattr(health.settings, "ai_webhook_url", "https://hooks.example.com/ai")
        transport = httpx.MockTransport(lambda request: httpx.Response(405))

        result = await check_ai_webhook(transport=transport)

        assert result.status == "healthy"
        assert result.latency_ms is not None

    @pytest.mark.asyncio
    async def test_webhook_unreachable(self, monkeypatch):
        monkeypatch.setattr(health.settings, "ai_webhook_url", "https://hooks.example.com/ai")

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await check_ai_webhook(transport=httpx.MockTransport(handler))

        assert result.status == "unhealthy"

    def test_overall_status(self):
        healthy = DependencyStatus(name="x", status="healthy")
        degraded = DependencyStatus(name="x", status="degraded")
        unhealthy = DependencyStatus(name="x", status="unhealthy")

        assert determine_overall_status({"ticket_store": healthy, "ai_webhook": healthy}) == "healthy"
        assert determine_overall_status({"ticket_store": healthy, "ai_webhook": unhealthy}) == "degraded"
        assert determine_overall_status({"ticket_store": unhealthy, "ai_webhook": healthy}) == "unhealthy"
        assert determine_overall_status({"ticket_store": healthy, "ai_webhook": degraded}) == "degraded"
