"""
Health check endpoints with dependency monitoring

Provides two endpoints:
- GET /api/v1/health - Basic health check
- GET /api/v1/health/dependencies - Ticket store and AI webhook status
"""
import asyncio
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

import httpx
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from support_desk import __version__
from support_desk.config import get_settings
from support_desk.repositories import TicketStore
from support_desk.routes.dependencies import get_store
from support_desk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/health", tags=["health"])

# Application start time for uptime calculation
APP_START_TIME = time.time()

CHECK_TIMEOUT_SECONDS = 5.0


# ============================================================================
# Pydantic Models
# ============================================================================

class HealthState(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HealthResponse(BaseModel):
    """Basic health check response"""
    status: HealthState = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")
    version: str = Field(..., description="Application version")
    uptime_seconds: float = Field(..., description="Application uptime in seconds")


class DependencyStatus(BaseModel):
    """Status of a single dependency"""
    name: str = Field(..., description="Dependency name")
    status: HealthState = Field(..., description="Dependency status")
    latency_ms: Optional[float] = Field(None, description="Response latency in milliseconds")
    error_message: Optional[str] = Field(None, description="Error message if unhealthy")


class DependencyHealth(BaseModel):
    """Dependency health check response"""
    overall_status: HealthState = Field(..., description="Worst status that matters")
    dependencies: Dict[str, DependencyStatus] = Field(..., description="Individual dependency statuses")
    checked_at: datetime = Field(default_factory=_utcnow, description="Check timestamp")


# ============================================================================
# Dependency Check Functions
# ============================================================================

async def check_ticket_store(store: TicketStore) -> DependencyStatus:
    """
    Check the ticket store answers a listing

    Returns:
        DependencyStatus with health information
    """
    try:
        start = time.time()
        await asyncio.wait_for(store.list(), timeout=CHECK_TIMEOUT_SECONDS)
        latency = (time.time() - start) * 1000

        return DependencyStatus(
            name="ticket_store",
            status=HealthState.HEALTHY,
            latency_ms=round(latency, 2)
        )

    except asyncio.TimeoutError:
        logger.error("Ticket store health check timed out")
        return DependencyStatus(
            name="ticket_store",
            status=HealthState.UNHEALTHY,
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:g} seconds"
        )
    except Exception as e:
        logger.error(f"Ticket store health check failed: {e}")
        return DependencyStatus(
            name="ticket_store",
            status=HealthState.UNHEALTHY,
            error_message=str(e)
        )


async def check_ai_webhook(transport: Optional[httpx.AsyncBaseTransport] = None) -> DependencyStatus:
    """
    Check the AI webhook host is reachable

    The webhook is optional; without a URL it reports degraded.
    """
    if not settings.ai_webhook_url:
        return DependencyStatus(
            name="ai_webhook",
            status=HealthState.DEGRADED,
            error_message="Webhook URL not configured"
        )

    try:
        start = time.time()
        async with httpx.AsyncClient(timeout=CHECK_TIMEOUT_SECONDS, transport=transport) as client:
            await client.head(settings.ai_webhook_url)
        latency = (time.time() - start) * 1000

        return DependencyStatus(
            name="ai_webhook",
            status=HealthState.HEALTHY,
            latency_ms=round(latency, 2)
        )

    except httpx.TimeoutException:
        logger.error("AI webhook health check timed out")
        return DependencyStatus(
            name="ai_webhook",
            status=HealthState.UNHEALTHY,
            error_message=f"Request timed out after {CHECK_TIMEOUT_SECONDS:g} seconds"
        )
    except httpx.HTTPError as e:
        logger.error(f"AI webhook health check failed: {e}")
        return DependencyStatus(
            name="ai_webhook",
            status=HealthState.UNHEALTHY,
            error_message=str(e)
        )


def determine_overall_status(dependencies: Dict[str, DependencyStatus]) -> HealthState:
    """
    The store is required; the AI webhook is optional.

    Store unhealthy makes the service unhealthy. Any other problem only
    degrades it.
    """
    store = dependencies.get("ticket_store")
    if store is not None and store.status == HealthState.UNHEALTHY:
        return HealthState.UNHEALTHY

    if any(dep.status != HealthState.HEALTHY for dep in dependencies.values()):
        return HealthState.DEGRADED

    return HealthState.HEALTHY


# ============================================================================
# API Endpoints
# ============================================================================

@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check"
)
async def health_check() -> HealthResponse:
    """
    Basic health check; always healthy while the process serves requests
    """
    return HealthResponse(
        status=HealthState.HEALTHY,
        version=__version__,
        uptime_seconds=round(time.time() - APP_START_TIME, 2)
    )


@router.get(
    "/dependencies",
    response_model=DependencyHealth,
    status_code=status.HTTP_200_OK,
    summary="Dependency health check"
)
async def dependency_health_check(store: TicketStore = Depends(get_store)) -> DependencyHealth:
    """
    Check the ticket store and AI webhook

    Always returns 200 OK with detailed status information.
    """
    store_status, webhook_status = await asyncio.gather(
        check_ticket_store(store),
        check_ai_webhook(),
    )
    dependencies = {
        "ticket_store": store_status,
        "ai_webhook": webhook_status,
    }

    unhealthy = [name for name, dep in dependencies.items() if dep.status == HealthState.UNHEALTHY]
    if unhealthy:
        logger.warning(f"Unhealthy dependencies: {', '.join(unhealthy)}")

    return DependencyHealth(
        overall_status=determine_overall_status(dependencies),
        dependencies=dependencies,
    )
