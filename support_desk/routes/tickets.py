"""
Ticket API routes

Thin HTTP surface over the synchronization controller. Each request
opens a view, forwards the user's intent, and returns the resulting
snapshot with camelCase keys.
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import Field

from support_desk.models.display import (
    DisplayEntry,
    email_status_display,
    format_relative_time,
    priority_display,
    status_display,
)
from support_desk.models.schemas import (
    CamelModel,
    Priority,
    Ticket,
    TicketFilters,
    TicketStats,
    TicketStatus,
)
from support_desk.routes.dependencies import get_controller
from support_desk.services.results import ErrorKind, OperationError
from support_desk.services.sync_controller import (
    TicketDetailView,
    TicketSyncController,
    can_submit_feedback,
)
from support_desk.services.ticket_query import compute_stats

router = APIRouter(prefix="/api/v1/tickets", tags=["tickets"])

ERROR_STATUS_CODES = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILURE: 422,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_SUBMITTED: status.HTTP_409_CONFLICT,
    ErrorKind.PRECONDITION_FAILED: status.HTTP_409_CONFLICT,
    ErrorKind.IN_FLIGHT: status.HTTP_409_CONFLICT,
    ErrorKind.STORE_WRITE_FAILURE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.TRANSPORT_FAILURE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.VIEW_CLOSED: status.HTTP_409_CONFLICT,
}


# Request/Response Models

class TicketResponse(CamelModel):
    """Ticket snapshot plus everything the dashboard needs to render it"""
    ticket: Ticket
    status_display: DisplayEntry
    priority_display: DisplayEntry
    email_notification_display: DisplayEntry
    created_relative: str = Field(..., description="Age of the ticket, e.g. \"3h ago\"")
    ai_response_pending: bool
    can_resolve: bool
    can_submit_feedback: bool
    message: Optional[str] = None


class TicketListResponse(CamelModel):
    tickets: List[TicketResponse]
    total: int
    pending_ai_responses: int


class CreateTicketRequest(CamelModel):
    """Raw form data; validated by the controller before any store call"""
    subject: str = ""
    description: str = ""
    priority: Priority = Priority.MEDIUM
    email: str = ""
    file_url: Optional[str] = None
    file_name: Optional[str] = None


class FeedbackRequest(CamelModel):
    rating: int = Field(..., description="Rating 1-5")
    comment: Optional[str] = None


def to_response(ticket: Ticket, message: Optional[str] = None) -> TicketResponse:
    return TicketResponse(
        ticket=ticket,
        status_display=status_display(ticket.status),
        priority_display=priority_display(ticket.priority),
        email_notification_display=email_status_display(ticket.email_notification_status),
        created_relative=format_relative_time(ticket.created_at),
        ai_response_pending=ticket.awaiting_ai_response,
        can_resolve=ticket.status == TicketStatus.IN_PROGRESS,
        can_submit_feedback=can_submit_feedback(ticket),
        message=message,
    )


def raise_for_error(error: OperationError) -> None:
    raise HTTPException(
        status_code=ERROR_STATUS_CODES.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={
            "kind": error.kind.value,
            "message": error.message,
            "retryable": error.retryable,
            "fieldErrors": error.field_errors,
        },
    )


async def _open_available(
    controller: TicketSyncController,
    ticket_id: str,
    acknowledge: bool = False
) -> TicketDetailView:
    view = await controller.open_ticket(ticket_id, acknowledge=acknowledge)
    if view.is_unavailable:
        raise_for_error(view.error)
    return view


# Endpoints

@router.get("", response_model=TicketListResponse)
async def list_tickets(
    status_filter: Optional[TicketStatus] = Query(None, alias="status"),
    priority: Optional[Priority] = None,
    search: Optional[str] = None,
    controller: TicketSyncController = Depends(get_controller)
):
    """
    List tickets newest first, optionally filtered
    """
    view = controller.open_list(TicketFilters(status=status_filter, priority=priority, search=search))
    result = await controller.load_tickets(view)
    if not result.success:
        raise_for_error(result.error)

    visible = view.visible_tickets
    view.close()
    return TicketListResponse(
        tickets=[to_response(t) for t in visible],
        total=len(visible),
        pending_ai_responses=sum(1 for t in visible if t.awaiting_ai_response),
    )


@router.post(
    "",
    response_model=TicketResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_ticket(
    request: CreateTicketRequest,
    controller: TicketSyncController = Depends(get_controller)
):
    """
    Submit a new support ticket
    """
    result = await controller.create_ticket(request.model_dump())
    if not result.success:
        raise_for_error(result.error)
    return to_response(result.data, message=result.message)


@router.get("/stats", response_model=TicketStats)
async def ticket_stats(controller: TicketSyncController = Depends(get_controller)):
    """
    Dashboard statistics over all tickets
    """
    view = controller.open_list()
    result = await controller.load_tickets(view)
    view.close()
    if not result.success:
        raise_for_error(result.error)
    return compute_stats(result.data)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: str,
    controller: TicketSyncController = Depends(get_controller)
):
    """
    Current state of one ticket, without side effects
    """
    view = await _open_available(controller, ticket_id)
    view.close()
    return to_response(view.ticket)


@router.post("/{ticket_id}/acknowledge", response_model=TicketResponse)
async def acknowledge_ticket(
    ticket_id: str,
    controller: TicketSyncController = Depends(get_controller)
):
    """
    Open a ticket for work: an open ticket moves to in progress
    """
    view = await _open_available(controller, ticket_id, acknowledge=True)
    await view.settle()
    view.close()
    if view.is_unavailable:
        raise_for_error(view.error)
    if view.write_error is not None:
        raise_for_error(view.write_error)
    return to_response(view.ticket)


@router.post("/{ticket_id}/resolve", response_model=TicketResponse)
async def resolve_ticket(
    ticket_id: str,
    controller: TicketSyncController = Depends(get_controller)
):
    """
    Resolve an in-progress ticket
    """
    view = await _open_available(controller, ticket_id)
    result = await controller.resolve(view)
    view.close()
    if not result.success:
        raise_for_error(result.error)
    if view.ticket is None:
        raise_for_error(view.error)
    return to_response(view.ticket, message=result.message)


@router.post("/{ticket_id}/feedback", response_model=TicketResponse)
async def submit_feedback(
    ticket_id: str,
    request: FeedbackRequest = Body(...),
    controller: TicketSyncController = Depends(get_controller)
):
    """
    Rate the AI response of a ticket (once)
    """
    view = await _open_available(controller, ticket_id)
    result = await controller.submit_feedback(view, request.rating, request.comment)
    view.close()
    if not result.success:
        raise_for_error(result.error)
    return to_response(view.ticket, message=result.message)
