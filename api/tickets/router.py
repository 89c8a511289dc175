"""
FastAPI router for ticket endpoints.

The caller's org comes from the access token and is handed to the service
on every call.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from auth import dependencies as auth_dependencies
from auth.schemas import Principal
from core import settings

from . import schemas, service

router = APIRouter()


@router.get("/tickets", response_model=schemas.TicketPage)
async def list_tickets(
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    priority: str | None = Query(default=None),
    assignee_id: str | None = Query(default=None),
    order: str = Query(default="desc"),
    principal: Principal = Depends(auth_dependencies.get_current_principal),
) -> schemas.TicketPage:
    """
    List the caller's org tickets, newest first by default.
    Follow `next_cursor` with the same filters to get the next page.
    """
    return await service.list_tickets(
        principal.org_id,
        limit=limit,
        cursor=cursor,
        status=status_filter,
        priority=priority,
        assignee_id=assignee_id,
        order=order,
        timeout=settings.store_timeout_s(),
    )


@router.post("/tickets", response_model=schemas.Ticket, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    request: schemas.CreateTicketRequest,
    principal: Principal = Depends(auth_dependencies.get_current_principal),
) -> schemas.Ticket:
    return await service.create_ticket(
        principal.org_id,
        reporter_id=principal.user_id,
        title=request.title,
        content=request.content,
        priority=request.priority.value,
        assignee_id=request.assignee_id,
        timeout=settings.store_timeout_s(),
    )


@router.get("/tickets/{ticket_id}", response_model=schemas.Ticket)
async def get_ticket(
    ticket_id: str,
    principal: Principal = Depends(auth_dependencies.get_current_principal),
) -> schemas.Ticket:
    ticket = await service.get_ticket(ticket_id, principal.org_id, timeout=settings.store_timeout_s())
    if ticket is None:
        raise HTTPException(status_code=404, detail="Ticket not found.")
    return ticket


@router.patch(
    "/tickets/{ticket_id}",
    response_model=schemas.Ticket,
    responses={409: {"model": schemas.VersionConflictResponse}},
)
async def update_ticket(
    ticket_id: str,
    request: schemas.UpdateTicketRequest,
    principal: Principal = Depends(auth_dependencies.get_current_principal),
):
    """
    Update a ticket if `expected_version` is still current.

    409 returns the current ticket so the client can re-apply its change
    on top of it and retry with the new version.
    """
    outcome = await service.update_ticket(
        ticket_id,
        principal.org_id,
        request.expected_version,
        request.patch(),
        timeout=settings.store_timeout_s(),
    )
    if isinstance(outcome, service.NotFound):
        raise HTTPException(status_code=404, detail="Ticket not found.")
    if isinstance(outcome, service.VersionConflict):
        body = schemas.VersionConflictResponse(
            detail="Ticket was modified by someone else.",
            current=outcome.current,
        )
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump(mode="json"))
    return outcome.ticket


@router.get("/tickets/{ticket_id}/comments", response_model=schemas.CommentPage)
async def list_comments(
    ticket_id: str,
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    order: str = Query(default="asc"),
    principal: Principal = Depends(auth_dependencies.get_current_principal),
) -> schemas.CommentPage:
    page = await service.list_comments(
        ticket_id,
        principal.org_id,
        limit=limit,
        cursor=cursor,
        order=order,
        timeout=settings.store_timeout_s(),
    )
    if page is None:
        raise HTTPException(status_code=404, detail="Ticket not found.")
    return page


@router.post(
    "/tickets/{ticket_id}/comments",
    response_model=schemas.Comment,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    ticket_id: str,
    request: schemas.CreateCommentRequest,
    principal: Principal = Depends(auth_dependencies.get_current_principal),
) -> schemas.Comment:
    comment = await service.add_comment(
        ticket_id,
        principal.org_id,
        author_id=principal.user_id,
        body=request.body,
        timeout=settings.store_timeout_s(),
    )
    if comment is None:
        raise HTTPException(status_code=404, detail="Ticket not found.")
    return comment
