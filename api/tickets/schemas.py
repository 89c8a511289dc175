"""
Ticket API schemas (domain values, request and response models).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class UserRole(str, Enum):
    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"


class Ticket(BaseModel):
    id: str
    org_id: str
    reporter_id: str
    assignee_id: str | None = None
    title: str
    content: str | None = None
    status: TicketStatus
    priority: TicketPriority
    version: int
    created_at: datetime
    updated_at: datetime


class TicketPage(BaseModel):
    data: list[Ticket]
    has_more: bool
    next_cursor: str | None = None


class Comment(BaseModel):
    id: str
    ticket_id: str
    author_id: str
    body: str
    created_at: datetime


class CommentPage(BaseModel):
    data: list[Comment]
    has_more: bool
    next_cursor: str | None = None


class CreateTicketRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str | None = Field(default=None, max_length=20000)
    priority: TicketPriority = TicketPriority.MEDIUM
    assignee_id: str | None = Field(default=None, min_length=1)


class UpdateTicketRequest(BaseModel):
    """
    Only the fields the client actually sends become part of the patch, so
    `{"assignee_id": null}` unassigns while omitting it leaves it alone.
    """

    expected_version: int = Field(..., ge=1)
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assignee_id: str | None = None
    title: str | None = Field(default=None, max_length=500)
    content: str | None = Field(default=None, max_length=20000)

    def patch(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True, exclude={"expected_version"})


class CreateCommentRequest(BaseModel):
    body: str = Field(..., min_length=1, max_length=20000)


class VersionConflictResponse(BaseModel):
    detail: str
    current: Ticket
