"""
Ticket business logic.

This file is independent of FastAPI's routing layer. Every operation takes
`org_id` explicitly and scopes all reads and writes to it.

Update flow (optimistic concurrency):
1) Validate the patch (no store access for malformed input)
2) Validate the assignee against the org
3) One conditional UPDATE on id + org + version
4) On no match, re-read to tell NotFound from VersionConflict
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Union

from core.errors import InvalidInput

from . import pagination, repository, schemas
from .cursor import COMMENTS, TICKETS

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset(repository.UPDATABLE_COLUMNS)
_STATUS_VALUES = {s.value for s in schemas.TicketStatus}
_PRIORITY_VALUES = {p.value for p in schemas.TicketPriority}


@dataclass(frozen=True)
class Updated:
    ticket: schemas.Ticket


@dataclass(frozen=True)
class NotFound:
    ticket_id: str


@dataclass(frozen=True)
class VersionConflict:
    current: schemas.Ticket


UpdateOutcome = Union[Updated, NotFound, VersionConflict]


def _require_id(value: str | None, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{name} is required.")
    return value.strip()


def _enum_value(value: Any, allowed: set[str], name: str) -> str:
    if isinstance(value, (schemas.TicketStatus, schemas.TicketPriority)):
        value = value.value
    if not isinstance(value, str) or value not in allowed:
        raise InvalidInput(f"Invalid {name} {value!r}. Allowed: {sorted(allowed)}")
    return value


def _optional_enum(value: Any, allowed: set[str], name: str) -> str | None:
    if value is None:
        return None
    return _enum_value(value, allowed, name)


def _to_ticket(row: dict) -> schemas.Ticket:
    return schemas.Ticket(**row)


def _to_comment(row: dict) -> schemas.Comment:
    return schemas.Comment(**row)


async def list_tickets(
    org_id: str,
    *,
    limit: int | None = None,
    cursor: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    assignee_id: str | None = None,
    order: str | None = None,
    timeout: float | None = None,
) -> schemas.TicketPage:
    """
    Return one page of an org's tickets ordered by (created_at, id).

    The cursor only says where to resume; org and filters are applied again
    on every page.
    """
    org_id = _require_id(org_id, "org_id")
    page_size = pagination.resolve_limit(limit)
    descending = pagination.resolve_direction(order)
    position = pagination.resolve_cursor(cursor, descending=descending, kind=TICKETS)
    status = _optional_enum(status, _STATUS_VALUES, "status")
    priority = _optional_enum(priority, _PRIORITY_VALUES, "priority")
    if assignee_id is not None:
        assignee_id = _require_id(assignee_id, "assignee_id")

    rows = await repository.list_tickets(
        org_id=org_id,
        limit=page_size + 1,
        after=(position.created_at, position.id) if position else None,
        descending=descending,
        status=status,
        priority=priority,
        assignee_id=assignee_id,
        timeout=timeout,
    )
    window = pagination.build_page(rows, limit=page_size, descending=descending, kind=TICKETS)
    return schemas.TicketPage(
        data=[_to_ticket(r) for r in window.rows],
        has_more=window.has_more,
        next_cursor=window.next_cursor,
    )


async def get_ticket(ticket_id: str, org_id: str, *, timeout: float | None = None) -> schemas.Ticket | None:
    ticket_id = _require_id(ticket_id, "ticket_id")
    org_id = _require_id(org_id, "org_id")
    row = await repository.get_ticket(ticket_id, org_id=org_id, timeout=timeout)
    return _to_ticket(row) if row is not None else None


def validate_patch(patch: dict[str, Any] | None) -> dict[str, Any]:
    """
    Normalize a ticket patch into column-ready values.
    """
    if not patch:
        raise InvalidInput("Patch is empty. Provide at least one field to change.")

    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise InvalidInput(f"Unknown patch fields: {sorted(unknown)}")

    changes: dict[str, Any] = {}
    for key, value in patch.items():
        if key == "status":
            changes[key] = _enum_value(value, _STATUS_VALUES, "status")
        elif key == "priority":
            changes[key] = _enum_value(value, _PRIORITY_VALUES, "priority")
        elif key == "title":
            if not isinstance(value, str) or not value.strip():
                raise InvalidInput("title must be a non-empty string.")
            changes[key] = value.strip()
        elif key == "content":
            if value is not None and not isinstance(value, str):
                raise InvalidInput("content must be a string or null.")
            changes[key] = value
        elif key == "assignee_id":
            changes[key] = None if value is None else _require_id(value, "assignee_id")
    return changes


async def update_ticket(
    ticket_id: str,
    org_id: str,
    expected_version: int,
    patch: dict[str, Any] | None,
    *,
    timeout: float | None = None,
) -> UpdateOutcome:
    """
    Apply `patch` only if the ticket is still at `expected_version`.

    Never retries. A stale version comes back as VersionConflict carrying the
    current row so the caller can merge and try again.
    """
    ticket_id = _require_id(ticket_id, "ticket_id")
    org_id = _require_id(org_id, "org_id")
    if isinstance(expected_version, bool) or not isinstance(expected_version, int) or expected_version < 1:
        raise InvalidInput("expected_version must be a positive integer.")
    changes = validate_patch(patch)

    assignee_id = changes.get("assignee_id")
    if assignee_id is not None:
        if not await repository.user_belongs_to_org(assignee_id, org_id=org_id, timeout=timeout):
            raise InvalidInput("Assignee does not belong to this organization.")

    row = await repository.update_ticket_if_version(
        ticket_id,
        org_id=org_id,
        expected_version=expected_version,
        changes=changes,
        timeout=timeout,
    )
    if row is not None:
        logger.info(
            "ticket_updated ticket_id=%s org_id=%s version=%s fields=%s",
            ticket_id,
            org_id,
            row["version"],
            ",".join(sorted(changes)),
        )
        return Updated(ticket=_to_ticket(row))

    current = await repository.get_ticket(ticket_id, org_id=org_id, timeout=timeout)
    if current is None:
        logger.info("ticket_update_not_found ticket_id=%s org_id=%s", ticket_id, org_id)
        return NotFound(ticket_id=ticket_id)

    logger.info(
        "ticket_version_conflict ticket_id=%s org_id=%s expected=%s current=%s",
        ticket_id,
        org_id,
        expected_version,
        current["version"],
    )
    return VersionConflict(current=_to_ticket(current))


async def create_ticket(
    org_id: str,
    *,
    reporter_id: str,
    title: str,
    content: str | None = None,
    priority: str = schemas.TicketPriority.MEDIUM.value,
    assignee_id: str | None = None,
    timeout: float | None = None,
) -> schemas.Ticket:
    org_id = _require_id(org_id, "org_id")
    reporter_id = _require_id(reporter_id, "reporter_id")
    if not isinstance(title, str) or not title.strip():
        raise InvalidInput("title must be a non-empty string.")
    priority = _enum_value(priority, _PRIORITY_VALUES, "priority")

    if not await repository.user_belongs_to_org(reporter_id, org_id=org_id, timeout=timeout):
        raise InvalidInput("Reporter does not belong to this organization.")
    if assignee_id is not None:
        assignee_id = _require_id(assignee_id, "assignee_id")
        if not await repository.user_belongs_to_org(assignee_id, org_id=org_id, timeout=timeout):
            raise InvalidInput("Assignee does not belong to this organization.")

    row = await repository.insert_ticket(
        org_id=org_id,
        reporter_id=reporter_id,
        title=title.strip(),
        content=content,
        status=schemas.TicketStatus.OPEN.value,
        priority=priority,
        assignee_id=assignee_id,
        timeout=timeout,
    )
    logger.info("ticket_created ticket_id=%s org_id=%s reporter_id=%s", row["id"], org_id, reporter_id)
    return _to_ticket(row)


async def add_comment(
    ticket_id: str,
    org_id: str,
    *,
    author_id: str,
    body: str,
    timeout: float | None = None,
) -> schemas.Comment | None:
    """
    Returns None when the ticket is not visible to `org_id`.
    """
    ticket_id = _require_id(ticket_id, "ticket_id")
    org_id = _require_id(org_id, "org_id")
    author_id = _require_id(author_id, "author_id")
    if not isinstance(body, str) or not body.strip():
        raise InvalidInput("Comment body must be a non-empty string.")

    if not await repository.user_belongs_to_org(author_id, org_id=org_id, timeout=timeout):
        raise InvalidInput("Author does not belong to this organization.")

    row = await repository.insert_comment(
        ticket_id=ticket_id,
        org_id=org_id,
        author_id=author_id,
        body=body,
        timeout=timeout,
    )
    if row is None:
        return None
    logger.info("comment_added comment_id=%s ticket_id=%s author_id=%s", row["id"], ticket_id, author_id)
    return _to_comment(row)


async def list_comments(
    ticket_id: str,
    org_id: str,
    *,
    limit: int | None = None,
    cursor: str | None = None,
    order: str | None = None,
    timeout: float | None = None,
) -> schemas.CommentPage | None:
    """
    Page through a ticket's comments, oldest first unless `order="desc"`.
    Returns None when the ticket is not visible to `org_id`.
    """
    ticket_id = _require_id(ticket_id, "ticket_id")
    org_id = _require_id(org_id, "org_id")
    page_size = pagination.resolve_limit(limit)
    descending = pagination.resolve_direction(order, default="asc")
    position = pagination.resolve_cursor(cursor, descending=descending, kind=COMMENTS)

    if await repository.get_ticket(ticket_id, org_id=org_id, timeout=timeout) is None:
        return None

    rows = await repository.list_comments(
        ticket_id,
        org_id=org_id,
        limit=page_size + 1,
        after=(position.created_at, position.id) if position else None,
        descending=descending,
        timeout=timeout,
    )
    window = pagination.build_page(rows, limit=page_size, descending=descending, kind=COMMENTS)
    return schemas.CommentPage(
        data=[_to_comment(r) for r in window.rows],
        has_more=window.has_more,
        next_cursor=window.next_cursor,
    )
