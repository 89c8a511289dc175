"""
Ticket and comment persistence.
This module is where ticket-related SQL lives.

Tables keep their Prisma names ("Ticket", "orgId", "createdAt", ...). Every
SELECT aliases columns to snake_case so the rest of the code never quotes
identifiers.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import uuid4

from core import db

TICKET_COLUMNS = """
  id,
  "orgId" AS org_id,
  "reporterId" AS reporter_id,
  "assigneeId" AS assignee_id,
  title,
  content,
  status::text AS status,
  priority::text AS priority,
  version,
  "createdAt" AS created_at,
  "updatedAt" AS updated_at
"""

COMMENT_COLUMNS = """
  id,
  "ticketId" AS ticket_id,
  "authorId" AS author_id,
  body,
  "createdAt" AS created_at
"""

# Patch keys accepted by update_ticket_if_version, mapped to their columns.
UPDATABLE_COLUMNS = {
    "status": "status",
    "priority": "priority",
    "assignee_id": '"assigneeId"',
    "title": "title",
    "content": "content",
}


def _keyset(descending: bool) -> tuple[str, str]:
    """
    Return (comparison operator, sort keyword) for a direction.
    """
    return ("<", "DESC") if descending else (">", "ASC")


async def list_tickets(
    *,
    org_id: str,
    limit: int,
    after: tuple[datetime, str] | None = None,
    descending: bool = True,
    status: str | None = None,
    priority: str | None = None,
    assignee_id: str | None = None,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    """
    Fetch up to `limit` tickets of one org strictly after `after` in
    `(createdAt, id)` order. Callers pass `page_size + 1` to detect a next page.
    """
    op, direction = _keyset(descending)
    args: list[Any] = [org_id]
    where = ['"orgId" = $1']

    if status is not None:
        args.append(status)
        where.append(f"status = ${len(args)}")
    if priority is not None:
        args.append(priority)
        where.append(f"priority = ${len(args)}")
    if assignee_id is not None:
        args.append(assignee_id)
        where.append(f'"assigneeId" = ${len(args)}')
    if after is not None:
        args.extend(after)
        where.append(f'("createdAt", id) {op} (${len(args) - 1}, ${len(args)})')

    args.append(limit)
    return await db.fetch_all(
        f"""
        SELECT {TICKET_COLUMNS}
        FROM "Ticket"
        WHERE {" AND ".join(where)}
        ORDER BY "createdAt" {direction}, id {direction}
        LIMIT ${len(args)}
        """,
        *args,
        timeout=timeout,
    )


async def get_ticket(ticket_id: str, *, org_id: str, timeout: float | None = None) -> dict[str, Any] | None:
    return await db.fetch_one(
        f"""
        SELECT {TICKET_COLUMNS}
        FROM "Ticket"
        WHERE id = $1
          AND "orgId" = $2
        """,
        ticket_id,
        org_id,
        timeout=timeout,
    )


async def update_ticket_if_version(
    ticket_id: str,
    *,
    org_id: str,
    expected_version: int,
    changes: dict[str, Any],
    timeout: float | None = None,
) -> dict[str, Any] | None:
    """
    Compare-and-set update in a single statement.

    Returns the updated row, or None when no row matched id + org + version.
    The caller tells "missing" from "stale" with a follow-up read.
    """
    if not changes:
        raise RuntimeError("update_ticket_if_version called with no changes.")

    args: list[Any] = [ticket_id, org_id, expected_version]
    assignments = []
    for key, value in changes.items():
        column = UPDATABLE_COLUMNS[key]
        args.append(value)
        assignments.append(f"{column} = ${len(args)}")

    return await db.fetch_one(
        f"""
        UPDATE "Ticket"
        SET {", ".join(assignments)},
            version = version + 1,
            "updatedAt" = CURRENT_TIMESTAMP
        WHERE id = $1
          AND "orgId" = $2
          AND version = $3
        RETURNING {TICKET_COLUMNS}
        """,
        *args,
        timeout=timeout,
    )


async def user_belongs_to_org(user_id: str, *, org_id: str, timeout: float | None = None) -> bool:
    row = await db.fetch_one(
        """
        SELECT 1 AS ok
        FROM "User"
        WHERE id = $1
          AND "orgId" = $2
        LIMIT 1
        """,
        user_id,
        org_id,
        timeout=timeout,
    )
    return row is not None


async def insert_ticket(
    *,
    org_id: str,
    reporter_id: str,
    title: str,
    content: str | None,
    status: str,
    priority: str,
    assignee_id: str | None = None,
    timeout: float | None = None,
) -> dict[str, Any]:
    row = await db.fetch_one(
        f"""
        INSERT INTO "Ticket" (
          id, "orgId", "reporterId", "assigneeId", title, content,
          status, priority, version, "createdAt", "updatedAt"
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 1, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
        RETURNING {TICKET_COLUMNS}
        """,
        str(uuid4()),
        org_id,
        reporter_id,
        assignee_id,
        title,
        content,
        status,
        priority,
        timeout=timeout,
    )
    if row is None:
        raise RuntimeError("Failed to insert ticket.")
    return row


async def list_comments(
    ticket_id: str,
    *,
    org_id: str,
    limit: int,
    after: tuple[datetime, str] | None = None,
    descending: bool = False,
    timeout: float | None = None,
) -> list[dict[str, Any]]:
    op, direction = _keyset(descending)
    args: list[Any] = [ticket_id, org_id]
    where = ['c."ticketId" = $1', 't."orgId" = $2']
    if after is not None:
        args.extend(after)
        where.append(f'(c."createdAt", c.id) {op} ($3, $4)')

    args.append(limit)
    return await db.fetch_all(
        f"""
        SELECT
          c.id,
          c."ticketId" AS ticket_id,
          c."authorId" AS author_id,
          c.body,
          c."createdAt" AS created_at
        FROM "Comment" c
        JOIN "Ticket" t ON t.id = c."ticketId"
        WHERE {" AND ".join(where)}
        ORDER BY c."createdAt" {direction}, c.id {direction}
        LIMIT ${len(args)}
        """,
        *args,
        timeout=timeout,
    )


async def insert_comment(
    *,
    ticket_id: str,
    org_id: str,
    author_id: str,
    body: str,
    timeout: float | None = None,
) -> dict[str, Any] | None:
    """
    Insert a comment only if the ticket belongs to `org_id`.
    Returns None when it does not.
    """
    return await db.fetch_one(
        f"""
        INSERT INTO "Comment" (id, "ticketId", "authorId", body, "createdAt")
        SELECT $1, t.id, $3, $4, CURRENT_TIMESTAMP
        FROM "Ticket" t
        WHERE t.id = $2
          AND t."orgId" = $5
        RETURNING {COMMENT_COLUMNS}
        """,
        str(uuid4()),
        ticket_id,
        author_id,
        body,
        org_id,
        timeout=timeout,
    )
