"""
Keyset pagination helpers shared by ticket and comment listings.

Rows are ordered by `(created_at, id)`; the next page starts strictly after
the last row returned, never at a row offset.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core import settings
from core.errors import InvalidInput

from .cursor import CursorPosition, decode_cursor, encode_cursor


@dataclass(frozen=True)
class PageWindow:
    rows: list[dict[str, Any]]
    has_more: bool
    next_cursor: str | None


def resolve_limit(limit: int | None) -> int:
    if limit is None:
        return min(settings.page_size_default(), settings.page_size_max())
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidInput("limit must be an integer.")
    if limit <= 0:
        raise InvalidInput("limit must be > 0.")
    return min(limit, settings.page_size_max())


def resolve_direction(order: str | None, *, default: str = "desc") -> bool:
    """
    Return True for newest-first.
    """
    value = (order or default).strip().lower()
    if value == "desc":
        return True
    if value == "asc":
        return False
    raise InvalidInput("order must be 'asc' or 'desc'.")


def resolve_cursor(cursor: str | None, *, descending: bool, kind: str) -> CursorPosition | None:
    if cursor is None:
        return None
    position = decode_cursor(cursor)
    if position.kind != kind:
        raise InvalidInput("Cursor was issued by a different listing.")
    if position.descending != descending:
        raise InvalidInput("Cursor was issued for the opposite sort order.")
    return position


def build_page(rows: list[dict[str, Any]], *, limit: int, descending: bool, kind: str) -> PageWindow:
    """
    `rows` is the result of a `LIMIT limit + 1` query; the extra row only
    tells us whether another page exists.
    """
    has_more = len(rows) > limit
    kept = rows[:limit]
    next_cursor = None
    if has_more:
        tail = kept[-1]
        next_cursor = encode_cursor(
            CursorPosition(
                created_at=tail["created_at"],
                id=str(tail["id"]),
                descending=descending,
                kind=kind,
            )
        )
    return PageWindow(rows=kept, has_more=has_more, next_cursor=next_cursor)
