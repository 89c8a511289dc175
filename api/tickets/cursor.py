"""
Opaque pagination cursors.

A cursor carries the `(created_at, id)` of the last row a client saw, the
sort direction it was issued for, and which listing issued it. It is signed
so clients cannot build one by hand, but it holds no authorization data: the
org and filters are re-applied on every page.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import jwt

from core import settings
from core.errors import InvalidInput

CURSOR_TOKEN_TYPE = "cursor"
TICKETS = "tickets"
COMMENTS = "comments"
# Signing algorithm is fixed; JWT_ALG only governs access tokens.
CURSOR_ALGORITHM = "HS256"


@dataclass(frozen=True)
class CursorPosition:
    created_at: datetime
    id: str
    descending: bool = True
    kind: str = TICKETS


def encode_cursor(position: CursorPosition) -> str:
    payload = {
        "type": CURSOR_TOKEN_TYPE,
        "c": position.created_at.isoformat(),
        "i": position.id,
        "d": "desc" if position.descending else "asc",
        "k": position.kind,
    }
    return jwt.encode(payload, settings.cursor_secret(), algorithm=CURSOR_ALGORITHM)


def decode_cursor(token: str) -> CursorPosition:
    raw = (token or "").strip()
    if not raw:
        raise InvalidInput("Cursor is empty.")

    try:
        payload: dict[str, Any] = jwt.decode(raw, settings.cursor_secret(), algorithms=[CURSOR_ALGORITHM])
    except jwt.InvalidTokenError as exc:
        raise InvalidInput("Malformed cursor.") from exc

    if payload.get("type") != CURSOR_TOKEN_TYPE:
        raise InvalidInput("Malformed cursor.")

    created_at = payload.get("c")
    row_id = payload.get("i")
    direction = payload.get("d")
    kind = payload.get("k")
    if not isinstance(created_at, str) or not isinstance(row_id, str) or not row_id:
        raise InvalidInput("Malformed cursor.")
    if direction not in ("asc", "desc"):
        raise InvalidInput("Malformed cursor.")
    if kind not in (TICKETS, COMMENTS):
        raise InvalidInput("Malformed cursor.")

    try:
        parsed = datetime.fromisoformat(created_at)
    except ValueError as exc:
        raise InvalidInput("Malformed cursor.") from exc

    return CursorPosition(created_at=parsed, id=row_id, descending=direction == "desc", kind=kind)
