"""
Auth persistence helpers.

Users are provisioned elsewhere; this module only reads them.
"""

from __future__ import annotations

from core import db

USER_COLUMNS = """
  id,
  "orgId" AS org_id,
  email,
  role::text AS role,
  password AS password_hash,
  "createdAt" AS created_at
"""


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def get_user_by_email(email: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM "User"
        WHERE lower(email) = lower($1)
        """,
        normalize_email(email),
    )


async def get_user_by_id(user_id: str) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {USER_COLUMNS}
        FROM "User"
        WHERE id = $1
        """,
        user_id,
    )
