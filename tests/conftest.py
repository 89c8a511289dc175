"""
Shared fixtures.

`FakeStore` stands in for the Postgres-backed repository functions. It keeps
the semantics the services rely on: org scoping, `(created_at, id)` keyset
ordering, and a compare-and-set update that cannot interleave with another.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any

import bcrypt
import httpx
import pytest
import pytest_asyncio

from auth import repository as auth_repository
from auth import security
from tickets import repository as ticket_repository

BASE_TIME = datetime(2025, 8, 3, 18, 38, 48)

ORG_A = "org-acme"
ORG_B = "org-globex"


class FakeStore:
    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.tickets: dict[str, dict[str, Any]] = {}
        self.comments: dict[str, dict[str, Any]] = {}
        self.update_attempts = 0
        self._clock = BASE_TIME
        self._seq = 0

    def now(self) -> datetime:
        self._clock += timedelta(milliseconds=1)
        return self._clock

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq:04d}"

    def add_user(
        self,
        user_id: str,
        org_id: str,
        *,
        role: str = "customer",
        email: str | None = None,
        password_hash: str = "",
    ) -> dict[str, Any]:
        row = {
            "id": user_id,
            "org_id": org_id,
            "email": email or f"{user_id}@example.com",
            "role": role,
            "password_hash": password_hash,
            "created_at": BASE_TIME,
        }
        self.users[user_id] = row
        return row

    def add_ticket(
        self,
        ticket_id: str,
        org_id: str,
        reporter_id: str,
        *,
        created_at: datetime | None = None,
        status: str = "open",
        priority: str = "medium",
        assignee_id: str | None = None,
        version: int = 1,
    ) -> dict[str, Any]:
        created = created_at or self.now()
        row = {
            "id": ticket_id,
            "org_id": org_id,
            "reporter_id": reporter_id,
            "assignee_id": assignee_id,
            "title": f"Ticket {ticket_id}",
            "content": None,
            "status": status,
            "priority": priority,
            "version": version,
            "created_at": created,
            "updated_at": created,
        }
        self.tickets[ticket_id] = row
        return row

    def add_comment(self, comment_id: str, ticket_id: str, author_id: str, *, body: str = "hi") -> dict[str, Any]:
        row = {
            "id": comment_id,
            "ticket_id": ticket_id,
            "author_id": author_id,
            "body": body,
            "created_at": self.now(),
        }
        self.comments[comment_id] = row
        return row

    # tickets.repository

    async def list_tickets(
        self,
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
        rows = [
            t
            for t in self.tickets.values()
            if t["org_id"] == org_id
            and (status is None or t["status"] == status)
            and (priority is None or t["priority"] == priority)
            and (assignee_id is None or t["assignee_id"] == assignee_id)
        ]
        rows.sort(key=lambda t: (t["created_at"], t["id"]), reverse=descending)
        if after is not None:
            if descending:
                rows = [t for t in rows if (t["created_at"], t["id"]) < after]
            else:
                rows = [t for t in rows if (t["created_at"], t["id"]) > after]
        return [dict(t) for t in rows[:limit]]

    async def get_ticket(self, ticket_id: str, *, org_id: str, timeout: float | None = None) -> dict[str, Any] | None:
        row = self.tickets.get(ticket_id)
        if row is None or row["org_id"] != org_id:
            return None
        return dict(row)

    async def update_ticket_if_version(
        self,
        ticket_id: str,
        *,
        org_id: str,
        expected_version: int,
        changes: dict[str, Any],
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        self.update_attempts += 1
        # Let other tasks run up to the statement, then apply it in one step.
        await asyncio.sleep(0)
        row = self.tickets.get(ticket_id)
        if row is None or row["org_id"] != org_id or row["version"] != expected_version:
            return None
        row.update(changes)
        row["version"] += 1
        row["updated_at"] = self.now()
        return dict(row)

    async def user_belongs_to_org(self, user_id: str, *, org_id: str, timeout: float | None = None) -> bool:
        user = self.users.get(user_id)
        return user is not None and user["org_id"] == org_id

    async def insert_ticket(self, **kwargs: Any) -> dict[str, Any]:
        kwargs.pop("timeout", None)
        row = self.add_ticket(
            self._next_id("tkt"),
            kwargs["org_id"],
            kwargs["reporter_id"],
            status=kwargs["status"],
            priority=kwargs["priority"],
            assignee_id=kwargs.get("assignee_id"),
        )
        row["title"] = kwargs["title"]
        row["content"] = kwargs.get("content")
        return dict(row)

    async def list_comments(
        self,
        ticket_id: str,
        *,
        org_id: str,
        limit: int,
        after: tuple[datetime, str] | None = None,
        descending: bool = False,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        ticket = self.tickets.get(ticket_id)
        if ticket is None or ticket["org_id"] != org_id:
            return []
        rows = [c for c in self.comments.values() if c["ticket_id"] == ticket_id]
        rows.sort(key=lambda c: (c["created_at"], c["id"]), reverse=descending)
        if after is not None:
            if descending:
                rows = [c for c in rows if (c["created_at"], c["id"]) < after]
            else:
                rows = [c for c in rows if (c["created_at"], c["id"]) > after]
        return [dict(c) for c in rows[:limit]]

    async def insert_comment(
        self,
        *,
        ticket_id: str,
        org_id: str,
        author_id: str,
        body: str,
        timeout: float | None = None,
    ) -> dict[str, Any] | None:
        ticket = self.tickets.get(ticket_id)
        if ticket is None or ticket["org_id"] != org_id:
            return None
        return dict(self.add_comment(self._next_id("cmt"), ticket_id, author_id, body=body))

    # auth.repository

    async def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        wanted = auth_repository.normalize_email(email)
        for user in self.users.values():
            if user["email"].lower() == wanted:
                return dict(user)
        return None

    async def get_user_by_id(self, user_id: str) -> dict[str, Any] | None:
        user = self.users.get(user_id)
        return dict(user) if user is not None else None


@pytest.fixture(autouse=True)
def _env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "test-jwt-secret")
    monkeypatch.setenv("CURSOR_SECRET", "test-cursor-secret")
    monkeypatch.delenv("PAGE_SIZE_DEFAULT", raising=False)
    monkeypatch.delenv("PAGE_SIZE_MAX", raising=False)


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> FakeStore:
    fake = FakeStore()
    fake.add_user("alice", ORG_A, role="customer")
    fake.add_user("bob", ORG_A, role="agent")
    fake.add_user("mallory", ORG_B, role="agent")

    for name in (
        "list_tickets",
        "get_ticket",
        "update_ticket_if_version",
        "user_belongs_to_org",
        "insert_ticket",
        "list_comments",
        "insert_comment",
    ):
        monkeypatch.setattr(ticket_repository, name, getattr(fake, name))
    monkeypatch.setattr(auth_repository, "get_user_by_email", fake.get_user_by_email)
    monkeypatch.setattr(auth_repository, "get_user_by_id", fake.get_user_by_id)
    return fake


def bcrypt_hash(plain_password: str) -> str:
    """
    Users are provisioned outside the API; tests hash passwords the same way.
    """
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


def auth_headers(store: FakeStore, user_id: str) -> dict[str, str]:
    user = store.users[user_id]
    token = security.build_access_token(user_id=user_id, org_id=user["org_id"], role=user["role"])
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def client(store: FakeStore):
    from main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
