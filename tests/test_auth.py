import jwt
import pytest
from fastapi import Depends, FastAPI
import httpx

from auth import dependencies, security
from auth.schemas import Principal
from conftest import ORG_A, ORG_B, auth_headers, bcrypt_hash
from tickets.schemas import UserRole


def test_password_hash_round_trip():
    hashed = bcrypt_hash("correct horse")
    assert hashed != "correct horse"
    assert security.verify_password("correct horse", hashed)
    assert not security.verify_password("wrong horse", hashed)


def test_verify_password_tolerates_garbage_hash():
    assert security.verify_password("pw", "not-a-bcrypt-hash") is False
    assert security.verify_password("", "") is False


def test_access_token_carries_org_and_role():
    token = security.build_access_token(user_id="alice", org_id=ORG_A, role="customer")
    payload = security.decode_access_token(token)
    assert payload["sub"] == "alice"
    assert payload["org"] == ORG_A
    assert payload["role"] == "customer"


def test_expired_access_token_is_rejected(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MIN", "-1")
    token = security.build_access_token(user_id="alice", org_id=ORG_A, role="customer")
    with pytest.raises(security.AuthSecurityError):
        security.decode_access_token(token)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_then_me(self, client, store):
        store.users["alice"]["password_hash"] = bcrypt_hash("s3cret-pass")

        response = await client.post(
            "/auth/login", json={"email": "ALICE@example.com", "password": "s3cret-pass"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["user"]["org_id"] == ORG_A
        assert body["token_type"] == "bearer"

        me = await client.get(
            "/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"}
        )
        assert me.status_code == 200
        assert me.json()["id"] == "alice"
        assert me.json()["role"] == "customer"

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, client, store):
        store.users["alice"]["password_hash"] = bcrypt_hash("s3cret-pass")

        response = await client.post("/auth/login", json={"email": "alice@example.com", "password": "nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_email_is_401(self, client, store):
        response = await client.post("/auth/login", json={"email": "who@example.com", "password": "x"})
        assert response.status_code == 401


class TestPrincipal:
    @pytest.mark.asyncio
    async def test_token_for_wrong_org_is_401(self, client, store):
        token = security.build_access_token(user_id="alice", org_id=ORG_B, role="customer")

        response = await client.get("/tickets", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_unknown_user_is_401(self, client, store):
        token = security.build_access_token(user_id="ghost", org_id=ORG_A, role="admin")

        response = await client.get("/tickets", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_foreign_signed_token_is_401(self, client, store):
        token = jwt.encode({"sub": "alice", "org": ORG_A, "type": "access"}, "other", algorithm="HS256")

        response = await client.get("/tickets", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", ["Bearer", "Basic abc", "token-only"])
    async def test_malformed_header_is_401(self, client, store, header):
        response = await client.get("/tickets", headers={"Authorization": header})
        assert response.status_code == 401


class TestRequireRoles:
    @pytest.fixture
    def role_app(self):
        app = FastAPI()

        @app.get("/agents-only")
        async def agents_only(
            principal: Principal = Depends(dependencies.require_roles(UserRole.AGENT, UserRole.ADMIN)),
        ) -> dict:
            return {"user_id": principal.user_id}

        return app

    async def _get(self, app, headers):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            return await ac.get("/agents-only", headers=headers)

    @pytest.mark.asyncio
    async def test_agent_allowed(self, store, role_app):
        response = await self._get(role_app, auth_headers(store, "bob"))
        assert response.status_code == 200
        assert response.json() == {"user_id": "bob"}

    @pytest.mark.asyncio
    async def test_customer_forbidden(self, store, role_app):
        response = await self._get(role_app, auth_headers(store, "alice"))
        assert response.status_code == 403
