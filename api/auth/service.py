"""
Auth business logic.

Identifies the caller and their organization. Role checks are left to
`dependencies.require_roles`; the ticket core never looks at roles.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from tickets.schemas import UserRole

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=str(user_row["id"]),
        org_id=str(user_row["org_id"]),
        email=str(user_row["email"]),
        role=UserRole(str(user_row["role"])),
        created_at=user_row["created_at"],
    )


async def login(payload: schemas.LoginRequest) -> schemas.LoginResponse:
    user_row = await repository.get_user_by_email(payload.email)
    if user_row is None:
        logger.info("login_failed reason=unknown_email")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    is_valid = security.verify_password(payload.password, str(user_row.get("password_hash") or ""))
    if not is_valid:
        logger.info("login_failed reason=bad_password user_id=%s", user_row["id"])
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    access_token = security.build_access_token(
        user_id=str(user_row["id"]),
        org_id=str(user_row["org_id"]),
        role=str(user_row["role"]),
    )
    return schemas.LoginResponse(user=_to_user_response(user_row), access_token=access_token)


async def _user_from_access_token(access_token: str) -> dict:
    try:
        payload = security.decode_access_token(access_token)
    except security.AuthSecurityError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token subject.",
        )

    user_row = await repository.get_user_by_id(subject)
    if user_row is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found.",
        )

    # A token minted for another org must not grant access to this one.
    if str(payload.get("org") or "") != str(user_row["org_id"]):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token organization mismatch.",
        )
    return user_row


async def get_principal_from_access_token(access_token: str) -> schemas.Principal:
    user_row = await _user_from_access_token(access_token)
    return schemas.Principal(
        user_id=str(user_row["id"]),
        org_id=str(user_row["org_id"]),
        role=UserRole(str(user_row["role"])),
    )


async def me(access_token: str) -> schemas.UserResponse:
    user_row = await _user_from_access_token(access_token)
    return _to_user_response(user_row)
