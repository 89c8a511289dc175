"""
Auth dependencies for protected FastAPI routes.
"""

from __future__ import annotations

from typing import Awaitable, Callable

from fastapi import Depends, Header, HTTPException, status

from tickets.schemas import UserRole

from . import schemas, service


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header.",
        )

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format.",
        )

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization must be: Bearer <token>.",
        )
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    return _extract_bearer_token(authorization)


async def get_current_principal(access_token: str = Depends(get_bearer_token)) -> schemas.Principal:
    return await service.get_principal_from_access_token(access_token)


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[schemas.Principal]]:
    """
    Capability check for routes that need one. Usage:

        principal: Principal = Depends(require_roles(UserRole.AGENT, UserRole.ADMIN))
    """
    allowed = frozenset(roles)

    async def _check(principal: schemas.Principal = Depends(get_current_principal)) -> schemas.Principal:
        if principal.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role.",
            )
        return principal

    return _check
