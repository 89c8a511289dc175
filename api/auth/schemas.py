"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, Field

from tickets.schemas import UserRole


@dataclass(frozen=True)
class Principal:
    """
    The authenticated caller as the request layer sees it.
    """

    user_id: str
    org_id: str
    role: UserRole


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class UserResponse(BaseModel):
    id: str
    org_id: str
    email: str
    role: UserRole
    created_at: datetime


class LoginResponse(BaseModel):
    user: UserResponse
    access_token: str
    token_type: str = "bearer"
