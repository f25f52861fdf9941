"""Pydantic schemas for end-user registration, login and profile."""

import uuid
from typing import Any, Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    client_id: str
    method_type: str = "password"
    identifier: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    profile: dict[str, Any] = Field(default_factory=dict)


class RegisteredRead(BaseModel):
    identity_id: uuid.UUID
    account_id: uuid.UUID
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginRequest(BaseModel):
    client_id: str
    identifier: str
    password: str


class AccountRead(BaseModel):
    account_id: uuid.UUID
    project_id: uuid.UUID
    profile: Optional[dict[str, Any]] = None


class MeRead(BaseModel):
    identity_id: uuid.UUID
    identifier: str
    accounts: list[AccountRead]
