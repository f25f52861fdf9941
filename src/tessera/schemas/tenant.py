"""Pydantic schemas for admins, organizations, projects, applications and scopes.

Learn: Pydantic v2 models validate request/response data. Separate
"Create" schemas (input) from "Read" schemas (output) for clean APIs.
Identifier fields arrive as plain strings and are parsed by the
service layer, so a wrong-version id gets its own error code instead
of a generic 422.
"""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, Field, StringConstraints


# ─── Admins ─────────────────────────────────────────────

class AdminRegister(BaseModel):
    username: str = Field(..., min_length=6, max_length=50)
    password: str = Field(..., min_length=6, max_length=50)


class AdminLogin(BaseModel):
    username: str
    password: str


class AdminRegistered(BaseModel):
    admin_id: uuid.UUID
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


# ─── Organizations ──────────────────────────────────────

class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class OrganizationRead(BaseModel):
    id: uuid.UUID
    name: str
    created_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ─── Projects ───────────────────────────────────────────

class ProjectCreate(BaseModel):
    org_id: str
    name: str = Field(..., min_length=1, max_length=100)
    shared_identity_context: bool = False


class ProjectRead(BaseModel):
    id: uuid.UUID
    org_id: uuid.UUID
    name: str
    shared_identity_context: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


# ─── Applications ───────────────────────────────────────

RedirectUri = Annotated[str, StringConstraints(max_length=2048)]


class ApplicationCreate(BaseModel):
    project_id: str
    redirect_uris: list[RedirectUri]
    name: Optional[str] = Field(None, max_length=100)


class ApplicationCreated(BaseModel):
    """Response for application creation — client_secret is only shown ONCE."""
    id: uuid.UUID
    project_id: uuid.UUID
    client_id: uuid.UUID
    client_secret: str
    redirect_uris: list[str]


# ─── Scopes ─────────────────────────────────────────────

class ScopeInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)


class ScopesUpsert(BaseModel):
    application_scopes: list[ScopeInput]


class ScopeRead(BaseModel):
    id: uuid.UUID
    app_id: uuid.UUID
    name: str
    description: str

    model_config = {"from_attributes": True}
