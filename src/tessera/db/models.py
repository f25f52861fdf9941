"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations are generated by comparing
these models to the actual DB.

Key concepts:
- Every primary key is a UUIDv7 from tessera.ids, time-ordered, so
  b-tree indexes stay append-mostly and ORDER BY id means creation order
- JSONB / text[] on PostgreSQL, with generic JSON variants so the same
  models run on SQLite for tests
- Secrets are stored only as bcrypt digests
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from tessera.ids import new_id

JsonDocument = JSON().with_variant(JSONB(), "postgresql")
UriList = JSON().with_variant(ARRAY(Text()), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def id_column(**kwargs) -> Mapped[uuid.UUID]:
    return mapped_column(Uuid(), primary_key=True, default=new_id, **kwargs)


# ══════════════════════════════════════════════════════════════
# Platform admins
# ══════════════════════════════════════════════════════════════


class AdminUser(Base):
    """A platform administrator. Provisions tenants, never logs into them."""

    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = id_column()
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


# ══════════════════════════════════════════════════════════════
# Tenants: Organization → Project → Application → Permission
# ══════════════════════════════════════════════════════════════


class Organization(Base):
    """Multi-tenant root. Owns projects.

    Learn: created_by records the admin id the guard decoded from the
    request's token.
    """

    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = id_column()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(), ForeignKey("admin_users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    projects: Mapped[list["Project"]] = relationship(back_populates="organization")


class Project(Base):
    """Belongs to exactly one organization. End-user accounts live here."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = id_column()
    org_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    shared_identity_context: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    organization: Mapped["Organization"] = relationship(back_populates="projects")
    applications: Mapped[list["Application"]] = relationship(back_populates="project")


class Application(Base):
    """An OAuth-style client of a project.

    Learn: client_id is public; the client secret is only ever stored
    as a bcrypt digest. redirect_uris is never empty; the service
    layer rejects that before anything is written.
    """

    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = id_column()
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("projects.id"), nullable=False, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), unique=True, nullable=False, default=new_id
    )
    client_secret_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    redirect_uris: Mapped[list[str]] = mapped_column(UriList, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    project: Mapped["Project"] = relationship(back_populates="applications")
    permissions: Mapped[list["Permission"]] = relationship(back_populates="application")


class Permission(Base):
    """A named scope of an application. (app_id, name) is unique."""

    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint("app_id", "name", name="uq_permissions_app_name"),
    )

    id: Mapped[uuid.UUID] = id_column()
    app_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("applications.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    application: Mapped["Application"] = relationship(back_populates="permissions")


# ══════════════════════════════════════════════════════════════
# Identities: Identity → LoginMethod, Identity → UserAccount (per project)
# ══════════════════════════════════════════════════════════════


class Identity(Base):
    """An end user, independent of any single project."""

    __tablename__ = "identities"

    id: Mapped[uuid.UUID] = id_column()
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    login_methods: Mapped[list["LoginMethod"]] = relationship(back_populates="identity")
    accounts: Mapped[list["UserAccount"]] = relationship(back_populates="identity")


class LoginMethod(Base):
    """One way an identity can log in (e.g. password + email).

    Learn: is_verified is flipped by the verification flow. Until then
    the method can't be used to resolve account lookups (/auth/me).
    """

    __tablename__ = "login_methods"
    __table_args__ = (
        UniqueConstraint("method_type", "identifier", name="uq_login_methods_type_identifier"),
    )

    id: Mapped[uuid.UUID] = id_column()
    identity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("identities.id"), nullable=False, index=True
    )
    method_type: Mapped[str] = mapped_column(String(30), nullable=False)  # password, ...
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    identity: Mapped["Identity"] = relationship(back_populates="login_methods")


class UserAccount(Base):
    """An identity's account inside one project. At most one per project."""

    __tablename__ = "user_accounts"
    __table_args__ = (
        UniqueConstraint("identity_id", "project_id", name="uq_user_accounts_identity_project"),
    )

    id: Mapped[uuid.UUID] = id_column()
    identity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("identities.id"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(), ForeignKey("projects.id"), nullable=False, index=True
    )
    local_profile_data: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JsonDocument, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    identity: Mapped["Identity"] = relationship(back_populates="accounts")
