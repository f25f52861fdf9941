"""Tenant directory — admins, organizations, projects, applications, scopes.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Services
flush; the route decides when to commit.

Every foreign key that crosses into this layer is re-parsed with
parse_id(), even if a route already did it. An identifier that this
service didn't mint never reaches a query.
"""

import uuid
from typing import Optional, Sequence, Union

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tessera.auth.password import generate_client_secret, hash_password, verify_password
from tessera.db.models import AdminUser, Application, Organization, Permission, Project
from tessera.errors import Conflict, InvalidCredentials, NotFound, ValidationFailed
from tessera.ids import new_id, parse_id
from tessera.schemas.tenant import ScopeInput

logger = structlog.get_logger()

IdLike = Union[str, uuid.UUID]

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class TenantService:
    """Business logic for the tenant hierarchy."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Admins ─────────────────────────────────────────

    async def create_admin(self, username: str, password: str) -> AdminUser:
        existing = await self.db.execute(
            select(AdminUser).where(AdminUser.username == username)
        )
        if existing.scalars().first():
            raise Conflict("Username already registered")

        admin = AdminUser(username=username, password_hash=hash_password(password))
        self.db.add(admin)
        await self.db.flush()
        logger.info("tenant.admin_created", admin_id=str(admin.id))
        return admin

    async def authenticate_admin(self, username: str, password: str) -> AdminUser:
        result = await self.db.execute(
            select(AdminUser).where(AdminUser.username == username)
        )
        admin = result.scalars().first()
        if not admin or not verify_password(password, admin.password_hash):
            raise InvalidCredentials()
        return admin

    # ─── Organizations ──────────────────────────────────

    async def create_organization(
        self, name: str, created_by: Optional[IdLike] = None
    ) -> Organization:
        org = Organization(
            name=name,
            created_by=parse_id(created_by, "created_by") if created_by else None,
        )
        self.db.add(org)
        await self.db.flush()
        logger.info("tenant.organization_created", org_id=str(org.id))
        return org

    async def get_organization(self, org_id: IdLike) -> Organization:
        org = await self.db.get(Organization, parse_id(org_id, "org_id"))
        if not org:
            raise NotFound("Organization not found")
        return org

    # ─── Projects ───────────────────────────────────────

    async def create_project(
        self,
        org_id: IdLike,
        name: str,
        shared_identity_context: bool = False,
    ) -> Project:
        org = await self.get_organization(org_id)
        project = Project(
            org_id=org.id,
            name=name,
            shared_identity_context=shared_identity_context,
        )
        self.db.add(project)
        await self.db.flush()
        logger.info("tenant.project_created", project_id=str(project.id), org_id=str(org.id))
        return project

    async def get_project(self, project_id: IdLike) -> Project:
        project = await self.db.get(Project, parse_id(project_id, "project_id"))
        if not project:
            raise NotFound("Project not found")
        return project

    # ─── Applications ───────────────────────────────────

    async def create_application(
        self,
        project_id: IdLike,
        redirect_uris: Sequence[str],
        name: Optional[str] = None,
    ) -> tuple[Application, str]:
        """Create an application client.

        Returns the application and the raw client secret. The raw secret
        isn't stored anywhere; this is the only time it exists.
        """
        errors = _validate_redirect_uris(redirect_uris)
        if errors:
            raise ValidationFailed(fields=errors)

        project = await self.get_project(project_id)
        raw_secret = generate_client_secret()
        application = Application(
            project_id=project.id,
            name=name,
            client_id=new_id(),
            client_secret_hash=hash_password(raw_secret),
            redirect_uris=list(redirect_uris),
        )
        self.db.add(application)
        await self.db.flush()
        logger.info(
            "tenant.application_created",
            application_id=str(application.id),
            project_id=str(project.id),
        )
        return application, raw_secret

    async def get_application(self, app_id: IdLike) -> Application:
        application = await self.db.get(Application, parse_id(app_id, "app_id"))
        if not application:
            raise NotFound("Application not found")
        return application

    async def get_application_by_client_id(self, client_id: IdLike) -> Application:
        result = await self.db.execute(
            select(Application).where(
                Application.client_id == parse_id(client_id, "client_id")
            )
        )
        application = result.scalars().first()
        if not application:
            raise NotFound("Unknown client_id")
        return application

    # ─── Scopes ─────────────────────────────────────────

    async def upsert_scopes(
        self, app_id: IdLike, scopes: Sequence[ScopeInput]
    ) -> list[Permission]:
        """Insert scopes, or update the description of ones that exist.

        Learn: (app_id, name) is unique, so sending the same scope twice
        updates its description instead of creating a duplicate. Within
        one request the last entry for a name wins. Postgres refuses to
        touch the same row twice in a single ON CONFLICT statement.
        """
        application = await self.get_application(app_id)

        errors = _validate_scopes(scopes)
        if errors:
            raise ValidationFailed(fields=errors)

        by_name = {scope.name: scope.description for scope in scopes}
        rows = [
            {"id": new_id(), "app_id": application.id, "name": name, "description": description}
            for name, description in by_name.items()
        ]

        dialect = self.db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"scope upsert is not supported on {dialect}")

        stmt = insert(Permission).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=["app_id", "name"],
            set_={"description": stmt.excluded.description},
        )
        await self.db.execute(stmt)
        logger.info(
            "tenant.scopes_upserted",
            application_id=str(application.id),
            count=len(rows),
        )
        return await self.list_scopes(application.id)

    async def list_scopes(self, app_id: IdLike) -> list[Permission]:
        result = await self.db.execute(
            select(Permission)
            .where(Permission.app_id == parse_id(app_id, "app_id"))
            .order_by(Permission.name)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


def _validate_redirect_uris(redirect_uris: Sequence[str]) -> dict[str, list[str]]:
    if not redirect_uris:
        return {"redirect_uris": ["must contain at least one URI"]}
    errors: dict[str, list[str]] = {}
    for i, uri in enumerate(redirect_uris):
        if not uri or not uri.strip():
            errors[f"redirect_uris.{i}"] = ["must not be empty"]
    return errors


def _validate_scopes(scopes: Sequence[ScopeInput]) -> dict[str, list[str]]:
    if not scopes:
        return {"application_scopes": ["must contain at least one scope"]}
    errors: dict[str, list[str]] = {}
    for i, scope in enumerate(scopes):
        if not scope.name.strip():
            errors[f"application_scopes.{i}.name"] = ["must not be empty"]
        if not scope.description.strip():
            errors[f"application_scopes.{i}.description"] = ["must not be empty"]
    return errors
