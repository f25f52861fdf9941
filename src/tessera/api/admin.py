"""Admin API — admin accounts and tenant provisioning.

Learn: Two routers live here:
- `router` (open): POST /admin/register, POST /admin/login
- `protected_router`: organizations, projects, applications, scopes.
  It's mounted with the admin escalation guard as a router-level
  dependency (see api/__init__.py), so none of these handlers runs
  unless the request carries a valid admin token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tessera.auth.claims import PrincipalKind
from tessera.auth.guard import AdminPrincipal, get_token_service, require_admin
from tessera.auth.tokens import TokenService
from tessera.db.engine import get_db
from tessera.schemas.tenant import (
    AdminLogin,
    AdminRegister,
    AdminRegistered,
    ApplicationCreate,
    ApplicationCreated,
    OrganizationCreate,
    OrganizationRead,
    ProjectCreate,
    ProjectRead,
    ScopeRead,
    ScopesUpsert,
    TokenResponse,
)
from tessera.services.tenant_service import TenantService

router = APIRouter(prefix="/admin")
protected_router = APIRouter(prefix="/admin")


def _svc(db: AsyncSession = Depends(get_db)) -> TenantService:
    return TenantService(db)


# ─── Admin accounts ─────────────────────────────────────


@router.post("/register", response_model=AdminRegistered, status_code=201)
async def register_admin(
    body: AdminRegister,
    svc: TenantService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    """Create an admin account and return its first access token."""
    admin = await svc.create_admin(body.username, body.password)
    access_token = tokens.issue_admin_token(str(admin.id))
    await svc.db.commit()
    return AdminRegistered(
        admin_id=admin.id,
        access_token=access_token,
        expires_in=tokens.expires_in(PrincipalKind.ADMIN),
    )


@router.post("/login", response_model=TokenResponse)
async def login_admin(
    body: AdminLogin,
    svc: TenantService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    admin = await svc.authenticate_admin(body.username, body.password)
    return TokenResponse(
        access_token=tokens.issue_admin_token(str(admin.id)),
        expires_in=tokens.expires_in(PrincipalKind.ADMIN),
    )


# ─── Organizations ──────────────────────────────────────


@protected_router.post("/organizations", response_model=OrganizationRead, status_code=201)
async def create_organization(
    body: OrganizationCreate,
    admin: AdminPrincipal = Depends(require_admin),
    svc: TenantService = Depends(_svc),
):
    org = await svc.create_organization(name=body.name, created_by=admin.admin_id)
    await svc.db.commit()
    await svc.db.refresh(org)
    return org


# ─── Projects ───────────────────────────────────────────


@protected_router.post("/projects", response_model=ProjectRead, status_code=201)
async def create_project(body: ProjectCreate, svc: TenantService = Depends(_svc)):
    project = await svc.create_project(
        org_id=body.org_id,
        name=body.name,
        shared_identity_context=body.shared_identity_context,
    )
    await svc.db.commit()
    await svc.db.refresh(project)
    return project


# ─── Applications ───────────────────────────────────────


@protected_router.post("/applications", response_model=ApplicationCreated, status_code=201)
async def create_application(body: ApplicationCreate, svc: TenantService = Depends(_svc)):
    """Create an application. The client secret is only returned ONCE."""
    application, raw_secret = await svc.create_application(
        project_id=body.project_id,
        redirect_uris=body.redirect_uris,
        name=body.name,
    )
    await svc.db.commit()
    return ApplicationCreated(
        id=application.id,
        project_id=application.project_id,
        client_id=application.client_id,
        client_secret=raw_secret,
        redirect_uris=application.redirect_uris,
    )


# ─── Scopes ─────────────────────────────────────────────


@protected_router.put("/applications/{app_id}/scopes", response_model=list[ScopeRead])
async def upsert_application_scopes(
    app_id: str,
    body: ScopesUpsert,
    svc: TenantService = Depends(_svc),
):
    """Create scopes, or update descriptions of existing ones (by name)."""
    scopes = await svc.upsert_scopes(app_id, body.application_scopes)
    await svc.db.commit()
    return scopes


@protected_router.get("/applications/{app_id}/scopes", response_model=list[ScopeRead])
async def list_application_scopes(app_id: str, svc: TenantService = Depends(_svc)):
    await svc.get_application(app_id)
    return await svc.list_scopes(app_id)
