"""End-user auth API — registration, login, current identity.

Learn: Routes for end users of a tenant project:
- POST /auth/register → identity + password login method + account → user JWT
- POST /auth/login → client_id + identifier/password → user JWT
- GET /auth/me → the identity behind a user token

User tokens are signed with the USER secret. They never pass the
admin guard.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tessera.auth.claims import PrincipalKind
from tessera.auth.guard import UserPrincipal, get_token_service, require_user
from tessera.auth.tokens import TokenService
from tessera.db.engine import get_db
from tessera.schemas.identity import LoginRequest, MeRead, RegisteredRead, RegisterRequest
from tessera.schemas.tenant import TokenResponse
from tessera.services.identity_service import IdentityService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> IdentityService:
    return IdentityService(db)


@router.post("/register", response_model=RegisteredRead, status_code=201)
async def register(
    body: RegisterRequest,
    svc: IdentityService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    """Register an end user into the project behind `client_id`."""
    registration = await svc.register(
        client_id=body.client_id,
        method_type=body.method_type,
        identifier=body.identifier,
        password=body.password,
        profile=body.profile,
    )
    access_token = tokens.issue_user_token(str(registration.identity.id))
    await svc.db.commit()
    return RegisteredRead(
        identity_id=registration.identity.id,
        account_id=registration.account.id,
        access_token=access_token,
        expires_in=tokens.expires_in(PrincipalKind.USER),
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    svc: IdentityService = Depends(_svc),
    tokens: TokenService = Depends(get_token_service),
):
    account = await svc.authenticate(body.client_id, body.identifier, body.password)
    return TokenResponse(
        access_token=tokens.issue_user_token(str(account.identity_id)),
        expires_in=tokens.expires_in(PrincipalKind.USER),
    )


@router.get("/me", response_model=MeRead)
async def get_me(
    user: UserPrincipal = Depends(require_user),
    svc: IdentityService = Depends(_svc),
):
    """Current identity. Requires a verified login method."""
    return await svc.profile(user.identity_id)
