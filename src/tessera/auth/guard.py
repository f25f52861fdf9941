"""Admin escalation guard and user auth dependencies.

Learn: These are used as Depends() — at the include_router level for
the admin router, so no protected handler can run without passing the
guard first. The guard:

1. Pulls the bearer token out of the Authorization header.
   - no header (or a blank one)           → HeaderMissing
   - anything but exactly "Bearer <token>" → InvalidToken
2. Decodes it with the ADMIN secret.
3. Lets the request through only if the decoded kind is "admin", and
   hands the admin's subject id to downstream handlers.

A token that's a perfectly valid *user* token gets Forbidden rather
than InvalidToken: the caller is authenticated, just not as an admin.
Every other failure (ClockError included) propagates, so the handler
never runs.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import Depends, Header, Request

from tessera.auth.claims import Claims, PrincipalKind
from tessera.auth.tokens import TokenService
from tessera.errors import Forbidden, HeaderMissing, InvalidToken

logger = structlog.get_logger()

BEARER_SCHEME = "bearer"


def extract_bearer_token(authorization: Optional[str]) -> str:
    """Parse a "Bearer <token>" header value.

    Split on whitespace and require exactly the scheme and the credential.
    """
    if authorization is None or not authorization.strip():
        raise HeaderMissing()
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME:
        raise InvalidToken()
    return parts[1]


class AdminGuard:
    """Decides whether a request may reach an admin handler."""

    def __init__(self, tokens: TokenService):
        self.tokens = tokens

    def authorize(self, authorization: Optional[str]) -> Claims:
        token = extract_bearer_token(authorization)
        try:
            claims = self.tokens.decode(token, PrincipalKind.ADMIN)
        except InvalidToken:
            if self._is_user_token(token):
                raise Forbidden()
            raise
        if claims.kind is not PrincipalKind.ADMIN:
            raise Forbidden()
        return claims

    def _is_user_token(self, token: str) -> bool:
        try:
            self.tokens.verify(token, PrincipalKind.USER)
        except InvalidToken:
            return False
        return True


@dataclass(frozen=True)
class AdminPrincipal:
    """The authorized admin, as seen by protected handlers."""

    admin_id: str
    claims: Claims


@dataclass(frozen=True)
class UserPrincipal:
    identity_id: str
    claims: Claims


def get_token_service(request: Request) -> TokenService:
    """FastAPI dependency — the token service built at app startup."""
    return request.app.state.tokens


async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> AdminPrincipal:
    """Admin escalation guard as a FastAPI dependency.

    Learn: FastAPI caches dependencies per request, so the router-level
    guard and a handler that also asks for AdminPrincipal share one
    decode.
    """
    try:
        claims = AdminGuard(tokens).authorize(authorization)
    except (HeaderMissing, InvalidToken, Forbidden) as e:
        logger.info("guard.rejected", path=request.url.path, code=e.code)
        raise

    request.state.admin = claims
    structlog.contextvars.bind_contextvars(admin_id=claims.subject)
    return AdminPrincipal(admin_id=claims.subject, claims=claims)


async def require_user(
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> UserPrincipal:
    """Bearer user token → the calling identity."""
    token = extract_bearer_token(authorization)
    claims = tokens.verify(token, PrincipalKind.USER)
    return UserPrincipal(identity_id=claims.subject, claims=claims)
