"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The admin escalation guard is applied at the include_router
level using FastAPI's dependencies parameter. That protects every
provisioning route without touching individual handlers. A new
route added to the protected router is guarded automatically.
Health, admin register/login and end-user auth routes are open.
"""

from fastapi import APIRouter, Depends

from tessera.api.admin import protected_router as admin_protected_router
from tessera.api.admin import router as admin_router
from tessera.api.auth import router as auth_router
from tessera.api.health import router as health_router
from tessera.auth.guard import require_admin

api_router = APIRouter(prefix="/api/v1")

# Open routes — no admin token required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(admin_router, tags=["admin-auth"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid admin token
api_router.include_router(
    admin_protected_router,
    tags=["organizations", "projects", "applications"],
    dependencies=[Depends(require_admin)],
)
