"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Token settings are required at import time, so they're set in the
   environment before anything from tessera is imported.
2. Each test gets its own in-memory SQLite engine (aiosqlite +
   StaticPool so every session sees the same connection) with the
   schema created from the ORM models. Nothing leaks between tests.
3. The app's get_db dependency is overridden to hand out that session.

`client` carries a real admin token, so protected routes run through
the real escalation guard. `unauthenticated_client` sends no token.
"""

import os

os.environ.setdefault("TESSERA_ADMIN_JWT_SECRET", "test-admin-secret-9f8e7d6c5b4a39281706")
os.environ.setdefault("TESSERA_USER_JWT_SECRET", "test-user-secret-0a1b2c3d4e5f60718293")
os.environ.setdefault("TESSERA_ADMIN_ACCESS_TOKEN_EXPIRE_MINUTES", "15")
os.environ.setdefault("TESSERA_USER_ACCESS_TOKEN_EXPIRE_MINUTES", "60")
os.environ.setdefault("TESSERA_BCRYPT_ROUNDS", "4")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tessera.db.engine import get_db  # noqa: E402
from tessera.db.models import Base  # noqa: E402
from tessera.main import app  # noqa: E402
from tessera.services.tenant_service import TenantService  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite://"

ADMIN_USERNAME = "root-admin"
ADMIN_PASSWORD = "admin-password-1"


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(db_engine):
    session = AsyncSession(bind=db_engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


@pytest_asyncio.fixture()
async def token_service():
    """The token service the app was built with."""
    return app.state.tokens


@pytest_asyncio.fixture()
async def admin(db_session):
    """A registered platform admin."""
    admin = await TenantService(db_session).create_admin(ADMIN_USERNAME, ADMIN_PASSWORD)
    await db_session.commit()
    return admin


@pytest_asyncio.fixture()
async def admin_token(admin, token_service):
    return token_service.issue_admin_token(str(admin.id))


@pytest_asyncio.fixture()
async def unauthenticated_client(db_session):
    """HTTP client with no Authorization header; only get_db is overridden."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(db_session, admin_token):
    """HTTP client that sends a valid admin token on every request."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def project(client):
    """An organization with one project, created through the admin API."""
    r = await client.post("/api/v1/admin/organizations", json={"name": "Acme Corp"})
    org_id = r.json()["id"]
    r = await client.post(
        "/api/v1/admin/projects", json={"org_id": org_id, "name": "Storefront"}
    )
    return r.json()


@pytest_asyncio.fixture()
async def application(client, project):
    """An application in `project`, including its one-time client secret."""
    r = await client.post(
        "/api/v1/admin/applications",
        json={
            "project_id": project["id"],
            "redirect_uris": ["https://app.example.com/callback"],
        },
    )
    return r.json()
