"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The token service is built exactly once here from the frozen
settings and stored on app.state; every request reads the same
instance. Lifespan manages startup/shutdown (database engine).
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tessera import __version__
from tessera.api import api_router
from tessera.auth.tokens import TokenService
from tessera.config import Settings, settings
from tessera.errors import register_exception_handlers
from tessera.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()


def configure_logging(app_settings: Settings = settings) -> None:
    """Configure structlog once per process.

    Console output in development, JSON lines everywhere else (or when
    TESSERA_LOG_JSON=true).
    """
    level = logging.getLevelName(app_settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    json_output = app_settings.log_json or app_settings.environment != "development"
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def startup_summary(app_settings: Settings) -> dict:
    """Fields logged once at startup. Secrets are never included."""
    return {
        "version": __version__,
        "environment": app_settings.environment,
        "port": app_settings.port,
        "admin_token_minutes": app_settings.admin_access_token_expire_minutes,
        "user_token_minutes": app_settings.user_access_token_expire_minutes,
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    logger.info("tessera.starting", **startup_summary(app.state.settings))

    yield

    logger.info("tessera.shutdown")

    from tessera.db.engine import engine
    await engine.dispose()


def create_app(
    app_settings: Optional[Settings] = None,
    tokens: Optional[TokenService] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    app_settings = app_settings or settings
    configure_logging(app_settings)

    app = FastAPI(
        title="Tessera",
        description="Multi-tenant identity and credential backend",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.tokens = tokens or TokenService.from_settings(app_settings)

    register_exception_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: tessera.main:app)
app = create_app()
