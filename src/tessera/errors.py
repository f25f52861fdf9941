"""Error taxonomy and its HTTP rendering.

Learn: every failure the service reports to a client is an AppError
subclass. Each one knows its status code and a stable machine-readable
code; the handlers registered in register_exception_handlers() render
them all in one shape:

    {"error": {"code": "...", "message": "...", "fields": {...}}}

`fields` is a multi-field map (field name → list of problems). Request
validation errors raised by pydantic are re-rendered into the same map
so clients only ever parse one format.

All token failures share one code and one message. A client can't
tell a bad signature from an expired token or a kind mismatch.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

logger = structlog.get_logger()


class AppError(Exception):
    """Base class for errors rendered to clients."""

    status_code = 500
    code = "internal_error"
    message = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        fields: Optional[dict[str, list[str]]] = None,
    ):
        self.message = message or self.message
        self.fields = fields or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "fields": self.fields,
            }
        }


# ─── Identifiers ────────────────────────────────────────


class InvalidIdFormat(AppError):
    """Text that isn't an identifier at all."""

    status_code = 400
    code = "invalid_id_format"
    message = "Malformed identifier"

    def __init__(self, field: str = "id"):
        self.field = field
        super().__init__(fields={field: ["malformed identifier"]})


class InvalidIdVersion(AppError):
    """A well-formed identifier minted by something other than this service."""

    status_code = 400
    code = "invalid_id_version"
    message = "Unsupported identifier version"

    def __init__(self, field: str = "id", version: Optional[int] = None):
        self.field = field
        self.version = version
        problem = (
            "unsupported identifier variant"
            if version is None
            else f"unsupported identifier version: {version}"
        )
        super().__init__(fields={field: [problem]})


# ─── Validation / directory ─────────────────────────────


class ValidationFailed(AppError):
    status_code = 422
    code = "validation_failed"
    message = "Request validation failed"


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    message = "The resource does not exist"


class Conflict(AppError):
    status_code = 409
    code = "conflict"
    message = "The resource already exists"


class InvalidReference(AppError):
    status_code = 400
    code = "invalid_reference"
    message = "Reference to a resource that does not exist"


class InvalidCredentials(AppError):
    status_code = 401
    code = "invalid_credentials"
    message = "Invalid credentials"


# ─── Tokens / guard ─────────────────────────────────────


class HeaderMissing(AppError):
    """No Authorization header — usually a client integration bug."""

    status_code = 401
    code = "header_missing"
    message = "Authorization header is required"


class InvalidToken(AppError):
    """Bad signature, expired, malformed, or wrong kind. Never more specific."""

    status_code = 401
    code = "invalid_token"
    message = "Invalid or expired token"


class Forbidden(AppError):
    """A valid token for the wrong principal kind."""

    status_code = 403
    code = "forbidden"
    message = "Insufficient privileges"


class ClockError(AppError):
    """The system clock couldn't be read. Fatal to the request only."""

    status_code = 503
    code = "clock_unavailable"
    message = "Service temporarily unavailable"


# ─── Handlers ───────────────────────────────────────────


def _render(exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log = logger.warning if exc.status_code >= 500 else logger.info
    log("request.rejected", path=request.url.path, code=exc.code, status=exc.status_code)
    return _render(exc)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten pydantic's error list into the field → messages map."""
    fields: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        key = ".".join(loc) or "body"
        fields.setdefault(key, []).append(err.get("msg", "invalid value"))
    return _render(ValidationFailed(fields=fields))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique violations → 409, dangling references → 400, anything else → 500.

    PostgreSQL says "duplicate key value violates unique constraint",
    SQLite says "UNIQUE constraint failed".
    """
    detail = str(exc.orig).lower() if exc.orig is not None else ""
    if "foreign key" in detail:
        logger.info("request.integrity_error", path=request.url.path, error=detail)
        return _render(InvalidReference())
    if "unique" in detail or "duplicate key" in detail:
        logger.info("request.integrity_error", path=request.url.path, error=detail)
        return _render(Conflict())
    logger.warning("request.integrity_error", path=request.url.path, error=detail)
    return _render(AppError())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
