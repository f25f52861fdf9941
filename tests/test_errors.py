"""Error rendering — database integrity failures and identifier errors."""

import json
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError

from tessera.errors import InvalidIdVersion, integrity_error_handler

REQUEST = SimpleNamespace(url=SimpleNamespace(path="/api/v1/admin/projects"))


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO t VALUES (?)", {}, Exception(message))


async def _render(message: str):
    response = await integrity_error_handler(REQUEST, _integrity_error(message))
    return response.status_code, json.loads(response.body)["error"]["code"]


# ═══════════════════════════════════════════════════════════
# IntegrityError mapping
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message",
    [
        "UNIQUE constraint failed: admin_users.username",
        'duplicate key value violates unique constraint "admin_users_username_key"',
    ],
)
async def test_unique_violation_is_conflict(message):
    assert await _render(message) == (409, "conflict")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message",
    [
        "FOREIGN KEY constraint failed",
        'insert or update on table "projects" violates foreign key constraint',
    ],
)
async def test_foreign_key_violation_is_invalid_reference(message):
    assert await _render(message) == (400, "invalid_reference")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message",
    [
        "NOT NULL constraint failed: projects.name",
        'new row for relation "applications" violates check constraint "ck_redirect_uris"',
    ],
)
async def test_other_integrity_failures_are_server_errors(message):
    assert await _render(message) == (500, "internal_error")


# ═══════════════════════════════════════════════════════════
# Identifier errors
# ═══════════════════════════════════════════════════════════


def test_invalid_id_version_names_the_version():
    err = InvalidIdVersion("org_id", version=4)
    assert err.fields == {"org_id": ["unsupported identifier version: 4"]}


def test_invalid_id_version_without_version_names_the_variant():
    err = InvalidIdVersion("org_id", version=None)
    assert err.fields == {"org_id": ["unsupported identifier variant"]}
