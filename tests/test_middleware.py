"""Tests for request ID middleware."""

import uuid

import pytest


@pytest.mark.asyncio
async def test_request_id_generated(unauthenticated_client):
    """Each request gets a unique, time-ordered X-Request-ID header."""
    r1 = await unauthenticated_client.get("/api/v1/health")
    r2 = await unauthenticated_client.get("/api/v1/health")
    first = uuid.UUID(r1.headers["X-Request-ID"])
    second = uuid.UUID(r2.headers["X-Request-ID"])
    assert first.version == 7
    assert first.int < second.int


@pytest.mark.asyncio
async def test_request_id_propagated(unauthenticated_client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await unauthenticated_client.get(
        "/api/v1/health",
        headers={"X-Request-ID": custom_id},
    )
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_oversized_request_id_replaced(unauthenticated_client):
    r = await unauthenticated_client.get(
        "/api/v1/health",
        headers={"X-Request-ID": "x" * 500},
    )
    assert uuid.UUID(r.headers["X-Request-ID"]).version == 7


@pytest.mark.asyncio
async def test_request_id_on_error_responses(unauthenticated_client):
    r = await unauthenticated_client.post("/api/v1/admin/organizations", json={"name": "X"})
    assert r.status_code == 401
    assert "X-Request-ID" in r.headers
