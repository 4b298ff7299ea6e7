"""Tests for the request middlewares — request IDs, disconnects, deadlines.

Learn: Every response carries X-Request-ID. The same id is bound into
the structlog context for every log line of that request, so a client
can quote it when reporting a failure.

Deadline tests build their own app with short timeouts and a stub
session, so no real statement is ever slow.
"""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient
from structlog.testing import capture_logs

from notekeeper.db.engine import get_db
from notekeeper.errors import Cancelled
from notekeeper.main import create_app


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/v1/health")
    r2 = await client.get("/api/v1/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    # Each request gets a unique ID
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get(
        "/api/v1/health",
        headers={"X-Request-ID": custom_id},
    )
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_request_id_on_error_responses(client):
    """Rejected requests still carry the request id."""
    r = await client.get(
        "/api/v1/users/1/notes",
        headers={"X-Request-ID": "trace-401"},
    )
    assert r.status_code == 401
    assert r.headers["X-Request-ID"] == "trace-401"


# ═══════════════════════════════════════════════════════════
# Client disconnects and the request deadline
# ═══════════════════════════════════════════════════════════


class HangingSession:
    """Stands in for AsyncSession; every statement takes far too long."""

    async def execute(self, stmt):
        await asyncio.sleep(5)

    async def rollback(self):
        pass


class DisconnectedSession(HangingSession):
    """The driver noticed the caller went away mid-statement."""

    async def execute(self, stmt):
        raise asyncio.CancelledError()


def _app_with_session(settings, session, **overrides):
    app = create_app(settings.model_copy(update=overrides))

    async def stub_db():
        yield session

    app.dependency_overrides[get_db] = stub_db
    return app


def _client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_cancelled_request_is_logged_and_not_answered(settings, bearer):
    app = _app_with_session(settings, DisconnectedSession())

    async with _client_for(app) as client:
        with capture_logs() as logs, pytest.raises(asyncio.CancelledError) as exc:
            await client.get(
                "/api/v1/users/1/notes/1",
                headers={**bearer(1), "X-Request-ID": "gone-1"},
            )

    assert isinstance(exc.value, Cancelled)
    cancelled = [e for e in logs if e["event"] == "request.cancelled"]
    assert len(cancelled) == 1
    assert cancelled[0]["log_level"] == "info"
    assert cancelled[0]["request_id"] == "gone-1"
    assert cancelled[0]["op"] == "notes.get"
    assert not [e for e in logs if e["log_level"] == "error"]


@pytest.mark.asyncio
async def test_request_deadline_during_store_call(settings, bearer):
    app = _app_with_session(
        settings,
        HangingSession(),
        request_timeout_seconds=0.1,
        query_timeout_seconds=5.0,
    )

    async with _client_for(app) as client:
        r = await client.get(
            "/api/v1/users/1/notes/1",
            headers={**bearer(1), "X-Request-ID": "slow-1"},
        )

    assert r.status_code == 503
    assert r.json() == {"detail": "service unavailable"}
    assert r.headers["X-Request-ID"] == "slow-1"


@pytest.mark.asyncio
async def test_request_deadline_on_slow_route(settings):
    app = create_app(settings.model_copy(update={"request_timeout_seconds": 0.1}))

    @app.get("/slow")
    async def slow():
        await asyncio.sleep(5)
        return {"done": True}

    async with _client_for(app) as client:
        r = await client.get("/slow")

    assert r.status_code == 503
    assert r.json() == {"detail": "service unavailable"}


@pytest.mark.asyncio
async def test_statement_deadline_is_distinct_from_request_deadline(settings, bearer):
    app = _app_with_session(
        settings,
        HangingSession(),
        request_timeout_seconds=5.0,
        query_timeout_seconds=0.05,
    )

    async with _client_for(app) as client:
        r = await client.get("/api/v1/users/1/notes/1", headers=bearer(1))

    assert r.status_code == 504
    assert r.json() == {"detail": "request took too long to process, try again later"}


@pytest.mark.asyncio
async def test_fast_request_is_untouched_by_deadline(client):
    r = await client.get("/api/v1/health")
    assert r.status_code == 200
