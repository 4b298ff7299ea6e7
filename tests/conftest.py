"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (aiosqlite + StaticPool,
   so every session shares the one connection that holds the data) with
   the schema created from Base.metadata.
2. The app is built with create_app(settings) and its get_db dependency is
   overridden to hand out sessions bound to that engine.
3. The engine is disposed after the test — the database vanishes with it.

No Postgres needed; the stores only use portable SQL.
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from notekeeper.auth.jwt import CredentialManager
from notekeeper.config import Settings
from notekeeper.context import RequestContext
from notekeeper.db.engine import get_db
from notekeeper.db.models import Base
from notekeeper.main import create_app

TEST_SECRET = "test-secret-0123456789-abcdefghijklmnopqrstuvwxyz-0123456789-ABCDEFGHIJ"
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
def settings():
    return Settings(jwt_secret=TEST_SECRET, max_page_size=50)


@pytest.fixture()
def credentials():
    return CredentialManager(TEST_SECRET)


@pytest.fixture()
def ctx():
    return RequestContext.new("test-request")


@pytest_asyncio.fixture()
async def session_factory():
    """Session factory over a fresh in-memory schema."""
    engine = create_async_engine(TEST_DB_URL, poolclass=StaticPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def app(settings, session_factory):
    """The real app, with get_db pointed at the test database."""
    application = create_app(settings)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def register(client):
    """Register a user through the API; returns (user_id, auth headers)."""

    async def _register(username: str) -> tuple[int, dict[str, str]]:
        r = await client.post("/api/v1/users", json={"username": username})
        assert r.status_code == 201, r.text
        body = r.json()
        return body["id"], {"Authorization": f"Bearer {body['access_token']}"}

    return _register


@pytest.fixture()
def bearer(credentials):
    """Auth headers for an arbitrary user id, signed with the app secret."""

    def _bearer(user_id: int, minutes: int = 5) -> dict[str, str]:
        token = credentials.issue(user_id, timedelta(minutes=minutes))
        return {"Authorization": f"Bearer {token}"}

    return _bearer
