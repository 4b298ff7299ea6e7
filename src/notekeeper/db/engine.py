"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

The engine is built by create_app() from Settings and kept on app.state, so
tests can swap the session source by overriding get_db.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from notekeeper.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    # Connection pool: min 5, max 20 connections.
    # echo=True in debug to see SQL queries.
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=15,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Session factory — each request gets its own session.
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes.

    Closing rolls back anything left uncommitted, so a statement interrupted
    by a timeout or cancellation never becomes visible.
    """
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
