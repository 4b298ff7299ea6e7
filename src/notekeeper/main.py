"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Everything the request path needs (settings, credential manager,
guard, engine, session factory) is built here once and stored on
app.state; requests share it read-only. Lifespan only handles shutdown.

Run with: uvicorn notekeeper.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from notekeeper import __version__
from notekeeper.api import api_router
from notekeeper.api.errors import register_error_handlers
from notekeeper.auth.guard import AuthorizationGuard
from notekeeper.auth.jwt import CredentialManager
from notekeeper.config import Settings, get_settings
from notekeeper.db.engine import build_engine, build_session_factory
from notekeeper.log_config import configure_logging
from notekeeper.middleware.request_context import RequestContextMiddleware
from notekeeper.middleware.request_timeout import RequestTimeoutMiddleware

logger = structlog.get_logger("notekeeper")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "notekeeper.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("notekeeper.shutdown")
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application.

    Without explicit settings they are read from the environment; a missing
    NOTEKEEPER_JWT_SECRET makes this raise, so the server never starts.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    credentials = CredentialManager(settings.jwt_secret)
    engine = build_engine(settings)

    app = FastAPI(
        title="NoteKeeper",
        description="Multi-tenant note-taking API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.credentials = credentials
    app.state.guard = AuthorizationGuard(credentials)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    # Last added runs first: the request context wraps the deadline, so a
    # timed-out request still gets its X-Request-ID
    app.add_middleware(RequestTimeoutMiddleware, timeout=settings.request_timeout_seconds)
    app.add_middleware(RequestContextMiddleware)
    register_error_handlers(app)

    # Mount API routes
    app.include_router(api_router)

    return app
