"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running
and the database is reachable. The failure reason goes to the log,
not the response body.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper import __version__
from notekeeper.db.engine import get_db

logger = structlog.get_logger("notekeeper.health")

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check server health and database connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except (SQLAlchemyError, OSError) as e:
        logger.warning("health.database_unreachable", error=str(e))
        checks["database"] = "error"

    status = "healthy" if checks["database"] == "ok" else "degraded"
    return {"status": status, **checks}
