"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The ownership guard is applied at the include_router level using
FastAPI's dependencies parameter. Every route in the notes router is
protected without repeating it per handler; health and registration are
open (no credential exists yet when a user registers).
"""

from fastapi import APIRouter, Depends

from notekeeper.api.health import router as health_router
from notekeeper.api.notes import router as notes_router
from notekeeper.api.users import router as users_router
from notekeeper.auth.dependencies import require_owner

# Note routes require the caller to own {user_id}
_owner = [Depends(require_owner)]

api_router = APIRouter(prefix="/api/v1")

# Open routes — no credential required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(users_router, tags=["users"])

# Protected routes — bearer credential must match the path user id
api_router.include_router(notes_router, tags=["notes"], dependencies=_owner)
