"""User registration API.

Learn: POST /users is the only open write route. It creates the identity
and immediately issues its first credential; no guard runs here because
there is no prior identity to check.
"""

from datetime import timedelta

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.auth.dependencies import get_context, get_credentials
from notekeeper.auth.jwt import CredentialManager, TokenError
from notekeeper.context import RequestContext
from notekeeper.db.engine import get_db
from notekeeper.errors import InternalError
from notekeeper.schemas.user import UserCreate, UserRegistered
from notekeeper.services.user_store import UserStore

router = APIRouter()


def _users(request: Request, db: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(db, timeout=request.app.state.settings.query_timeout_seconds)


@router.post("/users", response_model=UserRegistered, status_code=201)
async def register(
    body: UserCreate,
    request: Request,
    users: UserStore = Depends(_users),
    credentials: CredentialManager = Depends(get_credentials),
    ctx: RequestContext = Depends(get_context),
):
    """Create a user and return its id with an access token."""
    user_id = await users.create(ctx, body.username)

    ttl = timedelta(minutes=request.app.state.settings.access_token_ttl_minutes)
    try:
        token = credentials.issue(user_id, ttl)
    except TokenError as e:
        raise InternalError(f"failed to issue credential: {e}") from e

    return UserRegistered(id=user_id, access_token=token)
