"""FastAPI auth dependencies.

Learn: require_owner is used as Depends() on the notes router. It pulls
the user id from the path and the Authorization header from the request,
runs the AuthorizationGuard, and hands the verified identity to handlers.
FastAPI caches a dependency per request, so handlers that also declare
Depends(require_owner) reuse the same result instead of re-verifying.
"""

from typing import Optional

from fastapi import Depends, Header, Path, Request

from notekeeper.auth.guard import AuthorizationGuard
from notekeeper.auth.jwt import CredentialManager
from notekeeper.context import RequestContext


class CurrentIdentity:
    """The verified owner of the notes a request operates on."""

    def __init__(self, user_id: int):
        self.user_id = user_id

    def __repr__(self) -> str:
        return f"CurrentIdentity(user_id={self.user_id})"


def get_context(request: Request) -> RequestContext:
    """Request context created by RequestContextMiddleware."""
    ctx = getattr(request.state, "context", None)
    if ctx is None:
        ctx = RequestContext.new(request.headers.get("X-Request-ID"))
        request.state.context = ctx
    return ctx


def get_credentials(request: Request) -> CredentialManager:
    return request.app.state.credentials


def get_guard(request: Request) -> AuthorizationGuard:
    return request.app.state.guard


async def require_owner(
    user_id: str = Path(...),
    authorization: Optional[str] = Header(None),
    guard: AuthorizationGuard = Depends(get_guard),
    ctx: RequestContext = Depends(get_context),
) -> CurrentIdentity:
    """Admit the request only if the bearer credential owns ``user_id``."""
    return CurrentIdentity(user_id=guard.authorize(user_id, authorization, ctx))
