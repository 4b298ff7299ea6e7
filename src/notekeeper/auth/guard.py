"""Authorization guard — the ownership check in front of every note route.

Learn: Note routes are nested under /users/{user_id}/notes. The guard ties
the user id in the path to the subject of the bearer credential:

1. path id must look like an identity            → 400 otherwise
2. header must be exactly "Bearer <token>"        → 401 otherwise
3. token must verify (expired gets its own message) → 401 otherwise
4. verified id must equal the path id              → 403 otherwise

Only then does the wrapped operation run, with the verified id as owner.
There is no admin override and no role hierarchy.
"""

from typing import Awaitable, Callable, Optional, TypeVar

from notekeeper.auth.jwt import CredentialManager, TokenError, TokenExpired, parse_identity
from notekeeper.context import RequestContext
from notekeeper.errors import Forbidden, InvalidInput, Unauthorized

T = TypeVar("T")


def extract_bearer_token(authorization: Optional[str]) -> str:
    parts = (authorization or "").split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise Unauthorized("malformed credential header")
    return parts[1]


class AuthorizationGuard:
    """Admits a request only when the credential's subject owns the path."""

    def __init__(self, credentials: CredentialManager):
        self.credentials = credentials

    def authorize(
        self,
        path_identity: str,
        authorization: Optional[str],
        ctx: RequestContext,
    ) -> int:
        log = ctx.log.bind(op="auth.authorize")

        try:
            target = parse_identity(path_identity)
        except ValueError:
            log.info("auth.invalid_path_identity", path_identity=path_identity)
            raise InvalidInput("invalid identity")

        token = extract_bearer_token(authorization)

        try:
            identity = self.credentials.verify(token)
        except TokenExpired:
            log.info("auth.credential_expired")
            raise Unauthorized("credential expired")
        except TokenError as e:
            log.info("auth.credential_rejected", reason=type(e).__name__, error=str(e))
            raise Unauthorized("invalid credential")

        if identity != target:
            log.info("auth.forbidden", subject=identity, target=target)
            raise Forbidden("not permitted on this resource")

        log.debug("auth.admitted", subject=identity)
        return identity

    async def run(
        self,
        path_identity: str,
        authorization: Optional[str],
        next_stage: Callable[[int], Awaitable[T]],
        ctx: RequestContext,
    ) -> T:
        """Pipeline-stage form: call ``next_stage`` with the verified identity."""
        identity = self.authorize(path_identity, authorization, ctx)
        return await next_stage(identity)
