"""Request context middleware — one RequestContext per request.

Learn: Every request gets a request id, either from the incoming
X-Request-ID header (for distributed tracing) or auto-generated. The id
lives in an immutable RequestContext stored in the ASGI scope state (so
request.state.context sees it), is bound to structlog's contextvars so
framework-level log lines carry it too, and is returned in the response
header.

This is a plain ASGI middleware rather than BaseHTTPMiddleware: the
endpoint runs in this same task, so a Cancelled raised by a store call
(the client went away) arrives here as itself. It is logged at info,
since nobody is waiting for an answer, and re-raised so the cancellation
finishes unwinding the task.
"""

import time

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from notekeeper.context import RequestContext
from notekeeper.errors import Cancelled


class RequestContextMiddleware:
    """Create the RequestContext and propagate its request id."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        ctx = RequestContext.new(Headers(scope=scope).get("X-Request-ID"))
        scope.setdefault("state", {})["context"] = ctx

        # Bind to structlog for correlated logging
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=ctx.request_id)

        path, method = scope["path"], scope["method"]
        started = time.perf_counter()
        status = None

        async def send_with_request_id(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
                MutableHeaders(scope=message)["X-Request-ID"] = ctx.request_id
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        except Cancelled as e:
            ctx.log.info("request.cancelled", op=str(e), path=path, method=method)
            raise

        ctx.log.debug(
            "request.completed",
            path=path,
            method=method,
            status=status,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
