"""Overall request deadline.

Learn: Each store call already has its own short timeout
(query_timeout_seconds). This middleware bounds the whole request
(guard, every store call, serialization) with request_timeout_seconds
and answers 503 when it runs out.

The request deadline cancels whatever is in flight. If that happens to be
a store call, the store reports Cancelled rather than DeadlineExceeded,
because from the store's point of view its caller gave up. The Timeout
object's expired() tells the two apart: when our deadline fired, that
Cancelled is ours and becomes the 503; otherwise it is a real client
disconnect and keeps propagating.
"""

import asyncio

import structlog
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = structlog.get_logger("notekeeper.api")


class RequestTimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout: float):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        deadline = asyncio.timeout(self.timeout)
        try:
            async with deadline:
                await self.app(scope, receive, tracking_send)
            return
        except TimeoutError:
            pass
        except asyncio.CancelledError:
            if not deadline.expired():
                raise

        logger.warning(
            "request.timed_out",
            path=scope["path"],
            method=scope["method"],
            timeout=self.timeout,
            response_started=response_started,
        )
        if response_started:
            return

        response = JSONResponse({"detail": "service unavailable"}, status_code=503)
        await response(scope, receive, send)
