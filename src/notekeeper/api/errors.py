"""Translate NoteKeeperError into HTTP responses.

Learn: Services raise tagged exceptions and never build responses.
This single handler picks the status code from the exception class,
logs at a severity that matches the failure (client mistakes at info,
timeouts at warning, faults at error with the underlying cause), and
returns only the user-safe ``detail``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from notekeeper.errors import DeadlineExceeded, NoteKeeperError, Unauthorized

logger = structlog.get_logger("notekeeper.api")


async def handle_notekeeper_error(request: Request, exc: NoteKeeperError) -> JSONResponse:
    fields = {
        "path": request.url.path,
        "method": request.method,
        "tag": exc.tag,
        "status": exc.status_code,
    }
    if exc.status_code >= 500 and not isinstance(exc, DeadlineExceeded):
        logger.error("request.failed", error=str(exc), **fields)
    elif isinstance(exc, DeadlineExceeded):
        logger.warning("request.deadline_exceeded", error=str(exc), **fields)
    else:
        logger.info("request.rejected", detail=exc.detail, **fields)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NoteKeeperError, handle_notekeeper_error)
