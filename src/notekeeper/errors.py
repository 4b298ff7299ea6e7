"""Failure taxonomy shared by the credential, guard and storage layers.

Learn: Components raise these tagged exceptions; only the API layer turns
them into HTTP responses. Each class carries its status code and a
user-safe ``detail`` so the exception handler stays a single function.
Internal faults keep the underlying cause in ``str(exc)`` for logs but
always show "internal error" to callers.
"""

import asyncio


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


class NoteKeeperError(Exception):
    """Base for every condition the API layer knows how to answer."""

    status_code = 500
    tag = "internal_error"
    public_message: str | None = None

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def detail(self) -> str:
        return self.public_message or self.message or self.tag


class InvalidInput(NoteKeeperError, ValueError):
    """Malformed input the client can fix (400).

    Distinct from pydantic.ValidationError, which FastAPI answers with 422
    for bad request bodies and pydantic-settings raises for bad config.
    """

    status_code = 400
    tag = "invalid_input"


class Unauthorized(NoteKeeperError):
    """Missing, invalid or expired credential."""

    status_code = 401
    tag = "unauthorized"


class Forbidden(NoteKeeperError):
    """Authenticated, but not entitled to the resource."""

    status_code = 403
    tag = "forbidden"


class NotFound(NoteKeeperError):
    status_code = 404
    tag = "not_found"


class NoResults(NotFound):
    """The owner has no notes at all."""

    tag = "no_results"


class Conflict(NoteKeeperError):
    status_code = 409
    tag = "conflict"


class AlreadyExists(Conflict):
    """Unique-constraint violation on insert."""


class DeadlineExceeded(NoteKeeperError):
    status_code = 504
    tag = "deadline_exceeded"
    public_message = "request took too long to process, try again later"


class InternalError(NoteKeeperError):
    status_code = 500
    tag = "internal_error"
    public_message = "internal error"


class StorageFault(InternalError):
    """Unexpected database failure."""

    tag = "storage_fault"


class Cancelled(asyncio.CancelledError):
    """The caller went away while a storage call was in flight.

    Subclasses CancelledError so task cancellation keeps propagating;
    callers that care can still tell it apart from a timeout or fault.
    """

    tag = "cancelled"
