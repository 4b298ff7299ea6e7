"""Shared deadline/cancellation handling for the storage services.

Learn: Every store operation is a single statement plus commit, run under
its own asyncio.timeout (distinct from any request-level timeout). The
outcome is classified for the caller:

- the timeout fired         → DeadlineExceeded
- the caller was cancelled  → Cancelled (still a CancelledError)
- SQLAlchemy raised         → StorageFault
- NoteKeeperError raised    → passed through unchanged

Interrupted work is never committed; the session is rolled back when
the request closes it.
"""

import asyncio
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notekeeper.context import RequestContext
from notekeeper.errors import Cancelled, DeadlineExceeded, NoteKeeperError, StorageFault

T = TypeVar("T")

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def integrity_code(exc: IntegrityError) -> str | None:
    """SQLSTATE of an integrity error, or a best guess for drivers without one."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code
    text = str(orig).lower()
    if "unique" in text:
        return UNIQUE_VIOLATION
    if "foreign key" in text:
        return FOREIGN_KEY_VIOLATION
    return None


class StoreBase:
    def __init__(self, db: AsyncSession, timeout: float):
        self.db = db
        self.timeout = timeout

    async def _run(
        self,
        ctx: RequestContext,
        op: str,
        work: Callable[[], Awaitable[T]],
    ) -> T:
        log = ctx.log.bind(op=op)
        try:
            async with asyncio.timeout(self.timeout):
                return await work()
        except TimeoutError as e:
            log.warning("store.deadline_exceeded", timeout=self.timeout)
            raise DeadlineExceeded(f"{op}: no result within {self.timeout}s") from e
        except Cancelled:
            raise
        except asyncio.CancelledError as e:
            log.info("store.cancelled")
            raise Cancelled(op) from e
        except NoteKeeperError:
            raise
        except SQLAlchemyError as e:
            raise StorageFault(f"{op}: {e}") from e
