"""Request-scoped context passed explicitly to the guard and the stores.

Learn: Every request gets one RequestContext carrying an immutable request
id and a structlog logger already bound with it. Components take the
context as their first argument instead of reaching for ambient state,
so a log line from the note store carries the same request_id as the
access log for that request.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog


@dataclass(frozen=True)
class RequestContext:
    request_id: str
    log: Any = field(repr=False, compare=False)

    @classmethod
    def new(cls, request_id: Optional[str] = None) -> "RequestContext":
        rid = request_id or str(uuid.uuid4())
        return cls(request_id=rid, log=structlog.get_logger("notekeeper").bind(request_id=rid))
