"""
Per-request context for log correlation.

One immutable `RequestContext` lives in a ContextVar for the duration of an
HTTP request or a sweeper tick. `request_scope` installs it, binds the same
values to structlog so every log line carries them, and restores the previous
state on exit.

Usage:
    with request_scope(generate_request_id("sweep"), source="sweeper"):
        publish_due_posts(session)

    # Anywhere below:
    capture_exception(exc, context=get_context_dict())
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterator, Optional

import structlog


@dataclass(frozen=True)
class RequestContext:
    request_id: Optional[str] = None
    correlation_id: Optional[str] = None
    user_id: Optional[int] = None
    source: str = "http"


_current: ContextVar[RequestContext] = ContextVar("inkwell_request_context", default=RequestContext())


def generate_request_id(prefix: str = "req") -> str:
    """`{prefix}_` plus 16 hex chars, e.g. req_a1b2c3d4e5f6a7b8."""
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


def _update(**changes: Any) -> None:
    _current.set(replace(_current.get(), **changes))


@contextmanager
def request_scope(
    request_id: str,
    correlation_id: Optional[str] = None,
    source: str = "http",
    **log_fields: Any,
) -> Iterator[RequestContext]:
    """Install a fresh context (and matching structlog bindings) for a block."""
    ctx = RequestContext(request_id=request_id, correlation_id=correlation_id, source=source)
    token = _current.set(ctx)
    bound = {"request_id": request_id, **log_fields}
    if correlation_id:
        bound["correlation_id"] = correlation_id
    try:
        with structlog.contextvars.bound_contextvars(**bound):
            yield ctx
    finally:
        _current.reset(token)


def set_user_id(user_id: Optional[int]) -> None:
    """Called by the auth dependency once the actor is known."""
    _update(user_id=user_id)
    if user_id is not None:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def get_context_dict() -> Dict[str, Any]:
    return asdict(_current.get())
