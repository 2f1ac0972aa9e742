"""
Retry helpers for database work.

Two failures are worth a second try:

- transient connection trouble (dropped or invalidated connections, a
  locked SQLite file, a database restarting): `db_retry` reruns the call
  after a short backoff;
- a lost race for a post's next version number, where the unique
  (post_id, version) constraint rejects the second of two concurrent edits:
  `retry_on_conflict` rolls back and reruns the whole unit of work so it
  re-reads the current max version.

Everything else propagates untouched.
"""

import functools
import random
import time
from typing import Callable, Iterator, ParamSpec, TypeVar

from sqlalchemy.exc import DBAPIError, DisconnectionError, IntegrityError

from inkwell.core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
P = ParamSpec("P")

TRANSIENT_MARKERS = (
    "database is locked",
    "connection refused",
    "connection reset",
    "server closed the connection",
    "could not connect to server",
    "the database system is starting up",
    "the database system is shutting down",
    "terminating connection due to administrator command",
)

# Constraint name (PostgreSQL) and column list (SQLite) of the version-number race
VERSION_CONFLICT_MARKERS = (
    "uq_post_version_post_id_version",
    "post_version.post_id, post_version.version",
)


def is_transient_error(error: BaseException) -> bool:
    if isinstance(error, DisconnectionError):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    message = str(error).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def is_version_conflict(error: BaseException) -> bool:
    if not isinstance(error, IntegrityError):
        return False
    message = str(error)
    return any(marker in message for marker in VERSION_CONFLICT_MARKERS)


def backoff_delays(retries: int, base_delay: float, max_delay: float) -> Iterator[float]:
    """Exponential delays: base, 2*base, 4*base, ... capped at max_delay."""
    for attempt in range(retries):
        yield min(base_delay * (2**attempt), max_delay)


def db_retry(
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Retry the decorated call on transient database errors.

    The call must open its own session; a retried call starts from scratch.
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            delays = backoff_delays(max_retries, base_delay, max_delay)
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except (DBAPIError, DisconnectionError) as e:
                    delay = next(delays, None)
                    if delay is None or not is_transient_error(e):
                        raise
                    logger.warning(
                        "Transient database error, retrying",
                        function=func.__name__,
                        attempt=attempt,
                        delay_seconds=delay,
                        error=str(e),
                    )
                    time.sleep(delay)
                    attempt += 1

        return wrapper

    return decorator


def retry_on_conflict(
    func: Callable[[], T],
    attempts: int,
    on_conflict: Callable[[], None],
    operation: str = "unknown",
    base_delay: float = 0.02,
    max_delay: float = 0.5,
) -> T:
    """
    Run `func`, rerunning it when it fails with a version-number conflict.

    `on_conflict` runs after every IntegrityError and must undo the failed
    attempt (normally `session.rollback`). Retries wait a jittered
    exponential delay so competing writers spread out. Other integrity
    errors, and a conflict on the last attempt, are re-raised.
    """
    delays = backoff_delays(max(attempts - 1, 0), base_delay, max_delay)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except IntegrityError as e:
            on_conflict()
            delay = next(delays, None)
            if delay is None or not is_version_conflict(e):
                raise
            delay = random.uniform(0, delay)
            logger.info(
                "Version number conflict, retrying",
                operation=operation,
                attempt=attempt,
                delay_seconds=round(delay, 3),
            )
            time.sleep(delay)
    raise ValueError("attempts must be at least 1")
