"""
Error taxonomy and centralized error capture.

Service code raises one of the InkwellError subclasses; the HTTP layer maps
them to status codes via `register_exception_handlers`. Unexpected failures
go to `capture_exception`, which always logs and also reports to Sentry once
`init_sentry` has been called with a DSN.

Usage:
    raise NotFoundError("Post", post_id)

    # Best-effort work that must never fail the caller
    with ErrorHandler("increment_views", context={"post_id": 12}):
        increment_views(session, 12)
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from inkwell.core.context import get_context_dict
from inkwell.core.logging_config import get_logger

logger = get_logger(__name__)

__all__ = [
    "InkwellError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "StorageError",
    "init_sentry",
    "capture_exception",
    "ErrorHandler",
    "error_boundary",
    "register_exception_handlers",
]


# ============== TAXONOMY ==============


class InkwellError(Exception):
    """Base class for errors the API knows how to report."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message}


class ValidationError(InkwellError):
    """Malformed or missing fields. Carries field-level detail."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "errors": self.errors}


class NotFoundError(InkwellError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found" if resource_id is None else f"{resource} {resource_id} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id


class AuthorizationError(InkwellError):
    """Unauthenticated (401) or non-admin (403) actor attempting a mutation."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Not enough permissions", authenticated: bool = True):
        super().__init__(message)
        if not authenticated:
            self.status_code = status.HTTP_401_UNAUTHORIZED


class StorageError(InkwellError):
    """Persistence failure. The message shown to callers is always generic."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, operation: str):
        super().__init__(f"Failed to {operation}")
        self.operation = operation


# ============== SENTRY ==============

_sentry_enabled = False

# Expected outcomes, not incidents
_NOT_REPORTED = (ValidationError, NotFoundError, AuthorizationError)


def init_sentry(dsn: str, environment: str, traces_sample_rate: float = 0.0) -> bool:
    """
    Turn on Sentry reporting. Returns False (and stays log-only) without a DSN.

    The logging integration records breadcrumbs only; events are sent by
    `capture_exception` so each failure is reported once.
    """
    global _sentry_enabled

    if not dsn:
        logger.info("Sentry disabled, no DSN configured")
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    from sentry_sdk.integrations.starlette import StarletteIntegration

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(event_level=None),
        ],
        ignore_errors=list(_NOT_REPORTED),
        before_send=_drop_health_checks,
    )
    _sentry_enabled = True
    logger.info("Sentry enabled", environment=environment, traces_sample_rate=traces_sample_rate)
    return True


def _drop_health_checks(event: Dict[str, Any], hint: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    url = event.get("request", {}).get("url", "")
    if url.endswith("/health"):
        return None
    return event


def _apply_context(scope: Any, context: Dict[str, Any]) -> None:
    if context.get("request_id"):
        scope.set_tag("request_id", context["request_id"])
    if context.get("user_id") is not None:
        scope.set_user({"id": str(context["user_id"])})
    for key, value in context.items():
        if value is not None:
            scope.set_extra(key, value)


def capture_exception(
    exc: BaseException,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error",
    fingerprint: Optional[Sequence[str]] = None,
) -> Optional[str]:
    """
    Log an exception with the request context; report it to Sentry if enabled.

    Returns the Sentry event id, or None when nothing was sent.
    """
    merged = {**get_context_dict(), "error_type": type(exc).__name__, **(context or {})}
    logger.error("Exception captured", exc_info=exc, **merged)

    if not _sentry_enabled:
        return None

    import sentry_sdk

    with sentry_sdk.new_scope() as scope:
        _apply_context(scope, merged)
        scope.level = level
        if fingerprint:
            scope.fingerprint = list(fingerprint)
        return sentry_sdk.capture_exception(exc)


class ErrorHandler:
    """
    Context manager that captures an exception and, unless `reraise` is set,
    suppresses it. After the block, `failed` tells whether anything went wrong.

    Exception types listed in `passthrough` are neither captured nor
    suppressed, e.g. NotFoundError from a counter the caller must turn into 404.
    """

    def __init__(
        self,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
        reraise: bool = False,
        passthrough: tuple[type[BaseException], ...] = (),
    ):
        self.operation = operation
        self.context = context or {}
        self.reraise = reraise
        self.passthrough = passthrough
        self.failed = False
        self.event_id: Optional[str] = None

    def __enter__(self) -> "ErrorHandler":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_val is None or isinstance(exc_val, self.passthrough):
            return False
        if not isinstance(exc_val, Exception):
            # KeyboardInterrupt, SystemExit, cancellation
            return False

        self.failed = True
        self.event_id = capture_exception(
            exc_val,
            context={"operation": self.operation, **self.context},
            fingerprint=[self.operation, type(exc_val).__name__],
        )
        return not self.reraise


@contextmanager
def error_boundary(operation: str, **context: Any) -> Iterator[ErrorHandler]:
    """
    Capture and suppress any error raised in the block.

        with error_boundary("publish_scheduled_posts"):
            run_publish_sweep()
    """
    with ErrorHandler(operation, context=context) as handler:
        yield handler


# ============== HTTP MAPPING ==============


def register_exception_handlers(app: FastAPI) -> None:
    """Translate the taxonomy (and FastAPI's own request validation) into JSON."""

    @app.exception_handler(InkwellError)
    async def inkwell_error_handler(request: Request, exc: InkwellError) -> JSONResponse:
        if isinstance(exc, StorageError):
            logger.error("Storage failure", operation=exc.operation)
        else:
            logger.info("Request rejected", error_type=type(exc).__name__, status_code=exc.status_code)

        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Same shape as ValidationError raised by the services
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": "Invalid request", "errors": errors},
        )
