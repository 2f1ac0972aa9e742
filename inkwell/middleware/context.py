"""
Request context middleware.

Wraps every request in a `request_scope`: the request id comes from the
X-Request-ID header when it is a short plain token and is generated
otherwise; X-Correlation-ID is passed through. Both are echoed on the
response. One access log line per request, with latency.
"""

import re
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from inkwell.core.context import generate_request_id, request_scope
from inkwell.core.logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"

# Header values end up in log lines
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9_-]{1,64}")

QUIET_PATHS = frozenset({"/health"})


def incoming_id(value: Optional[str]) -> Optional[str]:
    """Return a client-supplied id if it is safe to log, else None."""
    if value and _ACCEPTED_ID.fullmatch(value):
        return value
    return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = incoming_id(request.headers.get(REQUEST_ID_HEADER)) or generate_request_id()
        correlation_id = incoming_id(request.headers.get(CORRELATION_ID_HEADER))
        request.state.request_id = request_id
        started = time.perf_counter()

        with request_scope(request_id, correlation_id, method=request.method, path=request.url.path):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception("Request crashed", elapsed_ms=_elapsed_ms(started))
                raise

            response.headers[REQUEST_ID_HEADER] = request_id
            if correlation_id:
                response.headers[CORRELATION_ID_HEADER] = correlation_id

            if request.url.path not in QUIET_PATHS:
                logger.info(
                    "Request handled",
                    status_code=response.status_code,
                    elapsed_ms=_elapsed_ms(started),
                )
            return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)
