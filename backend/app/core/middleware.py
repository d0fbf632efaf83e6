"""
Request context middleware.

Each request gets a request id (taken from X-Request-ID or X-Correlation-ID,
otherwise a new UUID). The id is held in a ContextVar for the logging filter,
so every log line of one report carries it, and it is echoed back in the
X-Request-ID response header. The request outcome is logged once with path,
method, status and duration.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
INBOUND_ID_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

# Paths polled by load balancers; logged at DEBUG only
QUIET_PATHS = frozenset({"/health", "/health/classifier"})

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current request id from context."""
    return correlation_id_var.get()


def request_id_headers(request: Request) -> dict[str, str]:
    """X-Request-ID header for responses built outside the middleware."""
    request_id: Optional[str] = getattr(request.state, "correlation_id", None)
    return {REQUEST_ID_HEADER: request_id} if request_id else {}


def _inbound_request_id(request: Request) -> Optional[str]:
    for header in INBOUND_ID_HEADERS:
        value = request.headers.get(header)
        if value and value.strip():
            return value.strip()
    return None


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Assigns the request id and logs the request outcome."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = _inbound_request_id(request) or str(uuid.uuid4())
        request.state.correlation_id = request_id
        token = correlation_id_var.set(request_id)
        started = time.perf_counter()
        # An exception escaping call_next becomes a 500 in the catch-all handler
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            _log_outcome(request, status_code, started)
            correlation_id_var.reset(token)


def _log_outcome(request: Request, status_code: int, started: float) -> None:
    duration_ms = round((time.perf_counter() - started) * 1000, 1)
    path = request.url.path
    if status_code >= 500:
        level = logging.ERROR
    elif path in QUIET_PATHS:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logger.log(
        level,
        "%s %s -> %d (%.1fms)",
        request.method,
        path,
        status_code,
        duration_ms,
        extra={
            "path": path,
            "method": request.method,
            "status_code": status_code,
            "duration_ms": duration_ms,
        },
    )
