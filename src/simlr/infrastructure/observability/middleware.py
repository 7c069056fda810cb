"""Middleware for observability: request/response logging."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from simlr.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


# Flow: take correlation id from the header (or generate one) → log request →
# call the app → log status/duration → echo the id back in the response header.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log details."""
        set_correlation_id(request.headers.get(CORRELATION_HEADER))

        method = request.method
        path = request.url.path
        logger.debug(
            "→ %s %s",
            method,
            path,
            extra={
                "method": method,
                "path": path,
                "query_params": str(request.query_params),
                "client_ip": request.client.host if request.client else "unknown",
            },
        )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Request failed: %s %s",
                method,
                path,
                extra={"method": method, "path": path, "error_type": type(e).__name__},
            )
            raise

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        status_mark = "✓" if response.status_code < 400 else "✗"
        logger.info(
            "%s %s %s → %d (%dms)",
            status_mark,
            method,
            path,
            response.status_code,
            duration_ms,
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        response.headers[CORRELATION_HEADER] = get_correlation_id()
        return response
