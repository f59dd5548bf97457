"""
Request logging middleware: one line per request with trace id, acting user and latency.
"""
import time
import uuid
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request and tag the response with its trace id."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse the caller's trace id so mobile and admin logs can be correlated
        trace_id = request.headers.get(TRACE_HEADER) or str(uuid.uuid4())
        request.state.trace_id = trace_id
        user = request.headers.get("X-User-Id", "-")

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.error(
                f"[{trace_id}] {request.method} {request.url.path} user={user} "
                f"-> EXCEPTION after {latency_ms}ms: {exc}",
                exc_info=True,
            )
            raise

        latency_ms = int((time.perf_counter() - start) * 1000)
        status_code = response.status_code
        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO
        logger.log(
            log_level,
            f"[{trace_id}] {request.method} {request.url.path} user={user} -> {status_code} ({latency_ms}ms)",
        )

        response.headers[TRACE_HEADER] = trace_id
        return response
