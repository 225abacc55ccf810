"""
Middleware for trace ID propagation and request metrics.

- Reads X-Trace-ID (or X-Request-ID) from the request, generates one otherwise
- Makes trace and request IDs available to structured logging
- Echoes the trace ID in the response headers
- Records HTTP RED metrics
"""
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import (
    generate_trace_id,
    get_logger,
    set_request_id,
    set_trace_id,
)
from .metrics import normalize_endpoint, record_http_request

logger = get_logger(__name__)


class TraceIDMiddleware(BaseHTTPMiddleware):
    """Attach trace/request IDs to every request and record its latency."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        trace_id = (
            request.headers.get("X-Trace-ID")
            or request.headers.get("X-Request-ID")
            or generate_trace_id()
        )
        set_trace_id(trace_id)
        set_request_id(generate_trace_id())

        start_time = time.time()
        request.state.start_time = start_time
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            duration = time.time() - start_time
            record_http_request(
                method=request.method,
                endpoint=normalize_endpoint(request.url.path),
                status_code=status_code,
                duration_seconds=duration,
            )
            logger.info(
                "http_request_completed",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round(duration * 1000, 2),
            )
            set_request_id(None)

        response.headers["X-Trace-ID"] = trace_id
        return response
