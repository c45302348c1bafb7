"""FastAPI middleware to attach a unique X-Request-ID header to every request,
bind it into structlog contextvars, and write one access log line per request.
"""
from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from structlog.contextvars import bind_contextvars, clear_contextvars

logger = structlog.get_logger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a UUID4 request_id to each incoming request.

    The ID is returned in the "X-Request-ID" response header and bound into
    structlog contextvars so every log line emitted while the request is
    processed carries it, including the access line logged on completion.
    """

    def __init__(self, app, header_name: str = "X-Request-ID") -> None:  # type: ignore[override]
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:  # type: ignore[override]
        request_id = uuid.uuid4().hex
        bind_contextvars(request_id=request_id)
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response: Response = await call_next(request)
            logger.info(
                "Request handled",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        finally:
            # Never leak one request's context into the next
            clear_contextvars()

        response.headers[self.header_name] = request_id
        return response
