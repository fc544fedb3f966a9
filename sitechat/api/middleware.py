"""FastAPI middleware for request logging and context management."""

import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


def resolve_request_id(request: Request) -> str:
    """Reuse the caller's request ID (e.g. from the widget or a proxy) or mint one."""
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request ID into the structlog context and logs each request."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(request_id=request_id)
        log = logger.bind(method=request.method, path=request.url.path)

        start = time.perf_counter()
        log.debug("request_started")
        try:
            response = await call_next(request)
        except Exception as e:
            log.error("request_failed", error_type=type(e).__name__)
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        log.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
            request_id=request_id,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
