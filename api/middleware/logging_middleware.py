"""
Request logging middleware with correlation IDs for request tracing.

The request ID is bound into structlog's context variables, so every record
logged while the request is handled carries it as a `request_id` field.
"""
import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.stdlib.get_logger(__name__)


def new_request_id() -> str:
    """Short unique ID for a single request."""
    return uuid.uuid4().hex[:12]


def get_request_id() -> str:
    """Get the current request ID from context."""
    return structlog.contextvars.get_contextvars().get("request_id", "")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that:
    1. Assigns a unique request ID to each request (also stored on request.state)
    2. Logs request start/end with timing
    3. Echoes the ID back in the X-Request-ID header
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = new_request_id()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        request.state.request_id = request_id

        path = request.url.path
        start_time = time.time()
        logger.info("Request started", method=request.method, path=path)

        try:
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            log = logger.info if response.status_code < 400 else logger.warning
            log("Request finished", status_code=response.status_code, duration_ms=round(duration_ms))

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.exception("Request failed", error=str(e)[:100], duration_ms=round(duration_ms))
            raise
        finally:
            structlog.contextvars.unbind_contextvars("request_id")


def get_logger(name: str):
    """structlog logger; records pick up the request ID from context."""
    return structlog.stdlib.get_logger(name)
