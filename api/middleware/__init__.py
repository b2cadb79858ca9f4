"""
Middleware package for the API.
"""
from middleware.logging_middleware import (
    RequestLoggingMiddleware,
    get_logger,
    get_request_id,
    new_request_id,
)

__all__ = [
    "RequestLoggingMiddleware",
    "get_logger",
    "get_request_id",
    "new_request_id",
]
