"""Middleware components for request processing.

This module provides middleware for cross-cutting concerns: request
correlation ID tracking and CORS headers for browser clients.
"""

from .correlation_id import correlation_id_middleware, get_request_id, request_id_var
from .cors import make_cors_middleware

__all__ = [
    "correlation_id_middleware",
    "get_request_id",
    "make_cors_middleware",
    "request_id_var",
]
