"""
Middleware package.

WHY: Middleware provides cross-cutting request handling that applies to
all routes.
"""

from app.middleware.request_context import (
    RequestContextMiddleware,
    get_request_context,
    get_client_ip,
    RequestContext,
)

__all__ = [
    "RequestContextMiddleware",
    "get_request_context",
    "get_client_ip",
    "RequestContext",
]
