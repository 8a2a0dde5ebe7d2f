"""
Middleware components for request processing.
"""

from wandr.middleware.request_context import RequestContextMiddleware

__all__ = ["RequestContextMiddleware"]
