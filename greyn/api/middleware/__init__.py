"""
ASGI middleware: request correlation and gateway rate limiting.
"""

from greyn.api.middleware.rate_limit import RateLimitMiddleware
from greyn.api.middleware.request_id import RequestIdMiddleware

__all__ = ["RateLimitMiddleware", "RequestIdMiddleware"]
