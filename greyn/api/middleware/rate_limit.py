"""
Gateway rate limiting, per caller.

Auth POSTs (login, signup, refresh) are counted per client IP; every other
API call is counted per user when a valid bearer token is present, else
per IP. Windows are fixed and held in process memory.
"""

import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from greyn.api.deps import get_client_ip
from greyn.config import get_settings
from greyn.kernel.identity.jwt import verify_access_token
from greyn.logging_config import get_logger

logger = get_logger(__name__)

WINDOW_SECONDS = 60
TOO_MANY_REQUESTS = "Too many requests. Please try again later."


def _user_id_from_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        return None
    payload = verify_access_token(auth[7:].strip())
    return payload.sub if payload else None


class FixedWindowCounter:
    """key -> (count, window_start). Monotonic clock, so wall-clock jumps do not matter."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._clock = clock

    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Count one request. Returns False, without counting, once the window is full."""
        now = self._clock()
        count, start = self._windows.get(key, (0, now))
        if now - start >= window_seconds:
            count, start = 0, now
        if count >= limit:
            return False
        self._windows[key] = (count + 1, start)
        return True

    def prune(self, max_age_seconds: int) -> None:
        now = self._clock()
        stale = [k for k, (_, start) in self._windows.items() if now - start > max_age_seconds]
        for key in stale:
            del self._windows[key]

    def clear(self) -> None:
        self._windows.clear()


_counter = FixedWindowCounter()


def get_counter() -> FixedWindowCounter:
    return _counter


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        path = request.url.path or ""
        if not settings.rate_limit_enabled or not path.startswith(settings.api_v1_prefix):
            return await call_next(request)

        counter = get_counter()
        counter.prune(max_age_seconds=WINDOW_SECONDS * 10)

        ip = get_client_ip(request, settings.trusted_proxies) or "unknown"
        if request.method == "POST" and path.startswith(f"{settings.api_v1_prefix}/auth"):
            key = f"auth:{ip}"
            limit = settings.rate_limit_auth_per_minute
        else:
            key = f"api:{_user_id_from_token(request) or ip}"
            limit = settings.rate_limit_api_per_minute

        if not counter.hit(key, limit, WINDOW_SECONDS):
            logger.warning("Rate limit exceeded", extra={"key": key, "path": path})
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "message": TOO_MANY_REQUESTS, "detail": TOO_MANY_REQUESTS},
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )
        return await call_next(request)
