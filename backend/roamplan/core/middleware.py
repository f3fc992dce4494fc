# backend/roamplan/core/middleware.py

import math
import threading
import time
from collections import deque
from typing import Deque, Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from roamplan.core.config_loader import parse_rate, settings
from roamplan.core.errors import RateLimitExceededError, internal_error_response
from roamplan.core.logger import logger
from roamplan.core.security import bearer_subject


# -------------------------------------------------------------------
# UNEXPECTED ERRORS
# -------------------------------------------------------------------
class UnexpectedErrorMiddleware(BaseHTTPMiddleware):
    """
    Turns unhandled exceptions into the 500 JSON body.

    Registered innermost so the rate-limit and security-header layers
    still decorate the response.
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as e:
            return internal_error_response(request, e)


# -------------------------------------------------------------------
# SECURITY HEADERS
# -------------------------------------------------------------------
CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "img-src 'self' data: https:; "
    "script-src 'self'; "
    "style-src 'self' 'unsafe-inline'; "
    "frame-ancestors 'none'; "
    "base-uri 'self'"
)

SECURITY_HEADERS = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(self), camera=(), microphone=()",
}

HSTS_HEADER = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, hsts: bool = False):
        super().__init__(app)
        self.headers = dict(SECURITY_HEADERS)
        if hsts:
            self.headers["Strict-Transport-Security"] = HSTS_HEADER

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response


# -------------------------------------------------------------------
# RATE LIMITING
# -------------------------------------------------------------------
SWEEP_INTERVAL = 1000


class SlidingWindowLimiter:
    """
    In-process sliding-window log limiter.

    Keeps the timestamps of accepted hits per key; a hit is accepted when
    fewer than `limit` hits fall inside the last `window` seconds. Every
    `sweep_interval` hits, keys whose newest hit has left its window are
    dropped so idle clients do not accumulate.
    """

    def __init__(self, sweep_interval: int = SWEEP_INTERVAL):
        self._hits: Dict[Tuple[str, str], Deque[float]] = {}
        self._windows: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()
        self.sweep_interval = max(1, sweep_interval)
        self._calls = 0

    def __len__(self) -> int:
        return len(self._hits)

    def hit(self, key: Tuple[str, str], limit: int, window: int, now: Optional[float] = None) -> Tuple[bool, int, int]:
        """Returns (allowed, remaining, retry_after_seconds)."""
        now = time.monotonic() if now is None else now

        with self._lock:
            self._calls += 1
            if self._calls % self.sweep_interval == 0:
                self._sweep(now)

            hits = self._hits.get(key)
            if hits is None:
                hits = self._hits[key] = deque()
            self._windows[key] = window

            while hits and hits[0] <= now - window:
                hits.popleft()

            if len(hits) >= limit:
                retry_after = max(1, math.ceil(hits[0] + window - now))
                return False, 0, retry_after

            hits.append(now)
            return True, limit - len(hits), 0

    def _sweep(self, now: float):
        expired = [
            key for key, hits in self._hits.items()
            if not hits or hits[-1] <= now - self._windows[key]
        ]
        for key in expired:
            del self._hits[key]
            del self._windows[key]

        if expired:
            logger.debug(f"Rate limiter dropped {len(expired)} idle keys, {len(self._hits)} left")

    def reset(self):
        with self._lock:
            self._hits.clear()
            self._windows.clear()
            self._calls = 0


AUTH_PREFIX = "/api/v1/auth"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, default_rate: str, auth_rate: str):
        super().__init__(app)
        self.limiter = SlidingWindowLimiter()
        self.rates = {
            "default": parse_rate(default_rate),
            "auth": parse_rate(auth_rate),
        }

    @staticmethod
    def client_key(request: Request) -> str:
        sub = bearer_subject(request.headers.get("authorization"))
        if sub:
            return f"user:{sub}"
        host = request.client.host if request.client else "unknown"
        return f"ip:{host}"

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)

        bucket = "auth" if path.startswith(AUTH_PREFIX) else "default"
        limit, window = self.rates[bucket]
        client = self.client_key(request)

        allowed, remaining, retry_after = self.limiter.hit((bucket, client), limit, window)
        if not allowed:
            logger.warning(f"Rate limit hit: {client} on {bucket} ({request.method} {path})")
            exc = RateLimitExceededError(retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_dict(),
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        return response


def hsts_enabled() -> bool:
    return not settings.is_development
