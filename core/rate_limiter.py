"""
Simple rate limiter middleware (in-memory, sliding window).

- Location updates arrive every few seconds per attendee; this caps a single
  client so a runaway device cannot flood the engine.
- Process-local like the ETA state itself.
- Usage: app.add_middleware(RateLimiterMiddleware, calls=120, per_seconds=60)
"""
import asyncio
import time

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request
from fastapi.responses import JSONResponse

from .response import error as resp_error

EXEMPT_PATHS = ("/health",)


class RateLimiterMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, calls: int = 60, per_seconds: int = 60):
        super().__init__(app)
        self.calls = calls
        self.per_seconds = per_seconds
        self._buckets: dict[str, list[float]] = {}
        self._lock = asyncio.Lock()

    def _client_key(self, request: Request) -> str:
        client = request.client.host if request.client else "anon"
        return f"ip:{client}"

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        key = self._client_key(request)
        now = time.time()
        async with self._lock:
            window_start = now - self.per_seconds
            timestamps = [ts for ts in self._buckets.get(key, []) if ts > window_start]
            if len(timestamps) >= self.calls:
                retry_after = max(int(timestamps[0] + self.per_seconds - now), 1)
                return JSONResponse(
                    status_code=429,
                    headers={"Retry-After": str(retry_after)},
                    content=resp_error(code="rate_limited", message=f"Rate limit exceeded. Retry after {retry_after} seconds"),
                )
            timestamps.append(now)
            self._buckets[key] = timestamps
        return await call_next(request)
