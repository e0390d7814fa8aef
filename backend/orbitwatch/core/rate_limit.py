"""
Global request rate limit.

A single fixed window shared by every route and every client: at most
`limit` requests are admitted per `window_seconds`, counted from the first
request of the window. Excess requests are rejected with 429, never queued.
Background polling does not pass through here.
"""

import logging
import time
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from orbitwatch.services.base import RateLimitExceeded

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-window admission counter.

    try_acquire() has no await in it, so on one event loop the
    check-and-increment is atomic.
    """

    def __init__(
        self,
        limit: int = 5,
        window_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._window_start: float = 0.0
        self._count = 0
        self._rejected_total = 0

    @property
    def rejected_total(self) -> int:
        return self._rejected_total

    def try_acquire(self) -> bool:
        now = self._clock()
        if self._count == 0 or now - self._window_start >= self.window_seconds:
            self._window_start = now
            self._count = 0

        if self._count >= self.limit:
            self._rejected_total += 1
            return False

        self._count += 1
        return True

    def check(self) -> None:
        """Admit one request or raise RateLimitExceeded."""
        if not self.try_acquire():
            raise RateLimitExceeded(
                "rate-limit",
                "Too many requests",
                {"limit": self.limit, "window_seconds": self.window_seconds},
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests over the global limit before they reach a route."""

    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next):
        try:
            self.limiter.check()
        except RateLimitExceeded as e:
            logger.debug(
                f"Rejected {request.method} {request.url.path}: {e.message} "
                f"({self.limiter.rejected_total} rejected so far)"
            )
            return JSONResponse(status_code=e.status_code, content={"detail": e.message})
        return await call_next(request)
