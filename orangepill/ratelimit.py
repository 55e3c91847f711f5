from __future__ import annotations

import math
import time
from typing import Callable

from fastapi import HTTPException, Request, Response


class RateLimiter:
    """Fixed-window request counter per client, in memory.

    Windows start at a client's first request and reset once
    ``window`` seconds have passed.
    """

    def __init__(
        self,
        max_requests: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        # client -> (window start, hits)
        self._hits: dict[str, tuple[float, int]] = {}

    @property
    def enabled(self) -> bool:
        return self.max_requests > 0

    def hit(self, client: str) -> tuple[bool, int, float]:
        """Count a request; return (allowed, remaining, seconds until reset)."""
        now = self._clock()
        start, count = self._hits.get(client, (now, 0))
        if now - start >= self.window:
            start, count = now, 0
        count += 1
        self._hits[client] = (start, count)
        reset = max(0.0, self.window - (now - start))
        if len(self._hits) > 10_000:
            self._prune(now)
        return count <= self.max_requests, max(0, self.max_requests - count), reset

    def _prune(self, now: float) -> None:
        for key in [k for k, (s, _) in self._hits.items() if now - s >= self.window]:
            del self._hits[key]


async def enforce_rate_limit(request: Request, response: Response) -> None:
    """Dependency that applies the app's RateLimiter to every route but /healthz."""
    limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
    if limiter is None or not limiter.enabled:
        return
    if request.url.path == "/healthz":
        return
    client = request.client.host if request.client else "unknown"
    allowed, remaining, reset = limiter.hit(client)
    reset_s = str(math.ceil(reset))
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many requests, please try again later.",
            headers={"Retry-After": reset_s},
        )
    response.headers["RateLimit-Limit"] = str(limiter.max_requests)
    response.headers["RateLimit-Remaining"] = str(remaining)
    response.headers["RateLimit-Reset"] = reset_s
