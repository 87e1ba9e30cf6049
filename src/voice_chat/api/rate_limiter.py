"""Per-requester sliding window rate limiting."""

import asyncio
import time
from collections import deque
from typing import Deque, Dict, Optional

from fastapi import Request
from structlog import get_logger

logger = get_logger()

USER_HEADER = "X-User-Id"


class RateLimitExceeded(Exception):
    """Raised when a key has used up its requests for the current window."""

    def __init__(self, limit: int, window: int) -> None:
        super().__init__(f"Rate limit of {limit} requests per {window} seconds exceeded")
        self.limit = limit
        self.window = window


class RateLimiter:
    """Sliding window limiter keeping request timestamps per key."""

    def __init__(self, rate_limit: int = 50, time_window: int = 60, trust_user_header: bool = True) -> None:
        self.rate_limit = rate_limit
        self.time_window = time_window  # seconds
        self.trust_user_header = trust_user_header
        self.requests: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None
        logger.info("rate_limiter_initialized", rate_limit=rate_limit, time_window=time_window)

    async def start(self) -> None:
        """Start the background purge of idle keys."""
        if self._cleanup_task is None:
            self._cleanup_task = asyncio.create_task(self._periodic_cleanup())

    async def stop(self) -> None:
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

    def _expire(self, key: str, now: float) -> Deque[float]:
        timestamps = self.requests.setdefault(key, deque())
        while timestamps and now - timestamps[0] >= self.time_window:
            timestamps.popleft()
        return timestamps

    async def _periodic_cleanup(self) -> None:
        while True:
            await asyncio.sleep(self.time_window)
            async with self._lock:
                now = time.monotonic()
                for key in list(self.requests):
                    if not self._expire(key, now):
                        del self.requests[key]

    async def check_rate_limit(self, key: str) -> int:
        """Record a request for ``key`` and return how many are left.

        Raises RateLimitExceeded when the window is already full.
        """
        await self.start()

        async with self._lock:
            now = time.monotonic()
            timestamps = self._expire(key, now)
            if len(timestamps) >= self.rate_limit:
                logger.warning(
                    "rate_limit_exceeded",
                    key=key,
                    current_requests=len(timestamps),
                    rate_limit=self.rate_limit,
                )
                raise RateLimitExceeded(self.rate_limit, self.time_window)
            timestamps.append(now)
            return self.rate_limit - len(timestamps)


def requester_key(request: Request, trust_user_header: bool = True) -> str:
    """Key requests by requester and path.

    The user header is only trustworthy behind the authenticating proxy,
    which must drop any client-supplied value. With ``trust_user_header``
    off, requests are keyed by client address alone so rotating the header
    does not buy a fresh budget.
    """
    host = request.client.host if request.client else "unknown"
    requester = request.headers.get(USER_HEADER) if trust_user_header else None
    return f"{requester or host}:{request.url.path}"


async def rate_limit_middleware(
    request: Request, rate_limiter: Optional[RateLimiter] = None
) -> Optional[int]:
    """Apply the limiter to one incoming request, returning the remaining budget."""
    if rate_limiter is None:
        return None
    key = requester_key(request, rate_limiter.trust_user_header)
    return await rate_limiter.check_rate_limit(key)
