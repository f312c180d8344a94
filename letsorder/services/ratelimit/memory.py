"""
In-Memory Rate Limiter

Per-process sliding window. Each worker process keeps its own table, so the
effective limit scales with the number of workers.

Keys whose window has drained are dropped, either when they are hit again or
by a sweep that runs at most once per window.
"""

import asyncio
import logging
import time
from collections import deque
from typing import Callable

from letsorder.services.ratelimit.base import BaseRateLimiter

logger = logging.getLogger(__name__)


class InMemoryRateLimiter(BaseRateLimiter):
    """Sliding window over a deque of request times per key."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(max_requests, window_seconds)
        self._clock = clock
        self._hits: dict[str, deque] = {}
        self._last_sweep = clock()
        self._lock = asyncio.Lock()
        logger.info(
            f"InMemoryRateLimiter initialized ({max_requests} requests / {window_seconds}s)"
        )

    @property
    def provider_name(self) -> str:
        return "memory"

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    def _prune(self, window: deque, now: float) -> None:
        while window and now - window[0] >= self.window_seconds:
            window.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._hits):
            window = self._hits[key]
            self._prune(window, now)
            if not window:
                del self._hits[key]
        self._last_sweep = now

    async def hit(self, key: str) -> bool:
        async with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)

            window = self._hits.get(key)
            if window is not None:
                self._prune(window, now)
                if len(window) >= self.max_requests:
                    return False
            else:
                window = self._hits[key] = deque()

            window.append(now)
            return True

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = self._clock()

    async def health_check(self) -> bool:
        return True
