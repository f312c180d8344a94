"""
Rate Limiter Abstract Base Class

Sliding-window request counting keyed by an opaque string (the client
address at the HTTP layer). Advisory only: nothing relies on it for
correctness.
"""

from abc import ABC, abstractmethod


class BaseRateLimiter(ABC):
    """Abstract base class for rate limiters."""

    def __init__(self, max_requests: int, window_seconds: float):
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    async def hit(self, key: str) -> bool:
        """
        Record one request for ``key``.

        Returns:
            True if the request is within the limit, False if it should be
            rejected. Rejected requests are not counted.
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check backend connectivity."""
        pass

    async def close(self) -> None:
        """Release backend connections. Nothing to release by default."""
