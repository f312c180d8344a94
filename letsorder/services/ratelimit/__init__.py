"""
Rate Limiter Factory

Returns the in-process or Redis limiter based on RATE_LIMIT_BACKEND.
"""

import logging
from functools import lru_cache

from letsorder.core.config import RateLimitBackend, get_settings
from letsorder.services.ratelimit.base import BaseRateLimiter
from letsorder.services.ratelimit.memory import InMemoryRateLimiter
from letsorder.services.ratelimit.redis import RedisRateLimiter

logger = logging.getLogger(__name__)


@lru_cache()
def get_rate_limiter() -> BaseRateLimiter:
    """Get the configured rate limiter."""
    settings = get_settings()

    if settings.rate_limit_backend == RateLimitBackend.REDIS:
        logger.info("Rate Limiter: Using RedisRateLimiter")
        return RedisRateLimiter(
            settings.redis_url,
            settings.rate_limit_max_requests,
            settings.rate_limit_window_seconds,
        )

    logger.info("Rate Limiter: Using InMemoryRateLimiter")
    return InMemoryRateLimiter(
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
    )


def reset_rate_limiter() -> None:
    """Clear the cached limiter instance."""
    get_rate_limiter.cache_clear()


__all__ = [
    "get_rate_limiter",
    "reset_rate_limiter",
    "BaseRateLimiter",
    "InMemoryRateLimiter",
    "RedisRateLimiter",
]
