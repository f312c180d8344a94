"""
Redis Rate Limiter

Sliding window shared by every process pointing at the same Redis, kept as
one sorted set per key (member and score are the request timestamp).
"""

import logging
import time
import uuid

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from letsorder.services.ratelimit.base import BaseRateLimiter

logger = logging.getLogger(__name__)


class RedisRateLimiter(BaseRateLimiter):
    """Rate limiter backed by Redis sorted sets."""

    key_prefix = "letsorder:ratelimit:"

    def __init__(self, redis_url: str, max_requests: int, window_seconds: float):
        super().__init__(max_requests, window_seconds)
        self.client = aioredis.from_url(redis_url, socket_timeout=2)
        logger.info(f"RedisRateLimiter initialized ({max_requests} requests / {window_seconds}s)")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def hit(self, key: str) -> bool:
        redis_key = f"{self.key_prefix}{key}"
        now = time.time()

        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(redis_key, 0, now - self.window_seconds)
                pipe.zcard(redis_key)
                _, count = await pipe.execute()

            if count >= self.max_requests:
                return False

            async with self.client.pipeline(transaction=True) as pipe:
                pipe.zadd(redis_key, {f"{now}:{uuid.uuid4().hex[:8]}": now})
                pipe.expire(redis_key, int(self.window_seconds) + 1)
                await pipe.execute()
            return True

        except RedisError as e:
            # Advisory limiter: an unreachable Redis lets traffic through
            logger.error(f"Rate limiter unavailable, allowing request: {e}")
            return True

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis rate limiter connection pool closed")
