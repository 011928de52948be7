"""Redis client factory: used for the response cache and rate limiting.

Redis is never authoritative. When it is down every cache call degrades to a
miss and the rate limiter lets requests through.

from_url() does not connect; the first command does. Building the client
at app creation is therefore safe even when Redis is not running.
"""

import redis.asyncio as aioredis

from config.settings import settings

_redis_pool: aioredis.Redis | None = None


def redis_client() -> aioredis.Redis:
    """Get or create the shared Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.CACHE_TIMEOUT_SECONDS,
            socket_timeout=settings.CACHE_TIMEOUT_SECONDS,
        )
    return _redis_pool


async def get_redis() -> aioredis.Redis:
    return redis_client()


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is not None:
        await _redis_pool.aclose()
        _redis_pool = None
