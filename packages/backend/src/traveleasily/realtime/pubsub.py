"""Redis connection pool shared by the cache, rate limiter and health check.

Redis is optional: get_redis() raises RuntimeError until init_redis()
has run in the app lifespan, and callers treat that as "no Redis".
"""

from typing import Optional

import redis.asyncio as aioredis

from traveleasily.config import settings

# Global Redis connection pool (initialized in lifespan)
_redis: Optional[aioredis.Redis] = None


async def init_redis() -> aioredis.Redis:
    """Initialize the Redis connection pool."""
    global _redis
    _redis = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Verify connection
    await _redis.ping()
    return _redis


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def get_redis() -> aioredis.Redis:
    """Get the Redis connection (must be initialized first)."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


def get_redis_optional() -> Optional[aioredis.Redis]:
    """Get the Redis connection, or None when it was never initialized."""
    try:
        return get_redis()
    except RuntimeError:
        return None
