"""Shared Redis client for the session and rate-window stores."""

import redis.asyncio as redis
import structlog

from chat_bridge.core.config import settings
from chat_bridge.core.settings import RedisConfig

logger = structlog.get_logger()

redis_client: redis.Redis | None = None  # type: ignore[type-arg]


async def init_redis(config: RedisConfig | None = None) -> redis.Redis:  # type: ignore[type-arg]
    """Connect once at startup; fails fast if Redis is unreachable."""
    global redis_client  # noqa: PLW0603
    config = config or settings.redis
    redis_client = redis.from_url(config.url, decode_responses=True)
    await redis_client.ping()
    logger.info("Redis connected", key_prefix=config.key_prefix)
    return redis_client


async def close_redis() -> None:
    """Close the connection if one was opened."""
    global redis_client  # noqa: PLW0603
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None


def get_redis() -> redis.Redis:  # type: ignore[type-arg]
    """Active client; only valid with ``store_backend=redis``."""
    if redis_client is None:
        raise RuntimeError("Redis client not initialized (store_backend=redis?)")
    return redis_client
