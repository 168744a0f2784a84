"""Per-key request timestamp windows for the sliding-window rate limiter."""

import math
import uuid
from typing import Protocol

import redis.asyncio as redis

from chat_bridge.core.settings import RedisConfig


class RateWindowStore(Protocol):
    """Storage contract used by ``SlidingWindowRateLimiter``."""

    async def prune(self, key: str, cutoff: float) -> list[float]: ...

    async def add(self, key: str, timestamp: float, ttl_seconds: float) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def keys(self) -> list[str]: ...


class InMemoryRateWindowStore:
    """Process-local timestamp lists keyed by identity."""

    def __init__(self) -> None:
        self._windows: dict[str, list[float]] = {}

    async def prune(self, key: str, cutoff: float) -> list[float]:
        """Drop timestamps at or before ``cutoff``; return the rest, oldest first."""
        window = self._windows.get(key)
        if window is None:
            return []
        recent = [ts for ts in window if ts > cutoff]
        self._windows[key] = recent
        return list(recent)

    async def add(self, key: str, timestamp: float, ttl_seconds: float) -> None:
        self._windows.setdefault(key, []).append(timestamp)

    async def delete(self, key: str) -> None:
        self._windows.pop(key, None)

    async def keys(self) -> list[str]:
        return list(self._windows)


class RedisRateWindowStore:
    """Sorted-set windows (score = timestamp) shared across processes."""

    def __init__(
        self,
        redis_client: redis.Redis,  # type: ignore[type-arg]
        config: RedisConfig,
        route_class: str,
    ) -> None:
        self._redis = redis_client
        self._namespace = config.key("ratelimit", route_class) + ":"

    async def prune(self, key: str, cutoff: float) -> list[float]:
        name = self._namespace + key
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zremrangebyscore(name, "-inf", cutoff)
            pipe.zrange(name, 0, -1, withscores=True)
            _, members = await pipe.execute()
        return [score for _, score in members]

    async def add(self, key: str, timestamp: float, ttl_seconds: float) -> None:
        name = self._namespace + key
        # Members must be unique even when two hits share a timestamp.
        member = f"{timestamp:.6f}:{uuid.uuid4().hex[:8]}"
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zadd(name, {member: timestamp})
            pipe.expire(name, math.ceil(ttl_seconds) + 1)
            await pipe.execute()

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._namespace + key)

    async def keys(self) -> list[str]:
        return [
            key.removeprefix(self._namespace)
            async for key in self._redis.scan_iter(
                match=f"{self._namespace}*", count=500
            )
        ]
