"""Sliding-window admission control per identity key (session id or IP)."""

import time
from collections.abc import Callable

import structlog

from chat_bridge.repositories.rate_window_repo import RateWindowStore

logger = structlog.get_logger()


class SlidingWindowRateLimiter:
    """Admit at most ``limit`` requests per key within any rolling window.

    Each route class (chat messages, lookups) has its own instance and threshold.
    """

    def __init__(
        self,
        store: RateWindowStore,
        limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
        name: str = "default",
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._store = store
        self._limit = limit
        self._window = window_seconds
        self._clock = clock
        self.name = name

    async def admit(self, key: str, limit: int | None = None) -> bool:
        """Record a hit for ``key`` unless it is already at the limit."""
        now = self._clock()
        effective_limit = self._limit if limit is None else limit
        recent = await self._store.prune(key, now - self._window)
        if len(recent) >= effective_limit:
            logger.warning(
                "Rate limit exceeded",
                limiter=self.name,
                key=key,
                hits=len(recent),
                limit=effective_limit,
            )
            return False
        await self._store.add(key, now, self._window)
        return True

    async def retry_after(self, key: str, limit: int | None = None) -> float:
        """Seconds until ``key`` may be admitted again (0 if it may now)."""
        now = self._clock()
        effective_limit = self._limit if limit is None else limit
        recent = await self._store.prune(key, now - self._window)
        if effective_limit < 1:
            return self._window
        if len(recent) < effective_limit:
            return 0.0
        # The window frees up once enough of the oldest hits have aged out.
        unblocking_hit = recent[len(recent) - effective_limit]
        return max(unblocking_hit + self._window - now, 0.0)

    async def sweep(self) -> int:
        """Drop keys with no hit left in the window."""
        cutoff = self._clock() - self._window
        removed = 0
        for key in await self._store.keys():
            if not await self._store.prune(key, cutoff):
                await self._store.delete(key)
                removed += 1

        if removed:
            logger.info("Rate limit sweep", limiter=self.name, removed=removed)
        return removed
