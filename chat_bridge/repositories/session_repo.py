"""Key/value persistence for chat sessions.

The session store only talks to the ``SessionRepository`` protocol, so the
in-memory and Redis implementations are interchangeable.
"""

from typing import Protocol

import redis.asyncio as redis

from chat_bridge.core.settings import RedisConfig
from chat_bridge.schemas.session_schema import ChatSession


class SessionRepository(Protocol):
    """Storage contract used by ``SessionStore``."""

    async def get(self, key: str) -> ChatSession | None: ...

    async def set(
        self, key: str, session: ChatSession, ttl_seconds: int | None = None
    ) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def scan(self, prefix: str = "") -> list[tuple[str, ChatSession]]: ...


class InMemorySessionRepository:
    """Process-local repository for standalone deployments and tests.

    Records are copied on the way in and out so callers see the same
    semantics as with a remote store: changes persist only through ``set``.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ChatSession] = {}

    async def get(self, key: str) -> ChatSession | None:
        session = self._sessions.get(key)
        return session.model_copy(deep=True) if session is not None else None

    async def set(
        self, key: str, session: ChatSession, ttl_seconds: int | None = None
    ) -> None:
        # Expiry is enforced by SessionStore; ttl only matters for remote stores.
        self._sessions[key] = session.model_copy(deep=True)

    async def delete(self, key: str) -> bool:
        return self._sessions.pop(key, None) is not None

    async def scan(self, prefix: str = "") -> list[tuple[str, ChatSession]]:
        return [
            (key, session.model_copy(deep=True))
            for key, session in list(self._sessions.items())
            if key.startswith(prefix)
        ]


class RedisSessionRepository:
    """Redis-backed repository sharing sessions across worker processes."""

    def __init__(
        self,
        redis_client: redis.Redis,  # type: ignore[type-arg]
        config: RedisConfig,
    ) -> None:
        self._redis = redis_client
        self._namespace = config.key("session") + ":"

    async def get(self, key: str) -> ChatSession | None:
        raw = await self._redis.get(self._namespace + key)
        if raw is None:
            return None
        return ChatSession.model_validate_json(raw)

    async def set(
        self, key: str, session: ChatSession, ttl_seconds: int | None = None
    ) -> None:
        await self._redis.set(
            self._namespace + key, session.model_dump_json(), ex=ttl_seconds
        )

    async def delete(self, key: str) -> bool:
        return bool(await self._redis.delete(self._namespace + key))

    async def scan(self, prefix: str = "") -> list[tuple[str, ChatSession]]:
        keys = [
            key
            async for key in self._redis.scan_iter(
                match=f"{self._namespace}{prefix}*", count=500
            )
        ]
        if not keys:
            return []
        values = await self._redis.mget(keys)
        return [
            (key.removeprefix(self._namespace), ChatSession.model_validate_json(raw))
            for key, raw in zip(keys, values, strict=True)
            if raw is not None
        ]
