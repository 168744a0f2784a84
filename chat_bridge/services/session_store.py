"""Chat session store with idle expiry.

Lifecycle:
    create()  -> visitor opens the widget
    get()     -> every message looks the session up (expired ones are evicted)
    save()    -> adapter persists its changes after a turn
    destroy() -> chat ends; the record stays readable for a short grace period
    sweep()   -> periodic removal of expired and long-ended sessions
"""

import time
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import structlog

from chat_bridge.repositories.session_repo import SessionRepository
from chat_bridge.schemas.session_schema import (
    AppointmentCard,
    ChatSession,
    HistoryMessage,
    QuickReply,
    SessionMetadata,
    SessionStatus,
)

logger = structlog.get_logger()

Clock = Callable[[], float]


class SessionStore:
    """Tenant-scoped session bookkeeping over an injected repository."""

    def __init__(
        self,
        repository: SessionRepository,
        timeout_seconds: int,
        ended_grace_seconds: int = 60,
        clock: Clock = time.time,
    ) -> None:
        self._repo = repository
        self._timeout = timeout_seconds
        self._grace = ended_grace_seconds
        self._clock = clock

    @staticmethod
    def _key(tenant_id: str, session_id: str) -> str:
        return f"{tenant_id}:{session_id}"

    def _ttl(self, session: ChatSession) -> int:
        if session.status is SessionStatus.ENDED:
            return max(self._grace, 1)
        return self._timeout + max(self._grace, 1)

    async def create(
        self,
        tenant_id: str,
        metadata: SessionMetadata | dict[str, Any] | None = None,
    ) -> ChatSession:
        """Allocate a new session with a random id."""
        now = self._clock()
        if not isinstance(metadata, SessionMetadata):
            metadata = SessionMetadata.model_validate(metadata or {})
        session = ChatSession(
            session_id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            created_at=now,
            last_activity_at=now,
            metadata=metadata,
        )
        await self._repo.set(
            self._key(tenant_id, session.session_id), session, self._ttl(session)
        )
        logger.info(
            "Chat session created",
            session_id=session.session_id,
            tenant_id=tenant_id,
        )
        return session

    async def get(self, tenant_id: str, session_id: str) -> ChatSession | None:
        """Return the session, or None if unknown or expired.

        Expired sessions are evicted here rather than waiting for the sweep;
        no record is kept with an ``expired`` status.
        """
        key = self._key(tenant_id, session_id)
        session = await self._repo.get(key)
        if session is None:
            return None
        if session.is_expired(self._clock(), self._timeout):
            await self._repo.delete(key)
            logger.info(
                "Chat session expired",
                session_id=session_id,
                tenant_id=tenant_id,
                status=SessionStatus.EXPIRED,
            )
            return None
        return session

    async def update(
        self, tenant_id: str, session_id: str, **fields: Any
    ) -> ChatSession | None:
        """Merge ``fields`` into the session and refresh its activity time."""
        session = await self.get(tenant_id, session_id)
        if session is None:
            return None
        merged = ChatSession.model_validate({**session.model_dump(), **fields})
        return await self.save(merged)

    async def save(self, session: ChatSession) -> ChatSession:
        """Persist a session changed in place, refreshing its activity time."""
        session.last_activity_at = self._clock()
        await self._repo.set(
            self._key(session.tenant_id, session.session_id),
            session,
            self._ttl(session),
        )
        return session

    def build_message(
        self,
        type: str,
        text: str,
        quick_replies: list[QuickReply] | None = None,
        card: AppointmentCard | None = None,
        timestamp: datetime | None = None,
    ) -> HistoryMessage:
        """Create a history record with a generated id and timestamp."""
        return HistoryMessage(
            id=f"msg_{uuid.uuid4().hex[:12]}",
            type=type,  # type: ignore[arg-type]
            text=text,
            quick_replies=quick_replies,
            card=card,
            timestamp=timestamp or datetime.fromtimestamp(self._clock(), UTC),
        )

    async def add_message(
        self, tenant_id: str, session_id: str, message: dict[str, Any]
    ) -> ChatSession | None:
        """Append ``{type, text, quick_replies?, card?, timestamp?}`` to history."""
        session = await self.get(tenant_id, session_id)
        if session is None:
            return None
        session.messages.append(self.build_message(**message))
        return await self.save(session)

    async def destroy(self, tenant_id: str, session_id: str) -> ChatSession | None:
        """Mark the session ended. Calling it again changes nothing."""
        session = await self.get(tenant_id, session_id)
        if session is None:
            return None
        if session.status is SessionStatus.ENDED:
            return session

        session.status = SessionStatus.ENDED
        session.ended_at = self._clock()
        await self._repo.set(
            self._key(tenant_id, session_id), session, self._ttl(session)
        )
        logger.info("Chat session ended", session_id=session_id, tenant_id=tenant_id)
        return session

    async def sweep(self) -> int:
        """Remove expired sessions and ended ones past the grace period."""
        now = self._clock()
        removed = 0
        for key, session in await self._repo.scan():
            ended_long_ago = (
                session.status is SessionStatus.ENDED
                and session.ended_at is not None
                and now - session.ended_at > self._grace
            )
            if ended_long_ago or session.is_expired(now, self._timeout):
                if await self._repo.delete(key):
                    removed += 1

        if removed:
            logger.info("Chat session sweep", removed=removed)
        return removed

    async def active_count(self, tenant_id: str | None = None) -> int:
        """Count live sessions, optionally for one tenant."""
        now = self._clock()
        prefix = f"{tenant_id}:" if tenant_id else ""
        return sum(
            1
            for _, session in await self._repo.scan(prefix)
            if session.status is SessionStatus.ACTIVE
            and not session.is_expired(now, self._timeout)
        )
