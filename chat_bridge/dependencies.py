"""Global dependencies for the application."""

from functools import lru_cache
from typing import Annotated

from fastapi import Header, Query, Request
from slowapi.util import get_remote_address

from chat_bridge.core.config import settings
from chat_bridge.core.redis import get_redis
from chat_bridge.repositories.rate_window_repo import (
    InMemoryRateWindowStore,
    RateWindowStore,
    RedisRateWindowStore,
)
from chat_bridge.repositories.session_repo import (
    InMemorySessionRepository,
    RedisSessionRepository,
    SessionRepository,
)
from chat_bridge.services.chat_adapter import ChatAdapter
from chat_bridge.services.engine_client import ConversationEngine, HttpEngineClient
from chat_bridge.services.rate_limiter import SlidingWindowRateLimiter
from chat_bridge.services.session_store import SessionStore

CHAT_ROUTE_CLASS = "chat"
LOOKUP_ROUTE_CLASS = "lookup"


# --- Storage ---


def _use_redis() -> bool:
    return settings.app.store_backend == "redis"


@lru_cache
def get_session_repository() -> SessionRepository:
    """Get the session repository for the configured backend."""
    if _use_redis():
        return RedisSessionRepository(get_redis(), settings.redis)
    return InMemorySessionRepository()


def _rate_window_store(route_class: str) -> RateWindowStore:
    if _use_redis():
        return RedisRateWindowStore(get_redis(), settings.redis, route_class)
    return InMemoryRateWindowStore()


@lru_cache
def get_session_store() -> SessionStore:
    """Get the process-wide session store."""
    return SessionStore(
        get_session_repository(),
        timeout_seconds=settings.session.timeout_seconds,
        ended_grace_seconds=settings.session.ended_grace_seconds,
    )


# --- Rate limiting ---


@lru_cache
def get_chat_rate_limiter() -> SlidingWindowRateLimiter:
    """Limiter for visitor messages, keyed by session id."""
    return SlidingWindowRateLimiter(
        _rate_window_store(CHAT_ROUTE_CLASS),
        limit=settings.rate_limit.chat_limit,
        window_seconds=settings.rate_limit.window_seconds,
        name=CHAT_ROUTE_CLASS,
    )


@lru_cache
def get_lookup_rate_limiter() -> SlidingWindowRateLimiter:
    """Limiter for session starts and history lookups, keyed by client IP."""
    return SlidingWindowRateLimiter(
        _rate_window_store(LOOKUP_ROUTE_CLASS),
        limit=settings.rate_limit.lookup_limit,
        window_seconds=settings.rate_limit.window_seconds,
        name=LOOKUP_ROUTE_CLASS,
    )


# --- Conversation ---


@lru_cache
def get_engine_client() -> ConversationEngine:
    """Get the conversation engine client."""
    return HttpEngineClient(settings.engine)


@lru_cache
def get_chat_adapter() -> ChatAdapter:
    """Get the chat adapter wired to the shared store and engine."""
    return ChatAdapter(
        store=get_session_store(),
        engine=get_engine_client(),
        business=settings.business,
        config=settings.session,
    )


# --- Request context ---


def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header(max_length=64)] = None,
    tenant: Annotated[str | None, Query(max_length=64)] = None,
) -> str:
    """Tenant from the ``X-Tenant-ID`` header or ``?tenant=``, else the default."""
    return x_tenant_id or tenant or settings.business.tenant_id


def get_client_ip(request: Request) -> str:
    """Client address, the same key slowapi's global guard uses."""
    return get_remote_address(request)
