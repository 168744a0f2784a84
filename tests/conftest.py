"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from chat_bridge.core.config import settings
from chat_bridge.core.exceptions import EngineSessionNotFoundError
from chat_bridge.core.settings import BusinessConfig, SessionConfig
from chat_bridge.repositories.rate_window_repo import InMemoryRateWindowStore
from chat_bridge.repositories.session_repo import InMemorySessionRepository
from chat_bridge.schemas.engine_schema import (
    CustomerLookupResult,
    EngineCustomer,
    EngineHealth,
    EngineReply,
    EngineStartResult,
)
from chat_bridge.services.chat_adapter import ChatAdapter
from chat_bridge.services.rate_limiter import SlidingWindowRateLimiter
from chat_bridge.services.session_store import SessionStore

# --- Clock ---


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# --- Test Redis (fakeredis) ---


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Create a fresh fake Redis client."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis(
    fake_redis: fakeredis.aioredis.FakeRedis, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Patch the global redis_client used by get_redis()."""
    monkeypatch.setattr("chat_bridge.core.redis.redis_client", fake_redis)


# --- Fake engine ---


class FakeEngine:
    """In-memory conversation engine recording every call.

    ``replies`` is consumed in order; an Exception instance in it is raised
    instead of returned. Once empty, ``default_reply`` is used.
    """

    def __init__(self) -> None:
        self.healthy = True
        self.start_error: Exception | None = None
        self.greeting: str | None = "Hi! Thanks for reaching out to Rocks Heating."
        self.replies: list[EngineReply | Exception] = []
        self.default_reply = EngineReply(
            message="Got it. What type of system needs attention?",
            state="system_type",
        )
        self.customers: dict[str, EngineCustomer] = {}
        self.lookup_error: Exception | None = None
        self.lost_sessions: set[str] = set()
        self.sent: list[tuple[str, str]] = []
        self.lookups: list[tuple[str, str]] = []
        self.ended: list[str] = []
        self.started = 0

    async def health(self) -> EngineHealth:
        return EngineHealth(status="ok" if self.healthy else "degraded")

    async def start_session(self, tenant_id: str) -> EngineStartResult:
        if self.start_error is not None:
            raise self.start_error
        self.started += 1
        return EngineStartResult(
            session_id=f"engine-{self.started}", greeting=self.greeting
        )

    async def send_message(
        self, engine_session_id: str, text: str, tenant_id: str | None = None
    ) -> EngineReply:
        if engine_session_id in self.lost_sessions:
            raise EngineSessionNotFoundError(engine_session_id)
        self.sent.append((engine_session_id, text))
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, Exception):
                raise reply
            return reply
        return self.default_reply

    async def lookup_customer(
        self, engine_session_id: str, phone: str
    ) -> CustomerLookupResult:
        self.lookups.append((engine_session_id, phone))
        if self.lookup_error is not None:
            raise self.lookup_error
        customer = self.customers.get(phone)
        return CustomerLookupResult(
            is_new_customer=customer is None, customer=customer
        )

    async def end_session(self, engine_session_id: str) -> None:
        self.ended.append(engine_session_id)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


# --- Adapter wiring ---


@pytest.fixture
def business() -> BusinessConfig:
    return BusinessConfig(
        tenant_id="rox-heating",
        name="ROX Heating & Air",
        short_name="ROX",
        spoken_name="Rocks",
        fallback_phone="(720) 468-0689",
        hours="Mon-Sat: 8am-5pm MST",
        service_area="Denver Metro Area",
        initial_quick_replies=("Schedule a Repair", "Get an Estimate"),
    )


def make_session_config(**overrides: object) -> SessionConfig:
    """SessionConfig with test defaults, overridable per test."""
    values: dict[str, object] = {
        "timeout_seconds": 1800,
        "sweep_interval_seconds": 300,
        "ended_grace_seconds": 60,
        "max_message_length": 500,
        "replay_intent_returning": True,
        "replay_intent_new": False,
    }
    values.update(overrides)
    return SessionConfig(**values)  # type: ignore[arg-type]


@pytest.fixture
def session_repo() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def session_store(
    session_repo: InMemorySessionRepository, clock: FakeClock
) -> SessionStore:
    return SessionStore(
        session_repo, timeout_seconds=1800, ended_grace_seconds=60, clock=clock
    )


@pytest.fixture
def adapter(
    session_store: SessionStore,
    fake_engine: FakeEngine,
    business: BusinessConfig,
) -> ChatAdapter:
    return ChatAdapter(
        store=session_store,
        engine=fake_engine,
        business=business,
        config=make_session_config(),
    )


# --- App override & client fixtures ---


@pytest.fixture
async def async_client(
    session_store: SessionStore,
    fake_engine: FakeEngine,
    clock: FakeClock,
) -> AsyncGenerator[AsyncClient, None]:
    """Test client with a fake engine and fresh stores and limiters."""
    from chat_bridge.dependencies import (
        get_chat_adapter,
        get_chat_rate_limiter,
        get_engine_client,
        get_lookup_rate_limiter,
    )
    from chat_bridge.main import app, limiter

    chat_adapter = ChatAdapter(
        store=session_store,
        engine=fake_engine,
        business=settings.business,
        config=settings.session,
    )
    chat_limiter = SlidingWindowRateLimiter(
        InMemoryRateWindowStore(), limit=20, window_seconds=60, clock=clock
    )
    lookup_limiter = SlidingWindowRateLimiter(
        InMemoryRateWindowStore(), limit=30, window_seconds=60, clock=clock
    )
    app.dependency_overrides[get_chat_adapter] = lambda: chat_adapter
    app.dependency_overrides[get_engine_client] = lambda: fake_engine
    app.dependency_overrides[get_chat_rate_limiter] = lambda: chat_limiter
    app.dependency_overrides[get_lookup_rate_limiter] = lambda: lookup_limiter
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
