"""Customer lookup by phone number used during chat identification."""

from typing import Protocol

from chat_bridge.schemas.engine_schema import EngineCustomer
from chat_bridge.services.engine_client import ConversationEngine


class CustomerDirectory(Protocol):
    """Finds an existing customer account for a canonical 10-digit phone."""

    async def find_by_phone(
        self, phone: str, engine_session_id: str | None = None
    ) -> EngineCustomer | None: ...


class EngineCustomerDirectory:
    """Directory backed by the engine's own customer lookup.

    The lookup is tied to an engine conversation so the engine also learns
    who it is talking to, just as caller ID would tell it on a voice call.
    """

    def __init__(self, engine: ConversationEngine) -> None:
        self._engine = engine

    async def find_by_phone(
        self, phone: str, engine_session_id: str | None = None
    ) -> EngineCustomer | None:
        if engine_session_id is None:
            return None
        result = await self._engine.lookup_customer(engine_session_id, phone)
        return result.customer if result.found else None


class StaticCustomerDirectory:
    """Fixed phone-to-customer table, for demos and tests."""

    def __init__(self, customers: dict[str, EngineCustomer] | None = None) -> None:
        self._customers = dict(customers or {})

    async def find_by_phone(
        self, phone: str, engine_session_id: str | None = None
    ) -> EngineCustomer | None:
        return self._customers.get(phone)
