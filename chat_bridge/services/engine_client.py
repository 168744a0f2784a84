"""HTTP client for the conversation engine.

Every call has its own timeout. Timeouts, transport failures and 5xx answers
all surface as ``EngineUnavailableError`` so the adapter can switch to
degraded behavior; a 404 on a conversation becomes
``EngineSessionNotFoundError``; anything unparseable becomes
``EngineResponseError``.
"""

from typing import Any, Protocol, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from chat_bridge.core.exceptions import (
    EngineResponseError,
    EngineSessionNotFoundError,
    EngineUnavailableError,
)
from chat_bridge.core.settings import EngineConfig
from chat_bridge.schemas.engine_schema import (
    CustomerLookupResult,
    EngineHealth,
    EngineReply,
    EngineStartResult,
)

logger = structlog.get_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class ConversationEngine(Protocol):
    """Conversation engine contract consumed by the chat adapter."""

    async def start_session(self, tenant_id: str) -> EngineStartResult: ...

    async def send_message(
        self, engine_session_id: str, text: str, tenant_id: str | None = None
    ) -> EngineReply: ...

    async def lookup_customer(
        self, engine_session_id: str, phone: str
    ) -> CustomerLookupResult: ...

    async def end_session(self, engine_session_id: str) -> None: ...

    async def health(self) -> EngineHealth: ...


class HttpEngineClient:
    """Talks to the engine REST API."""

    def __init__(
        self,
        config: EngineConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        timeout: float,
        json: dict[str, Any] | None = None,
        engine_session_id: str | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            ) as client:
                response = await client.request(method, path, json=json)
        except httpx.TimeoutException as e:
            logger.warning("Engine request timed out", path=path, timeout=timeout)
            raise EngineUnavailableError(f"Engine timed out on {path}") from e
        except httpx.TransportError as e:
            logger.warning("Engine unreachable", path=path, error=str(e))
            raise EngineUnavailableError(f"Engine unreachable on {path}") from e

        if response.status_code == 404 and engine_session_id is not None:
            raise EngineSessionNotFoundError(engine_session_id)
        if response.status_code >= 500:
            logger.warning(
                "Engine server error", path=path, status=response.status_code
            )
            raise EngineUnavailableError(
                f"Engine returned {response.status_code} on {path}"
            )
        if response.is_error:
            raise EngineResponseError(
                f"Engine returned {response.status_code} on {path}: "
                f"{response.text[:200]}"
            )
        return response

    @staticmethod
    def _parse(response: httpx.Response, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise EngineResponseError(
                f"Malformed engine response for {model.__name__}"
            ) from e

    async def start_session(self, tenant_id: str) -> EngineStartResult:
        response = await self._request(
            "POST",
            "/chat/start",
            self._config.start_timeout,
            json={"tenantId": tenant_id},
        )
        return self._parse(response, EngineStartResult)

    async def send_message(
        self, engine_session_id: str, text: str, tenant_id: str | None = None
    ) -> EngineReply:
        response = await self._request(
            "POST",
            "/chat/message",
            self._config.message_timeout,
            json={
                "sessionId": engine_session_id,
                "message": text,
                "tenantId": tenant_id,
            },
            engine_session_id=engine_session_id,
        )
        return self._parse(response, EngineReply)

    async def lookup_customer(
        self, engine_session_id: str, phone: str
    ) -> CustomerLookupResult:
        response = await self._request(
            "POST",
            "/booking/lookup-customer",
            self._config.lookup_timeout,
            json={"sessionId": engine_session_id, "phone": phone},
            engine_session_id=engine_session_id,
        )
        return self._parse(response, CustomerLookupResult)

    async def end_session(self, engine_session_id: str) -> None:
        await self._request(
            "POST",
            "/chat/end",
            self._config.end_timeout,
            json={"sessionId": engine_session_id},
            engine_session_id=engine_session_id,
        )

    async def health(self) -> EngineHealth:
        """Engine health; any failure reads as degraded, never raises."""
        try:
            response = await self._request(
                "GET", "/health", self._config.health_timeout
            )
            return self._parse(response, EngineHealth)
        except (EngineUnavailableError, EngineResponseError) as e:
            logger.warning("Engine health check failed", error=e.message)
            return EngineHealth(status="degraded")
