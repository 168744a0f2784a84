"""Tests for HttpEngineClient using httpx.MockTransport."""

import json
from collections.abc import Callable

import httpx
import pytest

from chat_bridge.core.exceptions import (
    EngineResponseError,
    EngineSessionNotFoundError,
    EngineUnavailableError,
)
from chat_bridge.core.settings import EngineConfig
from chat_bridge.services.engine_client import HttpEngineClient

Handler = Callable[[httpx.Request], httpx.Response]

CONFIG = EngineConfig(
    base_url="http://engine.test/api",
    health_timeout=5,
    start_timeout=10,
    message_timeout=15,
    lookup_timeout=30,
    end_timeout=5,
)


def make_client(handler: Handler) -> HttpEngineClient:
    return HttpEngineClient(CONFIG, transport=httpx.MockTransport(handler))


class TestStartAndMessage:
    """Tests for conversation calls."""

    async def test_start_session_parses_camel_case(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={
                    "sessionId": "eng-1",
                    "greeting": "Hi!",
                    "quickReplies": ["Repair", {"label": "Quote", "value": "quote"}],
                },
            )

        result = await make_client(handler).start_session("rox-heating")

        assert result.session_id == "eng-1"
        assert [r.value for r in result.quick_replies] == ["Repair", "quote"]
        assert seen[0].url.path == "/api/chat/start"
        assert json.loads(seen[0].content) == {"tenantId": "rox-heating"}

    async def test_send_message_parses_booking_job(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["sessionId"] == "eng-1"
            assert body["message"] == "yes"
            return httpx.Response(
                200,
                json={
                    "message": "You're booked!",
                    "state": "booking_confirmed",
                    "endChat": True,
                    "job": {"id": 42, "date": "2024-05-01", "arrivalWindow": "8-10"},
                },
            )

        reply = await make_client(handler).send_message("eng-1", "yes")

        assert reply.end_chat is True
        assert reply.state == "booking_confirmed"
        assert reply.job is not None
        assert reply.job.id == 42
        assert reply.job.arrival_window == "8-10"

    async def test_lookup_customer_found(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/booking/lookup-customer"
            return httpx.Response(
                200,
                json={
                    "isNewCustomer": False,
                    "customer": {"id": 7, "name": "Dana Smith", "address": "1 Elm"},
                },
            )

        result = await make_client(handler).lookup_customer("eng-1", "3035551234")

        assert result.found
        assert result.customer is not None
        assert result.customer.name == "Dana Smith"

    async def test_lookup_customer_not_found(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"isNewCustomer": True})

        result = await make_client(handler).lookup_customer("eng-1", "3035551234")
        assert not result.found


class TestErrorMapping:
    """Tests for transport and status error mapping."""

    async def test_404_on_conversation_is_session_not_found(self) -> None:
        client = make_client(lambda request: httpx.Response(404))
        with pytest.raises(EngineSessionNotFoundError) as exc_info:
            await client.send_message("eng-gone", "hello")
        assert exc_info.value.engine_session_id == "eng-gone"

    async def test_5xx_is_unavailable(self) -> None:
        client = make_client(lambda request: httpx.Response(503))
        with pytest.raises(EngineUnavailableError):
            await client.start_session("rox-heating")

    async def test_timeout_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(EngineUnavailableError):
            await make_client(handler).send_message("eng-1", "hello")

    async def test_connection_error_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EngineUnavailableError):
            await make_client(handler).start_session("rox-heating")

    async def test_4xx_is_response_error(self) -> None:
        client = make_client(lambda request: httpx.Response(400, text="bad input"))
        with pytest.raises(EngineResponseError):
            await client.start_session("rox-heating")

    async def test_malformed_json_is_response_error(self) -> None:
        client = make_client(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(EngineResponseError):
            await client.send_message("eng-1", "hello")

    async def test_missing_required_field_is_response_error(self) -> None:
        client = make_client(
            lambda request: httpx.Response(200, json={"greeting": "x"})
        )
        with pytest.raises(EngineResponseError):
            await client.start_session("rox-heating")


class TestHealth:
    """Tests for the health probe."""

    async def test_ok(self) -> None:
        client = make_client(lambda request: httpx.Response(200, json={"status": "ok"}))
        assert (await client.health()).is_ok

    async def test_failure_reads_as_degraded(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        health = await make_client(handler).health()
        assert health.status == "degraded"
        assert not health.is_ok
