"""Integration tests for chat router."""

from httpx import AsyncClient

from chat_bridge.schemas.engine_schema import EngineCustomer
from tests.conftest import FakeClock, FakeEngine

PHONE = "3035551234"


async def start_session(client: AsyncClient, **kwargs: object) -> str:
    response = await client.post("/api/chat/start", **kwargs)  # type: ignore[arg-type]
    assert response.status_code == 200
    return response.json()["data"]["session_id"]


class TestStartChat:
    """Tests for POST /api/chat/start."""

    async def test_start_returns_greeting(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/api/chat/start",
            json={"metadata": {"page": "/services", "referrer": "https://g.co"}},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == 200
        data = body["data"]
        assert data["session_id"]
        assert data["message"]["state"] == "greeting"
        assert "ROX" in data["message"]["text"]
        assert data["message"]["quick_replies"]

    async def test_start_without_body(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/chat/start")
        assert response.status_code == 200

    async def test_start_uses_tenant_header(self, async_client: AsyncClient) -> None:
        session_id = await start_session(
            async_client, headers={"X-Tenant-ID": "acme"}
        )

        found = await async_client.get(
            "/api/chat/session",
            params={"session_id": session_id, "tenant": "acme"},
        )
        assert found.status_code == 200
        missing = await async_client.get(
            "/api/chat/session", params={"session_id": session_id}
        )
        assert missing.status_code == 404


class TestSendMessage:
    """Tests for POST /api/chat/message."""

    async def test_phone_flow(
        self, async_client: AsyncClient, fake_engine: FakeEngine
    ) -> None:
        fake_engine.customers[PHONE] = EngineCustomer(name="Dana Smith")
        session_id = await start_session(async_client)

        first = await async_client.post(
            "/api/chat/message",
            json={"session_id": session_id, "text": "my AC is broken"},
        )
        assert first.status_code == 200
        assert first.json()["data"]["message"]["state"] == "phone_collect"
        assert first.json()["data"]["message"]["quick_replies"] == []

        second = await async_client.post(
            "/api/chat/message",
            json={"session_id": session_id, "text": "303-555-1234"},
        )
        assert second.status_code == 200
        assert second.json()["data"]["message"]["state"] == "system_type"
        assert fake_engine.sent == [("engine-1", "my AC is broken")]

    async def test_unknown_session_returns_404(
        self, async_client: AsyncClient
    ) -> None:
        response = await async_client.post(
            "/api/chat/message", json={"session_id": "nope", "text": "hello"}
        )

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "SESSION_NOT_FOUND"
        assert error["should_restart"] is True

    async def test_blank_text_returns_400(self, async_client: AsyncClient) -> None:
        session_id = await start_session(async_client)
        response = await async_client.post(
            "/api/chat/message", json={"session_id": session_id, "text": "   "}
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_MESSAGE"

    async def test_missing_fields_return_422(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/chat/message", json={"text": "hi"})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_rate_limit_per_session(
        self, async_client: AsyncClient, clock: FakeClock
    ) -> None:
        session_id = await start_session(async_client)
        payload = {"session_id": session_id, "text": "hello"}

        for _ in range(20):
            response = await async_client.post("/api/chat/message", json=payload)
            assert response.status_code == 200

        limited = await async_client.post("/api/chat/message", json=payload)
        assert limited.status_code == 429
        error = limited.json()["error"]
        assert error["code"] == "RATE_LIMITED"
        assert error["retry_after_ms"] > 0
        assert limited.headers["Retry-After"] == "60"

        other_session = await start_session(async_client)
        other = await async_client.post(
            "/api/chat/message", json={"session_id": other_session, "text": "hello"}
        )
        assert other.status_code == 200

        clock.advance(61)
        recovered = await async_client.post("/api/chat/message", json=payload)
        assert recovered.status_code == 200


class TestSessionAndEnd:
    """Tests for history restore and ending chats."""

    async def test_history_restore(self, async_client: AsyncClient) -> None:
        session_id = await start_session(async_client)
        await async_client.post(
            "/api/chat/message",
            json={"session_id": session_id, "text": "my AC is broken"},
        )

        response = await async_client.get(
            "/api/chat/session", params={"session_id": session_id}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "active"
        assert data["conversation_state"] == "phone_collect"
        assert [m["type"] for m in data["messages"]] == ["bot", "user", "bot"]

    async def test_end_then_message_requires_restart(
        self, async_client: AsyncClient, fake_engine: FakeEngine
    ) -> None:
        session_id = await start_session(async_client)

        ended = await async_client.post(
            "/api/chat/end", json={"session_id": session_id}
        )
        assert ended.status_code == 200
        assert ended.json()["data"]["ended"] is True
        assert fake_engine.ended == ["engine-1"]

        again = await async_client.post(
            "/api/chat/end", json={"session_id": session_id}
        )
        assert again.json()["data"]["ended"] is False

        response = await async_client.post(
            "/api/chat/message", json={"session_id": session_id, "text": "hi"}
        )
        assert response.status_code == 404


class TestConfigAndHealth:
    """Tests for widget config and health endpoints."""

    async def test_widget_config(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/chat/config")

        assert response.status_code == 200
        assert response.headers["Cache-Control"] == "public, max-age=300"
        data = response.json()["data"]
        assert data["tenant_id"] == "rox-heating"
        assert data["business_info"]["phone"]
        assert data["initial_quick_replies"]
        assert data["max_message_length"] == 500

    async def test_health_reports_sessions(
        self, async_client: AsyncClient, fake_engine: FakeEngine
    ) -> None:
        await start_session(async_client)
        fake_engine.healthy = False

        response = await async_client.get("/api/chat/health")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "degraded"
        assert data["engine"] == "degraded"
        assert data["active_sessions"] == 1
        assert data["tenant"] == "rox-heating"

    async def test_app_health(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "healthy"
