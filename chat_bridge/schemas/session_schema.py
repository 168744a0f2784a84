"""Chat session records shared by the session store and the chat adapter."""

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field


class SessionStatus(StrEnum):
    """Lifecycle status of a chat session.

    Only ``ACTIVE`` and ``ENDED`` are ever stored. A session that times out is
    evicted on discovery, and ``EXPIRED`` is the status reported for it in logs.
    """

    ACTIVE = "active"
    ENDED = "ended"
    EXPIRED = "expired"


class AdapterState(StrEnum):
    """Chat-side conversation position, distinct from the engine's own state."""

    NEW = "new"
    WELCOMED = "welcomed"
    AWAITING_PHONE = "awaiting_phone"
    NEW_CUSTOMER = "new_customer"
    RETURNING_CUSTOMER = "returning_customer"
    ENGINE_ROUTED = "engine_routed"
    ENDED = "ended"


class QuickReply(BaseModel):
    """Button shortcut; clicking it is the same as typing ``value``."""

    label: str
    value: str


class AppointmentCard(BaseModel):
    """Scheduled appointment rendered as a confirmation card."""

    kind: Literal["appointment"] = "appointment"
    job_id: str | None = None
    date: str | None = None
    time: str | None = None
    technician: str | None = None
    service: str | None = None


class HistoryMessage(BaseModel):
    """One rendered chat bubble, kept to restore the widget after a refresh."""

    id: str
    type: Literal["user", "bot"]
    text: str
    quick_replies: list[QuickReply] | None = None
    card: AppointmentCard | None = None
    timestamp: datetime


class SessionMetadata(BaseModel):
    """Browser context captured when the widget opened."""

    user_agent: str | None = None
    referrer: str | None = None
    page: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)


class ChatSession(BaseModel):
    """Local bookkeeping for one visitor's chat.

    The engine owns the authoritative conversation; this record only keeps
    what the chat channel needs on top of it.
    """

    session_id: str
    tenant_id: str
    created_at: float
    last_activity_at: float
    ended_at: float | None = None
    status: SessionStatus = SessionStatus.ACTIVE

    adapter_state: AdapterState = AdapterState.NEW
    conversation_state: str | None = None
    engine_session_id: str | None = None
    pending_intent: str | None = None
    demo_step: int | None = None

    visitor_phone: str | None = None
    visitor_name: str | None = None
    visitor_address: str | None = None
    customer_found: bool = False

    messages: list[HistoryMessage] = Field(default_factory=list)
    metadata: SessionMetadata = Field(default_factory=SessionMetadata)

    @property
    def awaiting_phone(self) -> bool:
        return self.adapter_state is AdapterState.AWAITING_PHONE

    @property
    def engine_started(self) -> bool:
        return self.engine_session_id is not None

    @property
    def in_demo_mode(self) -> bool:
        return self.demo_step is not None

    def expires_at(self, timeout_seconds: float) -> float:
        """Absolute time after which the session counts as expired."""
        return self.last_activity_at + timeout_seconds

    def is_expired(self, now: float, timeout_seconds: float) -> bool:
        return now - self.last_activity_at > timeout_seconds
