"""Chat widget request and response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from chat_bridge.schemas.session_schema import (
    AppointmentCard,
    HistoryMessage,
    QuickReply,
    SessionStatus,
)


class StartChatMetadata(BaseModel):
    """Optional page context sent by the widget when it opens."""

    referrer: str | None = Field(default=None, max_length=2048)
    page: str | None = Field(default=None, max_length=2048)


class StartChatRequest(BaseModel):
    """Start chat API request schema."""

    metadata: StartChatMetadata | None = None


class MessageRequest(BaseModel):
    """Visitor message API request schema."""

    session_id: str = Field(..., min_length=1, max_length=64)
    text: str = Field(..., min_length=1, max_length=4000)


class EndChatRequest(BaseModel):
    """End chat API request schema."""

    session_id: str = Field(..., min_length=1, max_length=64)


class BotMessage(BaseModel):
    """Bot reply as rendered by the widget."""

    text: str
    quick_replies: list[QuickReply] = Field(default_factory=list)
    card: AppointmentCard | None = None
    state: str | None = None
    end_chat: bool = False


class StartChatResponse(BaseModel):
    """Result of starting a chat."""

    session_id: str
    message: BotMessage


class ProcessMessageResponse(BaseModel):
    """Result of a visitor turn.

    ``should_restart`` is set instead of ``message`` when the session is
    unknown, expired or already ended.
    """

    message: BotMessage | None = None
    should_restart: bool = False


class SessionHistoryResponse(BaseModel):
    """Session snapshot used to restore the widget after a page reload."""

    session_id: str
    status: SessionStatus
    conversation_state: str | None
    messages: list[HistoryMessage]
    visitor_name: str | None


class EndChatResponse(BaseModel):
    """End chat API response schema."""

    ended: bool


class ChatHealthResponse(BaseModel):
    """Health and load snapshot for monitoring."""

    status: str
    engine: str
    active_sessions: int
    tenant: str
    timestamp: datetime


class BusinessInfo(BaseModel):
    """Business details shown in the widget header."""

    phone: str
    hours: str
    service_area: str


class WidgetConfigResponse(BaseModel):
    """Client-safe widget configuration."""

    tenant_id: str
    business_name: str
    initial_quick_replies: list[str]
    business_info: BusinessInfo
    session_timeout_seconds: int
    max_message_length: int
