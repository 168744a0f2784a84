"""Payloads exchanged with the conversation engine API (camelCase on the wire)."""

from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chat_bridge.schemas.session_schema import QuickReply


class EngineModel(BaseModel):
    """Base model accepting the engine's camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _coerce_quick_replies(value: Any) -> list[Any]:
    """Engines send either ``["Yes", ...]`` or ``[{"label", "value"}, ...]``."""
    if value is None:
        return []
    return [
        {"label": item, "value": item} if isinstance(item, str) else item
        for item in value
    ]


EngineQuickReplies = Annotated[
    list[QuickReply], BeforeValidator(_coerce_quick_replies)
]


class EngineStartResult(EngineModel):
    """Response of ``POST /chat/start``."""

    session_id: str
    greeting: str | None = None
    quick_replies: EngineQuickReplies = Field(default_factory=list)


class EngineJob(EngineModel):
    """Booked appointment attached to a reply once scheduling completes."""

    id: str | int | None = None
    date: str | None = None
    time: str | None = None
    arrival_window: str | None = None
    technician: str | None = None
    service: str | None = None


class EngineReply(EngineModel):
    """Response of ``POST /chat/message``."""

    message: str | None = None
    quick_replies: EngineQuickReplies = Field(default_factory=list)
    state: str | None = None
    end_chat: bool = False
    offered_slot: dict[str, Any] | None = None
    job: EngineJob | None = Field(
        default=None, validation_alias=AliasChoices("job", "booking")
    )


class EngineCustomer(EngineModel):
    """Customer account as known to the engine or the directory."""

    id: str | int | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None


class CustomerLookupResult(EngineModel):
    """Response of ``POST /booking/lookup-customer``."""

    is_new_customer: bool = True
    customer: EngineCustomer | None = None

    @property
    def found(self) -> bool:
        return not self.is_new_customer and self.customer is not None


class EngineHealth(EngineModel):
    """Response of ``GET /health``."""

    status: Literal["ok", "degraded"] = "degraded"

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"
