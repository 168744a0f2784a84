"""Business (tenant) presentation configuration."""

from pydantic import BaseModel


class BusinessConfig(BaseModel, frozen=True):
    """Client-facing business details for the default tenant.

    ``spoken_name`` is how the voice engine spells the short name for speech
    synthesis; replies are rewritten back to ``short_name`` for chat.
    """

    tenant_id: str
    name: str
    short_name: str
    spoken_name: str
    fallback_phone: str
    hours: str
    service_area: str
    initial_quick_replies: tuple[str, ...]
