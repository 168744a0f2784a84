"""Conversation engine client configuration."""

from pydantic import BaseModel


class EngineConfig(BaseModel, frozen=True):
    """Engine endpoint and per-operation timeouts (seconds)."""

    base_url: str
    health_timeout: float
    start_timeout: float
    message_timeout: float
    lookup_timeout: float
    end_timeout: float
