"""Chat session lifecycle configuration."""

from pydantic import BaseModel


class SessionConfig(BaseModel, frozen=True):
    """Session expiry, sweep cadence and chat-flow switches."""

    timeout_seconds: int
    sweep_interval_seconds: int
    ended_grace_seconds: int
    max_message_length: int
    replay_intent_returning: bool
    replay_intent_new: bool
