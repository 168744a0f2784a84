"""Domain-specific configuration models."""

from chat_bridge.core.settings.app_config import AppConfig
from chat_bridge.core.settings.business_config import BusinessConfig
from chat_bridge.core.settings.engine_config import EngineConfig
from chat_bridge.core.settings.rate_limit_config import RateLimitConfig
from chat_bridge.core.settings.redis_config import RedisConfig
from chat_bridge.core.settings.session_config import SessionConfig

__all__ = [
    "AppConfig",
    "BusinessConfig",
    "EngineConfig",
    "RateLimitConfig",
    "RedisConfig",
    "SessionConfig",
]
