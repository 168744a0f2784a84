"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chat_bridge.core.settings import (
    AppConfig,
    BusinessConfig,
    EngineConfig,
    RateLimitConfig,
    RedisConfig,
    SessionConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.session.timeout_seconds).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = Field(
        default="chat-bridge",
        description="Application name",
    )
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )
    allowed_origins: str = Field(
        default="*",
        description="Comma-separated list of origins allowed to embed the widget",
    )
    store_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Storage for sessions and rate-limit windows",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_key_prefix: str = Field(
        default="chat_bridge",
        description="Namespace for all Redis keys",
    )

    # Conversation engine
    engine_api_url: str = Field(
        default="http://localhost:3000/api/engine",
        description="Base URL of the conversation engine API",
    )
    engine_health_timeout: float = Field(default=5.0, gt=0)
    engine_start_timeout: float = Field(default=10.0, gt=0)
    engine_message_timeout: float = Field(default=15.0, gt=0)
    engine_lookup_timeout: float = Field(default=30.0, gt=0)
    engine_end_timeout: float = Field(default=5.0, gt=0)

    # Sessions
    session_timeout_seconds: int = Field(
        default=30 * 60,
        ge=60,
        description="Idle time after which a chat session expires",
    )
    session_sweep_interval_seconds: int = Field(
        default=5 * 60,
        ge=1,
        description="Interval of the expired-session sweep",
    )
    session_ended_grace_seconds: int = Field(
        default=60,
        ge=0,
        description="How long ended sessions stay readable before removal",
    )
    max_message_length: int = Field(
        default=500,
        ge=1,
        le=4000,
        description="Visitor messages are truncated to this many characters",
    )
    replay_intent_returning: bool = Field(
        default=True,
        description="Replay the opening request once a returning customer is found",
    )
    replay_intent_new: bool = Field(
        default=False,
        description="Replay the opening request after a new customer gives a name",
    )

    # Rate limiting
    rate_limit_window_seconds: int = Field(default=60, ge=1)
    chat_rate_limit: int = Field(
        default=20,
        ge=1,
        description="Chat messages per session per window",
    )
    lookup_rate_limit: int = Field(
        default=30,
        ge=1,
        description="Session starts and history lookups per IP per window",
    )
    rate_limit_sweep_interval_seconds: int = Field(default=5 * 60, ge=1)
    global_rate_limit: str = Field(
        default="120/minute",
        description="Coarse per-IP limit applied to every route",
    )
    tenant_chat_rate_limits: dict[str, int] = Field(
        default_factory=dict,
        description='Per-tenant chat thresholds as JSON, e.g. {"acme": 40}',
    )

    # Business
    default_tenant_id: str = Field(default="rox-heating")
    business_name: str = Field(default="ROX Heating & Air")
    business_short_name: str = Field(default="ROX")
    business_spoken_name: str = Field(
        default="Rocks",
        description="Phonetic spelling the voice engine uses for the short name",
    )
    business_phone: str = Field(default="(720) 468-0689")
    business_hours: str = Field(default="Mon-Sat: 8am-5pm MST")
    business_service_area: str = Field(default="Denver Metro Area")
    initial_quick_replies: str = Field(
        default="Schedule a Repair,Get an Estimate,Maintenance / Tune-up,"
        "I Have an Appointment",
        description="Comma-separated buttons shown before the first message",
    )

    # --- Domain properties ---

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            env=self.app_env,
            debug=self.debug,
            allowed_origins=self.allowed_origins,
            store_backend=self.store_backend,
        )

    @cached_property
    def redis(self) -> RedisConfig:
        """Redis connection configuration."""
        return RedisConfig(url=self.redis_url, key_prefix=self.redis_key_prefix)

    @cached_property
    def engine(self) -> EngineConfig:
        """Conversation engine client configuration."""
        return EngineConfig(
            base_url=self.engine_api_url.rstrip("/"),
            health_timeout=self.engine_health_timeout,
            start_timeout=self.engine_start_timeout,
            message_timeout=self.engine_message_timeout,
            lookup_timeout=self.engine_lookup_timeout,
            end_timeout=self.engine_end_timeout,
        )

    @cached_property
    def session(self) -> SessionConfig:
        """Chat session lifecycle configuration."""
        return SessionConfig(
            timeout_seconds=self.session_timeout_seconds,
            sweep_interval_seconds=self.session_sweep_interval_seconds,
            ended_grace_seconds=self.session_ended_grace_seconds,
            max_message_length=self.max_message_length,
            replay_intent_returning=self.replay_intent_returning,
            replay_intent_new=self.replay_intent_new,
        )

    @cached_property
    def rate_limit(self) -> RateLimitConfig:
        """Rate limiting configuration."""
        return RateLimitConfig(
            window_seconds=self.rate_limit_window_seconds,
            chat_limit=self.chat_rate_limit,
            lookup_limit=self.lookup_rate_limit,
            sweep_interval_seconds=self.rate_limit_sweep_interval_seconds,
            global_limit=self.global_rate_limit,
            tenant_chat_limits=self.tenant_chat_rate_limits,
        )

    @cached_property
    def business(self) -> BusinessConfig:
        """Default tenant business details."""
        return BusinessConfig(
            tenant_id=self.default_tenant_id,
            name=self.business_name,
            short_name=self.business_short_name,
            spoken_name=self.business_spoken_name,
            fallback_phone=self.business_phone,
            hours=self.business_hours,
            service_area=self.business_service_area,
            initial_quick_replies=tuple(
                label.strip()
                for label in self.initial_quick_replies.split(",")
                if label.strip()
            ),
        )

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
