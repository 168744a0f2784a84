"""Rate limiting configuration."""

from pydantic import BaseModel


class RateLimitConfig(BaseModel, frozen=True):
    """Sliding-window thresholds per route class."""

    window_seconds: int
    chat_limit: int
    lookup_limit: int
    sweep_interval_seconds: int
    global_limit: str
    tenant_chat_limits: dict[str, int]

    def chat_limit_for(self, tenant_id: str) -> int:
        """Chat message threshold for a tenant, falling back to the default."""
        return self.tenant_chat_limits.get(tenant_id, self.chat_limit)
