"""Application environment configuration."""

from typing import Literal

from pydantic import BaseModel


class AppConfig(BaseModel, frozen=True):
    """Application environment settings."""

    name: str
    env: Literal["development", "staging", "production"]
    debug: bool
    allowed_origins: str
    store_backend: Literal["memory", "redis"]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env == "production"

    @property
    def allowed_origins_list(self) -> list[str]:
        """CORS origins as a list; ``*`` allows every origin."""
        return [
            origin.strip()
            for origin in self.allowed_origins.split(",")
            if origin.strip()
        ]
