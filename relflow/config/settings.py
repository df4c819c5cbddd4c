"""Application settings using Pydantic Settings for environment-based configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for relflow.

    All settings can be overridden via environment variables with the
    RELFLOW_ prefix (e.g., RELFLOW_LOG_LEVEL=DEBUG).
    """

    model_config = SettingsConfigDict(
        env_prefix="RELFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Observability
    metrics_enabled: bool = False
    metrics_port: int = Field(default=8000, ge=1, le=65535)

    # Batched row operations
    warn_not_persisting: bool = Field(
        default=True,
        description="Log a notice when a row operation runs without in_place",
    )

    # Temporary table naming
    temp_table_prefix: str = ""
    freeze_timestamp: str | None = Field(
        default=None,
        description="Fixed timestamp for temporary table names (reproducible docs/tests)",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    Clear cache with get_settings.cache_clear() if needed.
    """
    return Settings()
