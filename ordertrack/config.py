"""Application configuration using Pydantic Settings.

Reads configuration from environment variables with sensible defaults.
Secrets (database password) should be provided via environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    environment: Literal["prod", "staging", "dev"] = Field(
        default="dev",
        description="Environment name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode (SQL echo)",
    )

    # =========================================================================
    # Database
    # =========================================================================
    db_user: str = Field(
        default="ordertrack",
        description="Database user",
    )
    db_password: str = Field(
        default="",
        description="Database password",
    )
    db_name: str = Field(
        default="ordertrack",
        description="Database name",
    )
    db_host: str = Field(
        default="localhost",
        description="Database host",
    )
    db_port: int = Field(
        default=5432,
        description="Database port",
    )
    db_pool_size: int = Field(
        default=5,
        description="Database connection pool size",
    )
    db_pool_max_overflow: int = Field(
        default=10,
        description="Max overflow connections beyond pool size",
    )
    database_url_override: str = Field(
        default="",
        description="Full SQLAlchemy URL, e.g. sqlite+aiosqlite:///./ordertrack.db",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Build the async database URL.

        An explicit override wins (local SQLite, tests). Otherwise a
        PostgreSQL URL is assembled from the individual parts.
        """
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # =========================================================================
    # PDF import
    # =========================================================================
    pdf_max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Maximum accepted PDF upload size in bytes",
    )
    pdf_preview_ttl_seconds: float = Field(
        default=15 * 60,
        description="Lifetime of an import preview before it expires",
    )
    pdf_preview_sweep_seconds: float = Field(
        default=60,
        description="Interval between sweeps of expired previews",
    )

    # =========================================================================
    # Listings
    # =========================================================================
    page_limit_default: int = Field(
        default=50,
        ge=1,
        description="Default page size for list endpoints",
    )
    page_limit_max: int = Field(
        default=200,
        ge=1,
        description="Maximum page size for list endpoints",
    )

    # =========================================================================
    # Realtime events
    # =========================================================================
    sse_ping_seconds: float = Field(
        default=25.0,
        description="Keep-alive ping interval on the production event stream",
    )
    event_queue_size: int = Field(
        default=100,
        ge=1,
        description="Per-subscriber event buffer; events are dropped when full",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="Output logs as JSON",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for convenience
settings = get_settings()
