"""Configuration management for rowkeeper.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Settings are read once and cached.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ASYNC_DRIVERS = ("+aiosqlite", "+asyncpg", "+aiomysql", "+asyncmy", "+psycopg_async")


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables prefixed with
    ``ROWKEEPER_`` and from a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="ROWKEEPER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "rowkeeper"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Database Settings
    database_url: str = "sqlite:///./rk_data/rowkeeper.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False

    # SQLite Pragmas
    db_sqlite_busy_timeout: int = 5000  # milliseconds
    db_sqlite_foreign_keys: bool = True

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Row binding
    unknown_columns: Literal["reject", "ignore"] = Field(
        default="reject",
        description="What to do with table columns that no entity attribute declares",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.database_url.startswith("sqlite")

    @model_validator(mode="after")
    def validate_sync_driver(self) -> "Settings":
        """Reject async driver URLs, the data store runs synchronously."""
        scheme = self.database_url.split("://", 1)[0]
        if scheme.endswith(ASYNC_DRIVERS):
            raise ValueError(
                f"Async database driver {scheme!r} is not supported. "
                "Use a synchronous driver URL such as 'sqlite:///...' or "
                "'postgresql+psycopg://...'."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
