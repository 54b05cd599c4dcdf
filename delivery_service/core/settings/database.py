"""Database connection settings."""

from __future__ import annotations

from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Async SQLAlchemy engine configuration.

    Environment variables use DB_ prefix.
    Example: DB_DATABASE_URL=postgresql+psycopg://user:pass@db/delivery
    """

    database_url: str = Field(
        default="sqlite+aiosqlite:///./delivery.db",
        min_length=1,
        description="SQLAlchemy async URL (postgresql+psycopg://... or sqlite+aiosqlite://...)",
    )
    echo: bool = Field(default=False, description="Log emitted SQL")
    pool_size: int = Field(default=10, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=10, ge=0, le=100, description="Pool overflow above pool_size")
    pool_timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="Seconds to wait for a pooled connection")
    pool_pre_ping: bool = Field(default=True, description="Validate connections before use")
    create_tables: bool = Field(default=True, description="Create missing tables at startup (idempotent)")

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        """True when the URL targets SQLite (pool sizing does not apply)."""
        return self.database_url.startswith("sqlite")

    def engine_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``create_async_engine``."""
        kwargs: dict[str, Any] = {"echo": self.echo, "pool_pre_ping": self.pool_pre_ping}
        if not self.is_sqlite:
            kwargs.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
            )
        return kwargs


__all__ = ["DatabaseSettings"]
