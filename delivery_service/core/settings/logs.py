"""Logging settings."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LoggingSettings(BaseSettings):
    """Where delivery logs go and how they are rendered.

    Environment variables use LOG_ prefix, except the JSON switch which is
    read from ``LOG_JSON``.
    Example: LOG_LEVEL=debug, LOG_JSON=false, LOG_FILE=/var/log/delivery.jsonl
    """

    level: LogLevel = "INFO"
    json_logs: bool = Field(default=True, validation_alias="LOG_JSON", description="JSONL instead of text lines")
    file: str | None = Field(default=None, max_length=500, description="Rotating log file; unset disables it")
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, description="Rotation threshold for the log file")
    backup_count: int = Field(default=5, ge=0, le=100)
    console_enabled: bool = Field(default=True, description="Write to stderr")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def to_logging_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``configure_logging``."""
        return {
            "log_level": self.level,
            "json_logs": self.json_logs,
            "file_path": self.file,
            "console_enabled": self.console_enabled,
            "file_max_bytes": self.max_bytes,
            "file_backup_count": self.backup_count,
        }


__all__ = ["LoggingSettings"]
