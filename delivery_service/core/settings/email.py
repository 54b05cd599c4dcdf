"""Email provider settings.

Environment variables use EMAIL_ prefix.
Example: EMAIL_PROVIDER=resend, EMAIL_API_KEY=re_xxx
"""

from __future__ import annotations

from typing import Literal

from pydantic import EmailStr, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    """Outbound email configuration.

    Supports two providers:
    - resend: Resend HTTP API (production)
    - console: Log emails instead of sending (development)
    """

    provider: Literal["resend", "console"] = Field(
        default="console",
        description="Email provider: resend (production), console (dev)",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Resend API key",
    )
    api_base_url: str = Field(
        default="https://api.resend.com",
        description="Resend API base URL",
    )

    from_address: EmailStr = Field(
        default="noreply@example.com",
        description="Default sender email address",
    )
    from_name: str | None = Field(
        default="Notifications",
        max_length=100,
        description="Default sender display name",
    )

    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Per-request provider timeout in seconds",
    )

    @model_validator(mode="after")
    def validate_resend_key(self) -> EmailSettings:
        """Resend requires an API key."""
        if self.provider == "resend" and self.api_key is None:
            msg = "EMAIL_API_KEY is required when EMAIL_PROVIDER=resend"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def default_sender(self) -> str:
        """Formatted ``Name <address>`` sender string."""
        if self.from_name:
            return f"{self.from_name} <{self.from_address}>"
        return str(self.from_address)


__all__ = ["EmailSettings"]
