"""SMS provider settings.

Environment variables use SMS_ prefix.
Example: SMS_PROVIDER=twilio, SMS_ACCOUNT_SID=ACxxx
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SmsSettings(BaseSettings):
    """Outbound SMS configuration."""

    provider: Literal["twilio", "console"] = Field(
        default="console",
        description="SMS provider: twilio (production), console (dev)",
    )
    account_sid: str | None = Field(default=None, description="Twilio account SID")
    auth_token: SecretStr | None = Field(default=None, description="Twilio auth token")
    from_number: str | None = Field(
        default=None,
        pattern=r"^\+\d{8,15}$",
        description="Sender number in E.164 format",
    )
    api_base_url: str = Field(
        default="https://api.twilio.com/2010-04-01",
        description="Twilio REST API base URL",
    )

    default_country_code: str = Field(
        default="1",
        pattern=r"^\d{1,3}$",
        description="Country code prefixed to 10-digit national numbers",
    )
    timeout: float = Field(
        default=15.0,
        ge=1.0,
        le=120.0,
        description="Per-request provider timeout in seconds",
    )
    bulk_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        le=10.0,
        description="Pause between messages in a bulk SMS send",
    )

    @model_validator(mode="after")
    def validate_twilio_credentials(self) -> SmsSettings:
        """Twilio requires SID, token and sender number."""
        if self.provider == "twilio" and not (
            self.account_sid and self.auth_token and self.from_number
        ):
            msg = "SMS_ACCOUNT_SID, SMS_AUTH_TOKEN and SMS_FROM_NUMBER are required for twilio"
            raise ValueError(msg)
        return self

    model_config = SettingsConfigDict(
        env_prefix="SMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )


__all__ = ["SmsSettings"]
