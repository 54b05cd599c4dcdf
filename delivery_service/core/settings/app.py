"""HTTP application settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["development", "staging", "production", "test"]


class AppSettings(BaseSettings):
    """Identity and bind address of the delivery API.

    Environment variables use APP_ prefix.
    Example: APP_ENVIRONMENT=production, APP_PORT=8080
    """

    service_name: str = Field(
        default="delivery-service",
        pattern=r"^[a-z0-9]+(-[a-z0-9]+)*$",
        description="Value of the ``service`` field on logs and the health check",
    )
    title: str = Field(default="Delivery Service API", min_length=1, description="OpenAPI title")
    description: str = Field(
        default="Transactional notification delivery and tracking",
        description="OpenAPI description",
    )
    version: str = Field(default="1.0.0", pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9]+)?$")
    environment: Environment = "development"
    api_prefix: str = Field(default="/api/v1", pattern=r"^/.*$", description="Prefix for every feature router")
    debug: bool = Field(default=False, description="FastAPI debug mode; also enables uvicorn reload")
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=8000, ge=1, le=65535)

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )


__all__ = ["AppSettings"]
