"""Delivery pipeline settings: retries, bulk pacing, webhooks, retention."""

from __future__ import annotations

from datetime import timedelta

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DeliverySettings(BaseSettings):
    """Tuning for the tracked-delivery pipeline.

    Environment variables use DELIVERY_ prefix.
    Example: DELIVERY_MAX_RETRIES=5, DELIVERY_CRON_SECRET=...
    """

    # Retry configuration
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Send attempts before a message is dead-lettered",
    )
    retry_batch_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Messages selected per retry pass",
    )
    backoff_base_minutes: float = Field(
        default=1.0,
        gt=0.0,
        description="Multiplier for 2^retry_count backoff",
    )
    max_backoff_minutes: float = Field(
        default=60.0,
        gt=0.0,
        description="Upper bound for a single backoff interval",
    )
    retry_interval_seconds: int = Field(
        default=60,
        ge=5,
        le=3600,
        description="How often the scheduler runs a retry pass",
    )
    claim_lease_seconds: int = Field(
        default=300,
        ge=10,
        description="How long a retry pass holds a claimed message",
    )

    # Bulk sends
    bulk_batch_size: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Default recipients per bulk batch",
    )
    bulk_pause_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Pause between bulk batches",
    )

    # Webhook ingestion
    webhook_miss_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Lookups attempted before an event is treated as unmatched",
    )
    webhook_miss_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Delay between lookups for a not-yet-committed message",
    )

    # Retention
    retention_days: int = Field(
        default=90,
        ge=1,
        description="Read notifications older than this are purged",
    )
    retention_cron_hour: int = Field(
        default=3,
        ge=0,
        le=23,
        description="UTC hour for the daily retention job",
    )

    # Scheduling / trigger auth
    scheduler_enabled: bool = Field(
        default=True,
        description="Run the in-process APScheduler jobs",
    )
    cron_secret: SecretStr | None = Field(
        default=None,
        description="Bearer token required by the manual retry trigger",
    )

    model_config = SettingsConfigDict(
        env_prefix="DELIVERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @property
    def max_backoff(self) -> timedelta:
        return timedelta(minutes=self.max_backoff_minutes)

    @property
    def claim_lease(self) -> timedelta:
        return timedelta(seconds=self.claim_lease_seconds)


__all__ = ["DeliverySettings"]
