"""Pydantic schemas for the delivery feature API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from delivery_service.features.delivery.models import DeliveryStatus
from delivery_service.features.notifications.models import NotificationCategory

# ============================================================================
# Tracked messages
# ============================================================================


class TrackedMessageResponse(BaseModel):
    """Tracked email as returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    category: str
    recipient: str
    sender: str | None = None
    subject: str
    status: DeliveryStatus
    provider_message_id: str | None = None
    retry_count: int
    max_retries: int
    next_retry_at: datetime | None = None
    error_message: str | None = None
    sent_at: datetime | None = None
    delivered_at: datetime | None = None
    opened_at: datetime | None = None
    clicked_at: datetime | None = None
    bounced_at: datetime | None = None
    bounce_reason: str | None = None
    complaint_at: datetime | None = None
    related_user_id: str | None = None
    related_template_id: UUID | None = None
    meta: dict[str, Any] | None = Field(default=None, serialization_alias="metadata")
    created_at: datetime
    updated_at: datetime


class TrackingEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    message_id: UUID
    kind: str
    occurred_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None
    url: str | None = None


class FailedMessagesResponse(BaseModel):
    """Page of FAILED and DEAD_LETTERED messages, newest first."""

    items: list[TrackedMessageResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


# ============================================================================
# Bulk
# ============================================================================


class BulkRecipient(BaseModel):
    """One bulk recipient with optional per-recipient template variables."""

    address: EmailStr
    user_id: str | None = Field(default=None, max_length=64)
    variables: dict[str, Any] = Field(default_factory=dict)


class BulkSendRequest(BaseModel):
    recipients: list[BulkRecipient] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1, max_length=500)
    html: str = Field(..., min_length=1)
    text: str | None = None
    category: NotificationCategory = NotificationCategory.GENERAL
    batch_size: int | None = Field(default=None, ge=1, le=100)


class BulkSendResponse(BaseModel):
    total: int
    sent: int
    failed: int
    messages: list[TrackedMessageResponse]


# ============================================================================
# Retry trigger
# ============================================================================


class RetryRunResponse(BaseModel):
    success: bool = True
    processed: int
    timestamp: datetime


# ============================================================================
# Analytics
# ============================================================================


class DateRange(BaseModel):
    """Half-open interval [start, end) over ``created_at``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def check_order(self) -> DateRange:
        if self.end < self.start:
            msg = "DateRange end must not be before start"
            raise ValueError(msg)
        return self


class DeliveryAnalyticsSummary(BaseModel):
    """Cumulative delivery counts and rates for a range.

    A message counts toward every stage its status implies, e.g. a
    CLICKED message is also sent, delivered and opened.
    """

    start: datetime
    end: datetime
    category: str | None = None

    total: int = 0
    pending: int = 0
    sent: int = 0
    delivered: int = 0
    opened: int = 0
    clicked: int = 0
    bounced: int = 0
    complaint: int = 0
    failed: int = 0
    dead_lettered: int = 0

    delivery_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    open_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    click_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    bounce_rate: float = Field(default=0.0, ge=0.0, le=1.0)


class CategoryAnalytics(BaseModel):
    start: datetime
    end: datetime
    categories: list[DeliveryAnalyticsSummary]


class TrendPoint(BaseModel):
    """Lifecycle events falling on one UTC day."""

    day: date
    sent: int = 0
    delivered: int = 0
    opened: int = 0
    clicked: int = 0
    bounced: int = 0


class DeliveryTrends(BaseModel):
    days: int
    points: list[TrendPoint]


class PerformanceMetrics(BaseModel):
    days: int
    total_messages: int
    avg_delivery_minutes: float
    avg_open_hours: float


__all__ = [
    "BulkRecipient",
    "BulkSendRequest",
    "BulkSendResponse",
    "CategoryAnalytics",
    "DateRange",
    "DeliveryAnalyticsSummary",
    "DeliveryTrends",
    "FailedMessagesResponse",
    "PerformanceMetrics",
    "RetryRunResponse",
    "TrackedMessageResponse",
    "TrackingEventResponse",
    "TrendPoint",
]
