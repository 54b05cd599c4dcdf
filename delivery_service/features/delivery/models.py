"""SQLAlchemy models for tracked email delivery."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from delivery_service.core.database import UTCDateTime, UUIDv7TimestampedBase


class DeliveryStatus(StrEnum):
    """Lifecycle of a tracked email."""

    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    DELIVERED = "DELIVERED"
    OPENED = "OPENED"
    CLICKED = "CLICKED"
    BOUNCED = "BOUNCED"
    COMPLAINT = "COMPLAINT"
    DEAD_LETTERED = "DEAD_LETTERED"


class TrackingEventKind(StrEnum):
    OPENED = "OPENED"
    CLICKED = "CLICKED"


class TrackedMessage(UUIDv7TimestampedBase):
    """One outbound email and its delivery lifecycle.

    Rows are created PENDING before the provider is called and are never
    deleted. Status changes go through compare-and-set updates in the
    repository; see ``state_machine`` for the allowed edges.
    """

    __tablename__ = "tracked_messages"

    category: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        index=True,
        comment="NotificationCategory value",
    )
    recipient: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    sender: Mapped[str | None] = mapped_column(String(320), nullable=True)
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    html_body: Mapped[str | None] = mapped_column(Text(), nullable=True)
    text_body: Mapped[str | None] = mapped_column(Text(), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=DeliveryStatus.PENDING.value,
        index=True,
        comment="DeliveryStatus value",
    )
    provider_message_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="Provider id used to match webhooks",
    )

    # Retry bookkeeping
    retry_count: Mapped[int] = mapped_column(Integer(), default=0, nullable=False)
    max_retries: Mapped[int] = mapped_column(Integer(), default=3, nullable=False)
    next_retry_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
        comment="Set only while FAILED with attempts left",
    )
    error_message: Mapped[str | None] = mapped_column(Text(), nullable=True)

    # Lifecycle timestamps
    sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    opened_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    clicked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    bounced_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    bounce_reason: Mapped[str | None] = mapped_column(Text(), nullable=True)
    complaint_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    related_user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    related_template_id: Mapped[UUID | None] = mapped_column(nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata",
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=True,
        comment="Caller-supplied context (notification id, tags, ...)",
    )

    __table_args__ = (
        Index("ix_tracked_messages_retry_due", "status", "next_retry_at"),
    )

    @property
    def delivery_status(self) -> DeliveryStatus:
        return DeliveryStatus(self.status)

    def __repr__(self) -> str:
        return f"<TrackedMessage(id={self.id}, recipient={self.recipient}, status={self.status})>"


class TrackingEvent(UUIDv7TimestampedBase):
    """Append-only open/click record for a tracked message.

    (message_id, kind, occurred_at) is unique so replayed webhooks do not
    add rows.
    """

    __tablename__ = "tracking_events"

    message_id: Mapped[UUID] = mapped_column(
        ForeignKey("tracked_messages.id"),
        nullable=False,
        index=True,
    )
    kind: Mapped[str] = mapped_column(String(20), nullable=False, comment="TrackingEventKind value")
    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text(), nullable=True)
    url: Mapped[str | None] = mapped_column(Text(), nullable=True, comment="Clicked link (CLICKED only)")

    __table_args__ = (
        UniqueConstraint("message_id", "kind", "occurred_at", name="uq_tracking_events_dedupe"),
    )

    def __repr__(self) -> str:
        return f"<TrackingEvent(message_id={self.message_id}, kind={self.kind}, occurred_at={self.occurred_at})>"


class EmailTemplate(UUIDv7TimestampedBase):
    """Stored template that overrides the built-in default of the same name."""

    __tablename__ = "email_templates"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Template name (lowercase category, e.g. 'payment_due')",
    )
    subject: Mapped[str] = mapped_column(String(500), nullable=False)
    html_body: Mapped[str] = mapped_column(Text(), nullable=False)
    text_body: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean(), default=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<EmailTemplate(name={self.name}, is_active={self.is_active})>"


__all__ = [
    "DeliveryStatus",
    "EmailTemplate",
    "TrackedMessage",
    "TrackingEvent",
    "TrackingEventKind",
]
