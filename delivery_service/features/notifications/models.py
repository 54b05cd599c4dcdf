"""SQLAlchemy models for the notifications feature."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Boolean, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from delivery_service.core.database import Base, TimestampMixin, UTCDateTime, UUIDv7TimestampedBase


class NotificationCategory(StrEnum):
    """Business events that produce notifications."""

    POLICY_CREATED = "POLICY_CREATED"
    POLICY_RENEWAL = "POLICY_RENEWAL"
    POLICY_EXPIRING = "POLICY_EXPIRING"
    CLAIM_SUBMITTED = "CLAIM_SUBMITTED"
    CLAIM_STATUS_UPDATE = "CLAIM_STATUS_UPDATE"
    CLAIM_PAYOUT = "CLAIM_PAYOUT"
    PAYMENT_DUE = "PAYMENT_DUE"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    WELCOME = "WELCOME"
    GENERAL = "GENERAL"

    @property
    def template_name(self) -> str:
        """Name of the email template rendered for this category."""
        return self.value.lower()


class Recipient(Base, TimestampMixin):
    """User directory entry consulted when routing notifications.

    The id is the external user id used by business workflows. Channel
    preferences are stored as a JSON document and parsed with
    ``ChannelPreferences``; missing keys take their defaults.
    """

    __tablename__ = "notification_recipients"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="External user identifier",
    )
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Email address for the email channel",
    )
    phone: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="Phone number as entered (normalized at send time)",
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    preferences: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=True,
        comment="Channel preference document (email/sms flags)",
    )

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email

    def __repr__(self) -> str:
        return f"<Recipient(id={self.id}, email={self.email})>"


class Notification(UUIDv7TimestampedBase):
    """A business event surfaced to one user.

    Persisted before any delivery is attempted. Only the attempt flags and
    read state change afterwards; rows are removed by the retention job
    once read and past the retention window.
    """

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Recipient user identifier",
    )
    category: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        index=True,
        comment="NotificationCategory value",
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text(), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSONB().with_variant(JSON(), "sqlite"),
        nullable=False,
        default=dict,
        comment="Validated category payload (tagged by 'kind')",
    )

    # Delivery attempt flags (attempted, not confirmed)
    email_attempted: Mapped[bool] = mapped_column(Boolean(), default=False, nullable=False)
    sms_attempted: Mapped[bool] = mapped_column(Boolean(), default=False, nullable=False)

    read: Mapped[bool] = mapped_column(Boolean(), default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "read"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, category={self.category})>"


__all__ = ["Notification", "NotificationCategory", "Recipient"]
