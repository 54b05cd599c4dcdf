"""initial delivery schema

Revision ID: 3f2a9c1d7e44
Revises:
Create Date: 2026-03-01 00:00:00.000000+00:00

"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7e44"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _json() -> sa.types.TypeEngine:
    return postgresql.JSONB(astext_type=sa.Text()).with_variant(sa.JSON(), "sqlite")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="Timestamp of record creation",
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
            comment="Timestamp of last update",
        ),
    ]


def upgrade() -> None:
    """Create recipients, notifications, tracked messages, tracking events and templates."""
    op.create_table(
        "notification_recipients",
        sa.Column("id", sa.String(length=64), nullable=False, comment="External user identifier"),
        sa.Column("email", sa.String(length=320), nullable=False, comment="Email address for the email channel"),
        sa.Column(
            "phone",
            sa.String(length=32),
            nullable=True,
            comment="Phone number as entered (normalized at send time)",
        ),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("preferences", _json(), nullable=True, comment="Channel preference document (email/sms flags)"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_notification_recipients")),
    )
    op.create_index(
        op.f("ix_notification_recipients_created_at"), "notification_recipients", ["created_at"], unique=False
    )

    op.create_table(
        "notifications",
        sa.Column("user_id", sa.String(length=64), nullable=False, comment="Recipient user identifier"),
        sa.Column("category", sa.String(length=40), nullable=False, comment="NotificationCategory value"),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("payload", _json(), nullable=False, comment="Validated category payload (tagged by 'kind')"),
        sa.Column("email_attempted", sa.Boolean(), nullable=False),
        sa.Column("sms_attempted", sa.Boolean(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False, comment="UUID v7 primary key (time-sortable)"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_notifications")),
    )
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)
    op.create_index(op.f("ix_notifications_category"), "notifications", ["category"], unique=False)
    op.create_index(op.f("ix_notifications_created_at"), "notifications", ["created_at"], unique=False)
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "read"], unique=False)

    op.create_table(
        "tracked_messages",
        sa.Column("category", sa.String(length=40), nullable=False, comment="NotificationCategory value"),
        sa.Column("recipient", sa.String(length=320), nullable=False),
        sa.Column("sender", sa.String(length=320), nullable=True),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("html_body", sa.Text(), nullable=True),
        sa.Column("text_body", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, comment="DeliveryStatus value"),
        sa.Column(
            "provider_message_id",
            sa.String(length=255),
            nullable=True,
            comment="Provider id used to match webhooks",
        ),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("max_retries", sa.Integer(), nullable=False),
        sa.Column(
            "next_retry_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Set only while FAILED with attempts left",
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("clicked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bounced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bounce_reason", sa.Text(), nullable=True),
        sa.Column("complaint_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("related_user_id", sa.String(length=64), nullable=True),
        sa.Column("related_template_id", sa.Uuid(), nullable=True),
        sa.Column(
            "metadata",
            _json(),
            nullable=True,
            comment="Caller-supplied context (notification id, tags, ...)",
        ),
        sa.Column("id", sa.Uuid(), nullable=False, comment="UUID v7 primary key (time-sortable)"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tracked_messages")),
        sa.UniqueConstraint("provider_message_id", name=op.f("uq_tracked_messages_provider_message_id")),
    )
    op.create_index(op.f("ix_tracked_messages_category"), "tracked_messages", ["category"], unique=False)
    op.create_index(op.f("ix_tracked_messages_recipient"), "tracked_messages", ["recipient"], unique=False)
    op.create_index(op.f("ix_tracked_messages_status"), "tracked_messages", ["status"], unique=False)
    op.create_index(
        op.f("ix_tracked_messages_related_user_id"), "tracked_messages", ["related_user_id"], unique=False
    )
    op.create_index(op.f("ix_tracked_messages_created_at"), "tracked_messages", ["created_at"], unique=False)
    op.create_index(
        "ix_tracked_messages_retry_due", "tracked_messages", ["status", "next_retry_at"], unique=False
    )

    op.create_table(
        "tracking_events",
        sa.Column("message_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False, comment="TrackingEventKind value"),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("url", sa.Text(), nullable=True, comment="Clicked link (CLICKED only)"),
        sa.Column("id", sa.Uuid(), nullable=False, comment="UUID v7 primary key (time-sortable)"),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["message_id"],
            ["tracked_messages.id"],
            name=op.f("fk_tracking_events_message_id_tracked_messages"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tracking_events")),
        sa.UniqueConstraint("message_id", "kind", "occurred_at", name="uq_tracking_events_dedupe"),
    )
    op.create_index(op.f("ix_tracking_events_message_id"), "tracking_events", ["message_id"], unique=False)
    op.create_index(op.f("ix_tracking_events_created_at"), "tracking_events", ["created_at"], unique=False)

    op.create_table(
        "email_templates",
        sa.Column(
            "name",
            sa.String(length=100),
            nullable=False,
            comment="Template name (lowercase category, e.g. 'payment_due')",
        ),
        sa.Column("subject", sa.String(length=500), nullable=False),
        sa.Column("html_body", sa.Text(), nullable=False),
        sa.Column("text_body", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False, comment="UUID v7 primary key (time-sortable)"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_email_templates")),
        sa.UniqueConstraint("name", name=op.f("uq_email_templates_name")),
    )
    op.create_index(op.f("ix_email_templates_created_at"), "email_templates", ["created_at"], unique=False)


def downgrade() -> None:
    """Drop every delivery table."""
    op.drop_table("email_templates")
    op.drop_table("tracking_events")
    op.drop_table("tracked_messages")
    op.drop_table("notifications")
    op.drop_table("notification_recipients")
