"""Provider webhook ingestion.

Maps email provider events (Resend-style ``{"type": ..., "data": ...}``)
onto tracked messages. Ingestion is idempotent and order tolerant:

- replaying an event leaves the row unchanged
- an event behind the current status never regresses it, but fills its
  timestamp column if that is still empty
- open/click events are appended to ``tracking_events`` once per
  (message, kind, occurred_at)

Events for messages not yet visible (the send may still be committing)
are looked up a few times before being counted as unmatched.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from delivery_service.core.database import utcnow
from delivery_service.core.services import BaseService
from delivery_service.features.delivery.metrics import (
    delivery_webhook_events_total,
    delivery_webhook_unmatched_total,
)
from delivery_service.features.delivery.models import DeliveryStatus, TrackingEvent, TrackingEventKind
from delivery_service.features.delivery.repository import (
    TrackedMessageRepository,
    TrackingEventRepository,
)
from delivery_service.features.delivery.state_machine import can_transition

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from delivery_service.core.settings.delivery import DeliverySettings
    from delivery_service.features.delivery.dispatchers import SleepFunc
    from delivery_service.features.delivery.models import TrackedMessage
    from delivery_service.features.delivery.tracking import Clock

MAX_CAS_ATTEMPTS = 3


class IngestOutcome(StrEnum):
    """What ingesting one webhook event did."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    STALE = "stale"
    UNMATCHED = "unmatched"
    IGNORED = "ignored"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class _EventRule:
    target: DeliveryStatus
    timestamp_column: str
    tracking_kind: TrackingEventKind | None = None


EVENT_RULES: dict[str, _EventRule] = {
    "email.sent": _EventRule(DeliveryStatus.SENT, "sent_at"),
    "email.delivered": _EventRule(DeliveryStatus.DELIVERED, "delivered_at"),
    "email.opened": _EventRule(DeliveryStatus.OPENED, "opened_at", TrackingEventKind.OPENED),
    "email.clicked": _EventRule(DeliveryStatus.CLICKED, "clicked_at", TrackingEventKind.CLICKED),
    "email.bounced": _EventRule(DeliveryStatus.BOUNCED, "bounced_at"),
    "email.complained": _EventRule(DeliveryStatus.COMPLAINT, "complaint_at"),
}

# Known but informational only
LOG_ONLY_EVENTS = frozenset({"email.delivery_delayed"})

_ID_KEYS = ("provider_message_id", "providerMessageId", "email_id")
_TIMESTAMP_KEYS = ("timestamp", "created_at")


def extract_provider_id(data: dict[str, Any]) -> str | None:
    for key in _ID_KEYS:
        value = data.get(key)
        if value:
            return str(value)
    return None


def parse_event_time(data: dict[str, Any], default: datetime) -> datetime:
    """Event timestamp from ``timestamp``/``created_at``, else ``default``.

    Accepts ISO 8601 strings (``Z`` suffix allowed) and epoch seconds.
    Naive values are taken as UTC.

    Raises:
        ValueError: If a timestamp is present but unparseable.
    """
    raw = next((data[key] for key in _TIMESTAMP_KEYS if data.get(key) not in (None, "")), None)
    if raw is None:
        return default
    if isinstance(raw, bool):
        raise ValueError(f"Invalid event timestamp: {raw!r}")
    try:
        if isinstance(raw, (int, float)):
            return datetime.fromtimestamp(raw, tz=UTC)
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Event timestamp out of range: {raw!r}") from e


class WebhookIngestor(BaseService):
    """Apply provider delivery events to tracked messages."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: DeliverySettings,
        *,
        clock: Clock = utcnow,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._settings = settings
        self._clock = clock
        self._sleep = sleep
        self._messages = TrackedMessageRepository()
        self._events = TrackingEventRepository()

    async def ingest_batch(self, body: Any) -> int:
        """Ingest a single event object or a list of them.

        Malformed entries are skipped, and an error in one event never stops
        the rest.

        Returns:
            Number of events processed.
        """
        items = body if isinstance(body, list) else [body]
        processed = 0
        for item in items:
            if not (
                isinstance(item, dict)
                and isinstance(item.get("type"), str)
                and isinstance(item.get("data"), dict)
            ):
                self.logger.warning("Skipping malformed webhook entry", extra={"entry_type": type(item).__name__})
                continue
            try:
                await self.ingest(item["type"], item["data"])
            except Exception:
                self.logger.exception("Webhook event processing failed", extra={"event_type": item["type"]})
                continue
            processed += 1
        return processed

    async def ingest(self, event_type: str, data: dict[str, Any]) -> IngestOutcome:
        """Apply one event.

        Args:
            event_type: Provider event type (``email.delivered``, ...)
            data: Event data carrying the provider message id and timestamp

        Returns:
            IngestOutcome describing the effect.
        """
        outcome = await self._ingest(event_type, data)
        label = event_type if event_type in EVENT_RULES or event_type in LOG_ONLY_EVENTS else "unknown"
        delivery_webhook_events_total.labels(event_type=label, outcome=outcome.value).inc()
        self._lazy.debug(lambda: f"webhook.ingest: {event_type} -> {outcome.value}")
        return outcome

    async def _ingest(self, event_type: str, data: dict[str, Any]) -> IngestOutcome:
        if event_type in LOG_ONLY_EVENTS:
            self.logger.info(
                "Email delivery delayed",
                extra={"event_type": event_type, "provider_message_id": extract_provider_id(data)},
            )
            return IngestOutcome.IGNORED

        rule = EVENT_RULES.get(event_type)
        if rule is None:
            self.logger.info("Ignoring unknown webhook event type", extra={"event_type": event_type})
            return IngestOutcome.IGNORED

        provider_id = extract_provider_id(data)
        if provider_id is None:
            self.logger.warning("Webhook event has no provider message id", extra={"event_type": event_type})
            return IngestOutcome.REJECTED

        try:
            occurred_at = parse_event_time(data, self._clock())
        except ValueError:
            self.logger.warning(
                "Webhook event has an invalid timestamp",
                extra={"event_type": event_type, "provider_message_id": provider_id},
            )
            return IngestOutcome.REJECTED

        message = await self._find_message(provider_id)
        if message is None:
            delivery_webhook_unmatched_total.labels(event_type=event_type).inc()
            self.logger.warning(
                "Webhook event matched no tracked message",
                extra={"event_type": event_type, "provider_message_id": provider_id},
            )
            return IngestOutcome.UNMATCHED

        async with self._session_factory() as session:
            outcome = await self._apply_status(session, message, rule, occurred_at, data)
            await session.commit()

        if rule.tracking_kind is not None:
            await self._append_tracking_event(message, rule.tracking_kind, occurred_at, data)

        return outcome

    async def _find_message(self, provider_id: str) -> TrackedMessage | None:
        attempts = self._settings.webhook_miss_retries
        for attempt in range(1, attempts + 1):
            async with self._session_factory() as session:
                message = await self._messages.get_by_provider_id(session, provider_id)
            if message is not None:
                return message
            if attempt < attempts:
                await self._sleep(self._settings.webhook_miss_delay_seconds)
        return None

    async def _apply_status(
        self,
        session: AsyncSession,
        message: TrackedMessage,
        rule: _EventRule,
        occurred_at: datetime,
        data: dict[str, Any],
    ) -> IngestOutcome:
        current: TrackedMessage | None = message
        for _ in range(MAX_CAS_ATTEMPTS):
            assert current is not None
            status = DeliveryStatus(current.status)

            if status == rule.target:
                await self._messages.fill_if_null(session, current.id, rule.timestamp_column, occurred_at)
                return IngestOutcome.DUPLICATE

            if not can_transition(status, rule.target):
                filled = await self._messages.fill_if_null(
                    session, current.id, rule.timestamp_column, occurred_at
                )
                self.logger.info(
                    "Stale webhook event not applied",
                    extra={
                        "tracked_message_id": str(current.id),
                        "current_status": status.value,
                        "event_status": rule.target.value,
                        "timestamp_filled": filled,
                    },
                )
                return IngestOutcome.STALE

            values: dict[str, Any] = {"status": rule.target.value, rule.timestamp_column: occurred_at}
            if rule.target == DeliveryStatus.BOUNCED:
                values["bounce_reason"] = _bounce_reason(data)

            if await self._messages.compare_and_set(session, current.id, status, values):
                self.logger.info(
                    "Delivery status updated from webhook",
                    extra={
                        "tracked_message_id": str(current.id),
                        "from_status": status.value,
                        "to_status": rule.target.value,
                    },
                )
                return IngestOutcome.APPLIED

            current = await self._messages.get_fresh(session, current.id)

        self.logger.warning(
            "Gave up applying webhook event after concurrent updates",
            extra={"tracked_message_id": str(message.id), "event_status": rule.target.value},
        )
        return IngestOutcome.STALE

    async def _append_tracking_event(
        self,
        message: TrackedMessage,
        kind: TrackingEventKind,
        occurred_at: datetime,
        data: dict[str, Any],
    ) -> bool:
        details = data.get("click" if kind == TrackingEventKind.CLICKED else "open")
        details = details if isinstance(details, dict) else {}
        event = TrackingEvent(
            message_id=message.id,
            kind=kind.value,
            occurred_at=occurred_at,
            ip_address=details.get("ipAddress"),
            user_agent=details.get("userAgent"),
            url=details.get("link") if kind == TrackingEventKind.CLICKED else None,
        )
        async with self._session_factory() as session:
            return await self._events.append(session, event)


def _bounce_reason(data: dict[str, Any]) -> str | None:
    bounce = data.get("bounce")
    if isinstance(bounce, dict) and bounce.get("message"):
        return str(bounce["message"])
    reason = data.get("reason")
    return str(reason) if reason else None


__all__ = [
    "EVENT_RULES",
    "LOG_ONLY_EVENTS",
    "IngestOutcome",
    "WebhookIngestor",
    "extract_provider_id",
    "parse_event_time",
]
