"""Delivery analytics over tracked messages.

Counts are cumulative: a status implies every earlier stage, so a
CLICKED message is counted as sent, delivered, opened and clicked.
Rates are 0.0 when their denominator is zero and clamped to [0, 1].
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select

from delivery_service.core.database import utcnow
from delivery_service.core.exceptions import NotFoundException, ValidationException
from delivery_service.core.services import BaseService
from delivery_service.features.delivery.models import DeliveryStatus, TrackedMessage
from delivery_service.features.delivery.repository import (
    TrackedMessageRepository,
    TrackingEventRepository,
)
from delivery_service.features.delivery.schemas import (
    CategoryAnalytics,
    DateRange,
    DeliveryAnalyticsSummary,
    DeliveryTrends,
    PerformanceMetrics,
    TrendPoint,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from delivery_service.core.database import SearchResult
    from delivery_service.features.delivery.models import TrackingEvent
    from delivery_service.features.delivery.tracking import Clock

RANGE_PRESETS: dict[str, timedelta] = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
    "1y": timedelta(days=365),
}

_S = DeliveryStatus
SENT_STATUSES = frozenset({_S.SENT, _S.DELIVERED, _S.OPENED, _S.CLICKED, _S.BOUNCED, _S.COMPLAINT})
DELIVERED_STATUSES = frozenset({_S.DELIVERED, _S.OPENED, _S.CLICKED, _S.COMPLAINT})
OPENED_STATUSES = frozenset({_S.OPENED, _S.CLICKED})
CLICKED_STATUSES = frozenset({_S.CLICKED})


def safe_rate(numerator: int, denominator: int) -> float:
    """``numerator / denominator`` clamped to [0, 1], 0.0 for a zero denominator."""
    if denominator <= 0:
        return 0.0
    return min(max(numerator / denominator, 0.0), 1.0)


def resolve_range(value: DateRange | str, now: datetime) -> DateRange:
    """Turn a preset (``7d``, ``30d``, ``90d``, ``1y``) into a concrete range.

    Raises:
        ValidationException: For an unknown preset.
    """
    if isinstance(value, DateRange):
        return value
    delta = RANGE_PRESETS.get(value)
    if delta is None:
        raise ValidationException(
            detail=f"Unknown time range {value!r}",
            extra={"allowed": sorted(RANGE_PRESETS)},
        )
    return DateRange(start=now - delta, end=now)


def summarize(
    status_counts: Mapping[str, int],
    date_range: DateRange,
    category: str | None = None,
) -> DeliveryAnalyticsSummary:
    """Build a cumulative summary from raw per-status counts."""
    counts = {DeliveryStatus(status): n for status, n in status_counts.items()}

    def total_of(statuses: frozenset[DeliveryStatus]) -> int:
        return sum(counts.get(s, 0) for s in statuses)

    sent = total_of(SENT_STATUSES)
    delivered = total_of(DELIVERED_STATUSES)
    opened = total_of(OPENED_STATUSES)
    clicked = total_of(CLICKED_STATUSES)
    bounced = counts.get(_S.BOUNCED, 0)

    return DeliveryAnalyticsSummary(
        start=date_range.start,
        end=date_range.end,
        category=category,
        total=sum(counts.values()),
        pending=counts.get(_S.PENDING, 0),
        sent=sent,
        delivered=delivered,
        opened=opened,
        clicked=clicked,
        bounced=bounced,
        complaint=counts.get(_S.COMPLAINT, 0),
        failed=counts.get(_S.FAILED, 0),
        dead_lettered=counts.get(_S.DEAD_LETTERED, 0),
        delivery_rate=safe_rate(delivered, sent),
        open_rate=safe_rate(opened, delivered),
        click_rate=safe_rate(clicked, delivered),
        bounce_rate=safe_rate(bounced, sent),
    )


class AnalyticsAggregator(BaseService):
    """Read-only reporting queries over ``tracked_messages``."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._clock = clock
        self._messages = TrackedMessageRepository()
        self._events = TrackingEventRepository()

    async def analytics(
        self,
        date_range: DateRange | str = "30d",
        category: str | None = None,
    ) -> DeliveryAnalyticsSummary:
        """Summary for messages created in ``date_range``, optionally one category."""
        resolved = resolve_range(date_range, self._clock())
        stmt = (
            select(TrackedMessage.status, func.count())
            .where(TrackedMessage.created_at >= resolved.start, TrackedMessage.created_at < resolved.end)
            .group_by(TrackedMessage.status)
        )
        if category:
            stmt = stmt.where(TrackedMessage.category == category)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        summary = summarize({status: n for status, n in rows}, resolved, category)
        self._lazy.debug(lambda: f"analytics: {summary.model_dump(exclude={'start', 'end'})}")
        return summary

    async def by_category(self, date_range: DateRange | str = "30d") -> CategoryAnalytics:
        """One summary per category seen in the range."""
        resolved = resolve_range(date_range, self._clock())
        stmt = (
            select(TrackedMessage.category, TrackedMessage.status, func.count())
            .where(TrackedMessage.created_at >= resolved.start, TrackedMessage.created_at < resolved.end)
            .group_by(TrackedMessage.category, TrackedMessage.status)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        per_category: dict[str, dict[str, int]] = {}
        for category, status, n in rows:
            per_category.setdefault(category, {})[status] = n

        return CategoryAnalytics(
            start=resolved.start,
            end=resolved.end,
            categories=[
                summarize(counts, resolved, category) for category, counts in sorted(per_category.items())
            ],
        )

    async def delivery_trends(self, days: int = 30) -> DeliveryTrends:
        """Per UTC day counts of sends, deliveries, opens, clicks and bounces.

        Every day in the window appears, including days with no activity.
        """
        if days < 1:
            raise ValidationException(detail="days must be at least 1", extra={"days": days})

        today = self._clock().astimezone(UTC).date()
        first_day = today - timedelta(days=days - 1)
        since = datetime(first_day.year, first_day.month, first_day.day, tzinfo=UTC)

        columns = {
            "sent": TrackedMessage.sent_at,
            "delivered": TrackedMessage.delivered_at,
            "opened": TrackedMessage.opened_at,
            "clicked": TrackedMessage.clicked_at,
            "bounced": TrackedMessage.bounced_at,
        }
        stmt = select(*columns.values()).where(or_(*(col >= since for col in columns.values())))
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        buckets: dict[str, Counter[date]] = {name: Counter() for name in columns}
        for row in rows:
            for name, value in zip(columns, row, strict=True):
                if value is not None and value >= since:
                    buckets[name][value.astimezone(UTC).date()] += 1

        points = []
        for offset in range(days):
            day = first_day + timedelta(days=offset)
            points.append(TrendPoint(day=day, **{name: buckets[name][day] for name in columns}))
        return DeliveryTrends(days=days, points=points)

    async def failed_messages(self, limit: int = 50, offset: int = 0) -> SearchResult[TrackedMessage]:
        """FAILED and DEAD_LETTERED messages, newest first."""
        async with self._session_factory() as session:
            return await self._messages.list_failed(session, limit=limit, offset=offset)

    async def performance(self, days: int = 30) -> PerformanceMetrics:
        """Average time to deliver (minutes) and to open after delivery (hours)."""
        since = self._clock() - timedelta(days=days)
        stmt = select(
            TrackedMessage.created_at,
            TrackedMessage.delivered_at,
            TrackedMessage.opened_at,
        ).where(TrackedMessage.created_at >= since)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()

        delivery_minutes = [
            (delivered - created).total_seconds() / 60 for created, delivered, _ in rows if delivered is not None
        ]
        open_hours = [
            (opened - delivered).total_seconds() / 3600
            for _, delivered, opened in rows
            if delivered is not None and opened is not None
        ]
        return PerformanceMetrics(
            days=days,
            total_messages=len(rows),
            avg_delivery_minutes=_mean(delivery_minutes),
            avg_open_hours=_mean(open_hours),
        )

    async def tracking_events(self, message_id: UUID) -> Sequence[TrackingEvent]:
        """Open/click events for one message, oldest first.

        Raises:
            NotFoundException: If the message does not exist.
        """
        async with self._session_factory() as session:
            if await self._messages.get(session, message_id) is None:
                raise NotFoundException(
                    detail=f"Tracked message {message_id} not found",
                    type="tracked-message-not-found",
                    extra={"message_id": str(message_id)},
                )
            return await self._events.list_for_message(session, message_id)


def _mean(values: Sequence[float]) -> float:
    return round(sum(values) / len(values), 2) if values else 0.0


__all__ = [
    "RANGE_PRESETS",
    "AnalyticsAggregator",
    "resolve_range",
    "safe_rate",
    "summarize",
]
