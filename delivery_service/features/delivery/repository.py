"""Data access for tracked messages, tracking events and templates.

Status changes are compare-and-set updates guarded by the expected
current status: callers read a row, decide a transition, then write it
only if nobody else moved the row in between.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from delivery_service.core.database import BaseRepository, SearchResult
from delivery_service.features.delivery.models import (
    DeliveryStatus,
    EmailTemplate,
    TrackedMessage,
    TrackingEvent,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


class TrackedMessageRepository(BaseRepository[TrackedMessage]):
    """Repository for TrackedMessage rows."""

    def __init__(self) -> None:
        super().__init__(TrackedMessage)

    async def get_fresh(self, session: AsyncSession, message_id: UUID) -> TrackedMessage | None:
        """Re-read a row, overwriting any stale copy in the identity map."""
        return await session.get(TrackedMessage, message_id, populate_existing=True)

    async def get_by_provider_id(
        self, session: AsyncSession, provider_message_id: str
    ) -> TrackedMessage | None:
        stmt = (
            select(TrackedMessage)
            .where(TrackedMessage.provider_message_id == provider_message_id)
            .execution_options(populate_existing=True)
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def compare_and_set(
        self,
        session: AsyncSession,
        message_id: UUID,
        expected: DeliveryStatus,
        values: dict[str, Any],
        *,
        expected_retry_count: int | None = None,
        due_by: datetime | None = None,
    ) -> bool:
        """Apply ``values`` only if the row still has status ``expected``.

        Args:
            session: Database session (caller commits)
            message_id: Row to update
            expected: Status the caller observed
            values: Column values to write
            expected_retry_count: Also require this retry_count (retry claims)
            due_by: Also require next_retry_at <= due_by, so a claimed lease blocks other claims

        Returns:
            True if exactly one row was updated.
        """
        stmt = (
            update(TrackedMessage)
            .where(TrackedMessage.id == message_id, TrackedMessage.status == expected.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if expected_retry_count is not None:
            stmt = stmt.where(TrackedMessage.retry_count == expected_retry_count)
        if due_by is not None:
            stmt = stmt.where(TrackedMessage.next_retry_at.is_not(None), TrackedMessage.next_retry_at <= due_by)

        result = await session.execute(stmt)
        applied = result.rowcount == 1
        self._lazy.debug(
            lambda: f"db.cas: TrackedMessage({message_id}) expected={expected.value} "
            f"values={sorted(values)} -> {'applied' if applied else 'lost'}"
        )
        return applied

    async def fill_if_null(
        self,
        session: AsyncSession,
        message_id: UUID,
        column: str,
        value: Any,
    ) -> bool:
        """Set ``column`` only where it is still NULL. Status is untouched."""
        attr = getattr(TrackedMessage, column)
        stmt = (
            update(TrackedMessage)
            .where(TrackedMessage.id == message_id, attr.is_(None))
            .values({column: value})
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def list_due_for_retry(
        self,
        session: AsyncSession,
        now: datetime,
        limit: int,
    ) -> Sequence[TrackedMessage]:
        """FAILED rows with attempts left whose retry time has come, oldest first."""
        stmt = (
            select(TrackedMessage)
            .where(
                TrackedMessage.status == DeliveryStatus.FAILED.value,
                TrackedMessage.retry_count < TrackedMessage.max_retries,
                TrackedMessage.next_retry_at.is_not(None),
                TrackedMessage.next_retry_at <= now,
            )
            .order_by(TrackedMessage.next_retry_at.asc(), TrackedMessage.id.asc())
            .limit(limit)
        )
        return (await session.execute(stmt)).scalars().all()

    async def list_failed(
        self,
        session: AsyncSession,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[TrackedMessage]:
        """FAILED and DEAD_LETTERED rows, newest first."""
        stmt = (
            select(TrackedMessage)
            .where(
                TrackedMessage.status.in_(
                    [DeliveryStatus.FAILED.value, DeliveryStatus.DEAD_LETTERED.value]
                )
            )
            .order_by(TrackedMessage.created_at.desc(), TrackedMessage.id.desc())
        )
        return await self.search(session, stmt, limit=limit, offset=offset)


class TrackingEventRepository(BaseRepository[TrackingEvent]):
    """Repository for append-only TrackingEvent rows."""

    def __init__(self) -> None:
        super().__init__(TrackingEvent)

    async def exists(
        self,
        session: AsyncSession,
        message_id: UUID,
        kind: str,
        occurred_at: datetime,
    ) -> bool:
        stmt = select(TrackingEvent.id).where(
            TrackingEvent.message_id == message_id,
            TrackingEvent.kind == kind,
            TrackingEvent.occurred_at == occurred_at,
        )
        return (await session.execute(stmt)).first() is not None

    async def append(self, session: AsyncSession, event: TrackingEvent) -> bool:
        """Insert and commit ``event`` unless an identical one exists.

        Returns:
            True if a row was written, False for a duplicate.
        """
        if await self.exists(session, event.message_id, event.kind, event.occurred_at):
            return False
        session.add(event)
        try:
            await session.commit()
        except IntegrityError:
            # Concurrent replay won the insert
            await session.rollback()
            return False
        return True

    async def list_for_message(self, session: AsyncSession, message_id: UUID) -> Sequence[TrackingEvent]:
        stmt = (
            select(TrackingEvent)
            .where(TrackingEvent.message_id == message_id)
            .order_by(TrackingEvent.occurred_at.asc(), TrackingEvent.id.asc())
        )
        return (await session.execute(stmt)).scalars().all()


class EmailTemplateRepository(BaseRepository[EmailTemplate]):
    """Repository for stored email templates."""

    def __init__(self) -> None:
        super().__init__(EmailTemplate)

    async def get_active(self, session: AsyncSession, name: str) -> EmailTemplate | None:
        stmt = select(EmailTemplate).where(
            EmailTemplate.name == name,
            EmailTemplate.is_active.is_(True),
        )
        return (await session.execute(stmt)).scalar_one_or_none()


__all__ = [
    "EmailTemplateRepository",
    "TrackedMessageRepository",
    "TrackingEventRepository",
]
