"""Repositories for recipients and notifications."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select, update

from delivery_service.core.database import BaseRepository, SearchResult
from delivery_service.features.notifications.models import Notification, Recipient

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession


class RecipientRepository(BaseRepository[Recipient]):
    """Repository for the local recipient directory."""

    def __init__(self) -> None:
        super().__init__(Recipient)


class NotificationRepository(BaseRepository[Notification]):
    """Repository for user notifications."""

    def __init__(self) -> None:
        super().__init__(Notification)

    async def list_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        unread_only: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> SearchResult[Notification]:
        """Newest first."""
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        return await self.search(session, stmt, limit=limit, offset=offset)

    async def count_unread(self, session: AsyncSession, user_id: str) -> int:
        stmt = select(func.count()).where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
        return (await session.execute(stmt)).scalar_one()

    async def mark_all_read(self, session: AsyncSession, user_id: str, read_at: datetime) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount

    async def delete_read_before(self, session: AsyncSession, cutoff: datetime) -> int:
        """Delete read notifications created before ``cutoff``."""
        stmt = (
            delete(Notification)
            .where(Notification.read.is_(True), Notification.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        deleted = result.rowcount
        self._logger.info(
            "Purged read notifications",
            extra={"deleted": deleted, "cutoff": cutoff.isoformat(), "operation": "db.purge"},
        )
        return deleted


__all__ = ["NotificationRepository", "RecipientRepository"]
