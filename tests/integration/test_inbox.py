"""Integration tests for the user inbox and retention."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest

from delivery_service.core.database import utcnow
from delivery_service.core.exceptions import NotFoundException

if TYPE_CHECKING:
    from delivery_service.features.notifications.models import Notification
    from delivery_service.features.pipeline import DeliveryPipeline


async def _create(pipeline: DeliveryPipeline, user_id: str = "u-1", title: str = "Hello") -> Notification:
    return await pipeline.router.create(user_id, "GENERAL", title, "Body")


class TestInbox:
    """Tests for listing and read state."""

    async def test_list_newest_first_with_paging(self, pipeline: DeliveryPipeline, add_recipient) -> None:
        await add_recipient()
        for i in range(3):
            await _create(pipeline, title=f"n{i}")

        page = await pipeline.router.list_for_user("u-1", limit=2)

        assert [n.title for n in page.items] == ["n2", "n1"]
        assert page.total == 3
        assert page.has_more is True

    async def test_scoped_to_user(self, pipeline: DeliveryPipeline, add_recipient) -> None:
        await add_recipient("u-1")
        await add_recipient("u-2", email="bob@example.com", first_name="Bob")
        await _create(pipeline, "u-1")
        await _create(pipeline, "u-2")

        assert (await pipeline.router.list_for_user("u-2")).total == 1
        assert await pipeline.router.unread_count("u-1") == 1

    async def test_mark_as_read(self, pipeline: DeliveryPipeline, add_recipient, clock) -> None:
        await add_recipient()
        notification = await _create(pipeline)

        read = await pipeline.router.mark_as_read(notification.id, "u-1")

        assert read.read is True
        assert read.read_at == clock.now
        assert await pipeline.router.unread_count("u-1") == 0
        unread_page = await pipeline.router.list_for_user("u-1", unread_only=True)
        assert unread_page.total == 0

    async def test_mark_as_read_is_idempotent(self, pipeline: DeliveryPipeline, add_recipient, clock) -> None:
        await add_recipient()
        notification = await _create(pipeline)
        first = await pipeline.router.mark_as_read(notification.id, "u-1")
        clock.advance(timedelta(hours=1))

        second = await pipeline.router.mark_as_read(notification.id, "u-1")

        assert second.read_at == first.read_at

    async def test_other_users_notification_not_found(self, pipeline: DeliveryPipeline, add_recipient) -> None:
        await add_recipient("u-1")
        notification = await _create(pipeline)

        with pytest.raises(NotFoundException):
            await pipeline.router.mark_as_read(notification.id, "u-2")
        with pytest.raises(NotFoundException):
            await pipeline.router.delete(notification.id, "u-2")

    async def test_mark_all_as_read(self, pipeline: DeliveryPipeline, add_recipient) -> None:
        await add_recipient()
        for _ in range(3):
            await _create(pipeline)
        notification = (await pipeline.router.list_for_user("u-1")).items[0]
        await pipeline.router.mark_as_read(notification.id, "u-1")

        assert await pipeline.router.mark_all_as_read("u-1") == 2
        assert await pipeline.router.unread_count("u-1") == 0

    async def test_delete(self, pipeline: DeliveryPipeline, add_recipient) -> None:
        await add_recipient()
        notification = await _create(pipeline)

        await pipeline.router.delete(notification.id, "u-1")

        assert (await pipeline.router.list_for_user("u-1")).total == 0
        with pytest.raises(NotFoundException):
            await pipeline.router.delete(uuid4(), "u-1")


class TestRetention:
    """Tests for purge_expired."""

    async def test_purges_only_old_read_rows(self, pipeline: DeliveryPipeline, add_recipient) -> None:
        """Test that unread rows survive and read rows past retention are deleted."""
        await add_recipient()
        read = await _create(pipeline, title="read")
        await _create(pipeline, title="unread")
        await pipeline.router.mark_as_read(read.id, "u-1")

        assert await pipeline.router.purge_expired() == 0

        deleted = await pipeline.router.purge_expired(now=utcnow() + timedelta(days=91))

        assert deleted == 1
        remaining = await pipeline.router.list_for_user("u-1")
        assert [n.title for n in remaining.items] == ["unread"]
