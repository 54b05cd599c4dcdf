"""Integration tests for paced bulk sends."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from delivery_service.core.exceptions import ValidationException
from delivery_service.features.delivery.models import DeliveryStatus
from delivery_service.features.delivery.schemas import BulkRecipient
from tests.utils import metric_value

if TYPE_CHECKING:
    from delivery_service.features.pipeline import DeliveryPipeline
    from tests.utils import FakeEmailProvider, SleepRecorder


def _recipients(n: int) -> list[BulkRecipient]:
    return [
        BulkRecipient(address=f"user{i}@example.com", user_id=f"u-{i}", variables={"name": f"User {i}"})
        for i in range(n)
    ]


class TestBulkSender:
    """Tests for BulkSender.send_bulk."""

    async def test_batches_and_pacing(
        self,
        pipeline: DeliveryPipeline,
        email_provider: FakeEmailProvider,
        sleeper: SleepRecorder,
    ) -> None:
        """Test 120 recipients in batches of 50: three batches, two pauses."""
        before = metric_value("delivery_bulk_batches_total")

        messages = await pipeline.bulk.send_bulk(
            _recipients(120), "Hello {{ name }}", "<p>Hi {{ name }}</p>", None, "GENERAL", batch_size=50
        )

        assert len(messages) == 120
        assert all(m.status == DeliveryStatus.SENT for m in messages)
        assert sleeper.calls == [1.0, 1.0]
        assert metric_value("delivery_bulk_batches_total") == before + 3
        assert len(email_provider.sent) == 120

    async def test_results_in_input_order_with_personalization(self, pipeline: DeliveryPipeline) -> None:
        messages = await pipeline.bulk.send_bulk(
            _recipients(3), "Hello {{ name }}", "<p>{{ email }}</p>", "Hi {{ name }}", "GENERAL"
        )

        assert [m.recipient for m in messages] == [f"user{i}@example.com" for i in range(3)]
        assert [m.subject for m in messages] == ["Hello User 0", "Hello User 1", "Hello User 2"]
        assert messages[1].html_body == "<p>user1@example.com</p>"
        assert messages[1].related_user_id == "u-1"
        assert messages[1].meta == {"bulk": True}

    async def test_single_batch_never_sleeps(self, pipeline: DeliveryPipeline, sleeper: SleepRecorder) -> None:
        await pipeline.bulk.send_bulk(_recipients(10), "Hi", "<p>Hi</p>", None, "GENERAL")
        assert sleeper.calls == []

    async def test_partial_failures_are_tracked(
        self, pipeline: DeliveryPipeline, email_provider: FakeEmailProvider
    ) -> None:
        """Test that failed sends become FAILED rows without aborting the batch."""
        email_provider.fail_next(2)

        messages = await pipeline.bulk.send_bulk(_recipients(5), "Hi", "<p>Hi</p>", None, "GENERAL")

        statuses = [m.status for m in messages]
        assert statuses.count(DeliveryStatus.FAILED) == 2
        assert statuses.count(DeliveryStatus.SENT) == 3

    @pytest.mark.parametrize("batch_size", [0, 101])
    async def test_batch_size_bounds(self, pipeline: DeliveryPipeline, batch_size: int) -> None:
        with pytest.raises(ValidationException):
            await pipeline.bulk.send_bulk(_recipients(1), "Hi", "<p>Hi</p>", None, "GENERAL", batch_size=batch_size)

    async def test_broken_template_rejected_before_sending(
        self, pipeline: DeliveryPipeline, email_provider: FakeEmailProvider
    ) -> None:
        with pytest.raises(ValidationException) as exc_info:
            await pipeline.bulk.send_bulk(_recipients(2), "Hi {% if %}", "<p>Hi</p>", None, "GENERAL")

        assert exc_info.value.type == "invalid-template"
        assert email_provider.sent == []

    async def test_recipient_render_failure_stays_with_that_recipient(
        self, pipeline: DeliveryPipeline, email_provider: FakeEmailProvider
    ) -> None:
        """Test that one recipient's bad variables dead-letter only that recipient."""
        recipients = [
            BulkRecipient(address="a@example.com", variables={"user": {"name": {"first": "Ann"}}}),
            BulkRecipient(address="b@example.com", variables={"user": "plain"}),
            BulkRecipient(address="c@example.com", variables={"user": {"name": {"first": "Cy"}}}),
        ]

        messages = await pipeline.bulk.send_bulk(
            recipients,
            "Hello",
            "<p>{% if user %}{{ user.name.first }}{% endif %}</p>",
            None,
            "GENERAL",
        )

        assert [m.recipient for m in messages] == ["a@example.com", "b@example.com", "c@example.com"]
        assert [m.status for m in messages] == [
            DeliveryStatus.SENT,
            DeliveryStatus.DEAD_LETTERED,
            DeliveryStatus.SENT,
        ]
        rejected = messages[1]
        assert "name" in (rejected.error_message or "")
        assert rejected.next_retry_at is None
        assert rejected.retry_count == 1
        assert [m.to for m in email_provider.sent] == ["a@example.com", "c@example.com"]
