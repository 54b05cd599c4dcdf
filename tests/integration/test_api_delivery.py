"""HTTP tests for webhook, retry, bulk and analytics endpoints."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING
from uuid import uuid4

from fastapi import status
import pytest

from delivery_service.core.settings import DeliverySettings

if TYPE_CHECKING:
    from httpx import AsyncClient

    from delivery_service.features.pipeline import DeliveryPipeline
    from tests.utils import FakeClock, FakeEmailProvider

API = "/api/v1"


async def _tracked(pipeline: DeliveryPipeline):
    return await pipeline.tracker.send_tracked(
        "jane@example.com", "Claim update", "<p>Updated</p>", None, "CLAIM_STATUS_UPDATE", metadata={"k": "v"}
    )


class TestWebhookEndpoint:
    """Tests for /webhooks/email."""

    async def test_single_event(self, client: AsyncClient, pipeline: DeliveryPipeline) -> None:
        message = await _tracked(pipeline)

        response = await client.post(
            f"{API}/webhooks/email",
            json={
                "type": "email.delivered",
                "data": {"email_id": message.provider_message_id, "created_at": "2026-03-01T10:00:00Z"},
            },
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "processed": 1}
        assert (await pipeline.tracker.get_message(message.id)).status == "DELIVERED"

    async def test_array_body(self, client: AsyncClient, pipeline: DeliveryPipeline) -> None:
        message = await _tracked(pipeline)
        data = {"email_id": message.provider_message_id}

        response = await client.post(
            f"{API}/webhooks/email",
            json=[{"type": "email.delivered", "data": data}, {"type": "email.opened", "data": data}],
        )

        assert response.json()["processed"] == 2

    async def test_invalid_json_still_acknowledged(self, client: AsyncClient) -> None:
        """Test that providers always get a 200, even for unparseable bodies."""
        response = await client.post(
            f"{API}/webhooks/email", content=b"{not json", headers={"content-type": "application/json"}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "processed": 0}

    async def test_verification_get(self, client: AsyncClient) -> None:
        response = await client.get(f"{API}/webhooks/email")
        assert response.json() == {"status": "ok"}


class TestRetryEndpoint:
    """Tests for POST /delivery/retry without a cron secret."""

    async def test_open_when_no_secret(
        self,
        client: AsyncClient,
        pipeline: DeliveryPipeline,
        email_provider: FakeEmailProvider,
        clock: FakeClock,
    ) -> None:
        email_provider.fail_next()
        await _tracked(pipeline)
        clock.advance(timedelta(minutes=5))

        response = await client.post(f"{API}/delivery/retry")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["processed"] == 1
        assert "timestamp" in body


class TestRetryEndpointWithSecret:
    """Tests for the cron bearer secret."""

    @pytest.fixture
    def delivery_settings(self) -> DeliverySettings:
        return DeliverySettings(cron_secret="s3cret", scheduler_enabled=False, webhook_miss_delay_seconds=0)

    async def test_missing_header_rejected(self, client: AsyncClient) -> None:
        response = await client.post(f"{API}/delivery/retry")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["type"] == "invalid-cron-secret"

    async def test_wrong_secret_rejected(self, client: AsyncClient) -> None:
        response = await client.post(f"{API}/delivery/retry", headers={"Authorization": "Bearer nope"})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    async def test_correct_secret(self, client: AsyncClient) -> None:
        response = await client.post(f"{API}/delivery/retry", headers={"Authorization": "Bearer s3cret"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["processed"] == 0


class TestBulkEndpoint:
    """Tests for POST /delivery/bulk."""

    async def test_bulk(self, client: AsyncClient, email_provider: FakeEmailProvider) -> None:
        email_provider.fail_next()

        response = await client.post(
            f"{API}/delivery/bulk",
            json={
                "recipients": [
                    {"address": "a@example.com", "variables": {"name": "A"}},
                    {"address": "b@example.com", "variables": {"name": "B"}},
                    {"address": "c@example.com"},
                ],
                "subject": "Hi {{ name }}",
                "html": "<p>Hi {{ name }}</p>",
                "category": "GENERAL",
            },
        )

        assert response.status_code == status.HTTP_202_ACCEPTED
        body = response.json()
        assert body["total"] == 3
        assert body["sent"] == 2
        assert body["failed"] == 1
        assert {m["metadata"]["bulk"] for m in body["messages"]} == {True}

    async def test_bulk_requires_recipients(self, client: AsyncClient) -> None:
        response = await client.post(
            f"{API}/delivery/bulk", json={"recipients": [], "subject": "Hi", "html": "<p>Hi</p>"}
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestAnalyticsEndpoints:
    """Tests for analytics and message lookup endpoints."""

    async def test_summary(self, client: AsyncClient, pipeline: DeliveryPipeline, clock: FakeClock) -> None:
        await _tracked(pipeline)
        clock.advance(timedelta(minutes=1))

        response = await client.get(f"{API}/delivery/analytics", params={"range": "7d"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total"] == 1
        assert body["sent"] == 1

    async def test_by_category(self, client: AsyncClient, pipeline: DeliveryPipeline, clock: FakeClock) -> None:
        await _tracked(pipeline)
        clock.advance(timedelta(minutes=1))

        response = await client.get(f"{API}/delivery/analytics/by-category")

        assert [c["category"] for c in response.json()["categories"]] == ["CLAIM_STATUS_UPDATE"]

    async def test_unknown_range_rejected(self, client: AsyncClient) -> None:
        response = await client.get(f"{API}/delivery/analytics", params={"range": "2d"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_reversed_explicit_range_rejected(self, client: AsyncClient) -> None:
        response = await client.get(
            f"{API}/delivery/analytics",
            params={"start": "2026-03-02T00:00:00Z", "end": "2026-03-01T00:00:00Z"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["type"] == "validation-error"

    async def test_trends(self, client: AsyncClient) -> None:
        response = await client.get(f"{API}/delivery/analytics/trends", params={"days": 3})

        assert response.status_code == status.HTTP_200_OK
        assert len(response.json()["points"]) == 3

        rejected = await client.get(f"{API}/delivery/analytics/trends", params={"days": 0})
        assert rejected.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_performance(self, client: AsyncClient) -> None:
        response = await client.get(f"{API}/delivery/analytics/performance")
        assert response.json() == {"days": 30, "total_messages": 0, "avg_delivery_minutes": 0.0, "avg_open_hours": 0.0}

    async def test_failed_list(
        self, client: AsyncClient, pipeline: DeliveryPipeline, email_provider: FakeEmailProvider
    ) -> None:
        email_provider.fail_next()
        failed = await _tracked(pipeline)

        response = await client.get(f"{API}/delivery/failed")

        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == str(failed.id)
        assert body["items"][0]["status"] == "FAILED"

    async def test_message_and_events(self, client: AsyncClient, pipeline: DeliveryPipeline) -> None:
        message = await _tracked(pipeline)
        await pipeline.webhooks.ingest(
            "email.opened", {"email_id": message.provider_message_id, "created_at": "2026-03-01T10:00:00Z"}
        )

        response = await client.get(f"{API}/delivery/messages/{message.id}")
        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "OPENED"
        assert body["metadata"] == {"k": "v"}

        events = await client.get(f"{API}/delivery/messages/{message.id}/events")
        assert [e["kind"] for e in events.json()] == ["OPENED"]

    async def test_unknown_message_is_404(self, client: AsyncClient) -> None:
        for path in (f"/delivery/messages/{uuid4()}", f"/delivery/messages/{uuid4()}/events"):
            response = await client.get(f"{API}{path}")
            assert response.status_code == status.HTTP_404_NOT_FOUND
            assert response.json()["type"] == "tracked-message-not-found"


class TestOperationalEndpoints:
    """Tests for health and metrics."""

    async def test_health(self, client: AsyncClient) -> None:
        response = await client.get("/health")
        assert response.json() == {"status": "ok", "service": "delivery-service"}

    async def test_metrics(self, client: AsyncClient, pipeline: DeliveryPipeline) -> None:
        await _tracked(pipeline)

        response = await client.get("/metrics/")

        assert response.status_code == status.HTTP_200_OK
        assert "delivery_email_sent_total" in response.text
