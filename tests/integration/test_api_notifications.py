"""HTTP tests for the notifications endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from fastapi import status

if TYPE_CHECKING:
    from httpx import AsyncClient

    from tests.utils import FakeEmailProvider

BASE = "/api/v1/notifications"


def _payload(**overrides) -> dict:
    body = {
        "user_id": "u-1",
        "category": "CLAIM_SUBMITTED",
        "title": "Claim received",
        "message": "We received your claim",
        "payload": {"claim_number": "CLM-1"},
    }
    body.update(overrides)
    return body


class TestCreateNotification:
    """Tests for POST /notifications."""

    async def test_create(self, client: AsyncClient, add_recipient, email_provider: FakeEmailProvider) -> None:
        await add_recipient()

        response = await client.post(BASE, json=_payload())

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["user_id"] == "u-1"
        assert data["category"] == "CLAIM_SUBMITTED"
        assert data["payload"] == {"kind": "CLAIM_SUBMITTED", "claim_number": "CLM-1", "policy_number": None}
        assert data["email_attempted"] is True
        assert data["sms_attempted"] is False
        assert data["read"] is False
        assert email_provider.sent[0].subject == "Claim CLM-1 Submitted Successfully"

    async def test_unknown_user_is_problem_404(self, client: AsyncClient) -> None:
        response = await client.post(BASE, json=_payload(user_id="ghost"), headers={"X-Request-ID": "req-42"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.headers["content-type"].startswith("application/json")
        problem = response.json()
        assert problem["type"] == "recipient-not-found"
        assert problem["status"] == 404
        assert problem["user_id"] == "ghost"
        assert problem["request_id"] == "req-42"
        assert response.headers["x-request-id"] == "req-42"

    async def test_payload_mismatch_is_422(self, client: AsyncClient, add_recipient) -> None:
        await add_recipient()

        response = await client.post(BASE, json=_payload(payload={"kind": "WELCOME"}))

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["type"] == "payload-kind-mismatch"

    async def test_invalid_payload_fields_is_422(self, client: AsyncClient, add_recipient) -> None:
        await add_recipient()

        response = await client.post(BASE, json=_payload(category="PAYMENT_DUE", payload={"amount": "-5"}))

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        problem = response.json()
        assert problem["type"] == "invalid-payload"
        assert problem["errors"]

    async def test_request_validation(self, client: AsyncClient) -> None:
        """Test field-level errors for a malformed request body."""
        response = await client.post(BASE, json={"user_id": "u-1", "category": "NOPE"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        problem = response.json()
        assert problem["type"] == "validation-error"
        fields = {error["field"] for error in problem["errors"]}
        assert {"body.category", "body.title", "body.message"} <= fields


class TestInboxEndpoints:
    """Tests for listing and read-state endpoints."""

    async def test_list_and_unread_count(self, client: AsyncClient, add_recipient) -> None:
        await add_recipient()
        for _ in range(3):
            await client.post(BASE, json=_payload())

        response = await client.get(BASE, params={"user_id": "u-1", "limit": 2})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data["items"]) == 2
        assert data["total"] == 3
        assert data["has_more"] is True
        assert data["unread_count"] == 3

        count = await client.get(f"{BASE}/unread-count", params={"user_id": "u-1"})
        assert count.json() == {"user_id": "u-1", "unread_count": 3}

    async def test_user_id_required(self, client: AsyncClient) -> None:
        response = await client.get(BASE)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_mark_read_and_read_all(self, client: AsyncClient, add_recipient) -> None:
        await add_recipient()
        first = (await client.post(BASE, json=_payload())).json()
        await client.post(BASE, json=_payload())

        read = await client.post(f"{BASE}/{first['id']}/read", params={"user_id": "u-1"})
        assert read.status_code == status.HTTP_200_OK
        assert read.json()["read"] is True
        assert read.json()["read_at"] is not None

        read_all = await client.post(f"{BASE}/read-all", params={"user_id": "u-1"})
        assert read_all.json() == {"user_id": "u-1", "updated": 1}

        unread = await client.get(BASE, params={"user_id": "u-1", "unread_only": True})
        assert unread.json()["total"] == 0

    async def test_read_other_users_notification_is_404(self, client: AsyncClient, add_recipient) -> None:
        await add_recipient()
        created = (await client.post(BASE, json=_payload())).json()

        response = await client.post(f"{BASE}/{created['id']}/read", params={"user_id": "u-2"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["type"] == "notification-not-found"

    async def test_delete(self, client: AsyncClient, add_recipient) -> None:
        await add_recipient()
        created = (await client.post(BASE, json=_payload())).json()

        response = await client.delete(f"{BASE}/{created['id']}", params={"user_id": "u-1"})
        assert response.status_code == status.HTTP_204_NO_CONTENT

        again = await client.delete(f"{BASE}/{created['id']}", params={"user_id": "u-1"})
        assert again.status_code == status.HTTP_404_NOT_FOUND

    async def test_bad_uuid_is_422(self, client: AsyncClient) -> None:
        response = await client.delete(f"{BASE}/not-a-uuid", params={"user_id": "u-1"})
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    async def test_unknown_uuid_is_404(self, client: AsyncClient) -> None:
        response = await client.delete(f"{BASE}/{uuid4()}", params={"user_id": "u-1"})
        assert response.status_code == status.HTTP_404_NOT_FOUND
