"""Resend email provider.

Sends through the Resend HTTP API (``POST /emails``) with httpx. Resend
reports delivery lifecycle changes back through webhooks keyed by the
``id`` it returns here.

Usage:
    provider = ResendProvider(api_key="re_xxx", default_sender="App <noreply@example.com>")
    result = await provider.send(message)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from delivery_service.infra.common.result import DispatchResult, classify_http_error

from .base import BaseEmailProvider

if TYPE_CHECKING:
    from delivery_service.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


class ResendProvider(BaseEmailProvider):
    """Resend API provider.

    Every request carries a bounded timeout; slow or failing calls become
    failed results and are left to the retry scheduler.
    """

    SEND_ENDPOINT = "/emails"

    def __init__(
        self,
        api_key: str,
        default_sender: str,
        *,
        base_url: str = "https://api.resend.com",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Resend provider.

        Args:
            api_key: Resend API key
            default_sender: Sender used when a message has none
            base_url: API base URL
            timeout: Per-request timeout in seconds
            client: Shared AsyncClient (a short-lived one is used if omitted)

        Raises:
            ValueError: If API key is missing
        """
        super().__init__(default_sender)
        if not api_key:
            raise ValueError("Resend provider requires api_key")

        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client

        logger.info("Resend provider initialized", extra={"base_url": self._base_url})

    @property
    def provider_name(self) -> str:
        return "resend"

    def _build_payload(self, message: EmailMessage) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "from": self.sender_for(message),
            "to": [str(message.to)],
            "subject": message.subject,
        }
        if message.html:
            payload["html"] = message.html
        if message.text:
            payload["text"] = message.text
        if message.tags:
            payload["tags"] = [{"name": k, "value": v} for k, v in message.tags.items()]
        if message.headers:
            payload["headers"] = message.headers
        return payload

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        url = f"{self._base_url}{self.SEND_ENDPOINT}"
        if self._client is not None:
            return await self._client.post(url, json=payload, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient() as client:
            return await client.post(url, json=payload, headers=headers, timeout=self._timeout)

    async def _do_send(self, message: EmailMessage) -> DispatchResult:
        """Send email via the Resend API.

        Returns:
            DispatchResult with the Resend email id
        """
        try:
            response = await self._post(self._build_payload(message))
        except httpx.TimeoutException:
            return DispatchResult.failure_result(
                provider=self.provider_name,
                error="Resend API timeout",
                error_code="TIMEOUT",
            )
        except httpx.HTTPError as e:
            return DispatchResult.failure_result(
                provider=self.provider_name,
                error=f"Resend HTTP error: {e}",
                error_code="HTTP_ERROR",
            )

        if response.status_code in (200, 201):
            body = response.json()
            return DispatchResult.success_result(
                provider_message_id=str(body["id"]),
                provider=self.provider_name,
            )

        try:
            error_body = response.json().get("message", response.text)
        except ValueError:
            error_body = response.text

        return DispatchResult.failure_result(
            provider=self.provider_name,
            error=f"Resend API error ({response.status_code}): {error_body}",
            error_code=classify_http_error(response.status_code),
            metadata={"status_code": response.status_code},
        )


__all__ = ["ResendProvider"]
