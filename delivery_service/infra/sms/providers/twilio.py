"""Twilio SMS provider.

Uses the Twilio REST Messages resource over httpx with HTTP basic auth.

Usage:
    provider = TwilioProvider(account_sid="ACxxx", auth_token="...", from_number="+15550001111")
    result = await provider.send("+12125551234", "Your claim was approved")
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from delivery_service.infra.common.result import DispatchResult, classify_http_error

from .base import BaseSmsProvider

logger = logging.getLogger(__name__)


class TwilioProvider(BaseSmsProvider):
    """Twilio Messages API provider."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        *,
        base_url: str = "https://api.twilio.com/2010-04-01",
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not (account_sid and auth_token and from_number):
            raise ValueError("Twilio provider requires account_sid, auth_token and from_number")

        self._auth = httpx.BasicAuth(account_sid, auth_token)
        self._from_number = from_number
        self._messages_url = f"{base_url.rstrip('/')}/Accounts/{account_sid}/Messages"
        self._timeout = timeout
        self._client = client

        logger.info("Twilio provider initialized", extra={"from_number": from_number})

    @property
    def provider_name(self) -> str:
        return "twilio"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, auth=self._auth, timeout=self._timeout, **kwargs)
        async with httpx.AsyncClient() as client:
            return await client.request(method, url, auth=self._auth, timeout=self._timeout, **kwargs)

    async def _do_send(self, to: str, body: str) -> DispatchResult:
        try:
            response = await self._request(
                "POST",
                f"{self._messages_url}.json",
                data={"To": to, "From": self._from_number, "Body": body},
            )
        except httpx.TimeoutException:
            return DispatchResult.failure_result(
                provider=self.provider_name, error="Twilio API timeout", error_code="TIMEOUT"
            )
        except httpx.HTTPError as e:
            return DispatchResult.failure_result(
                provider=self.provider_name, error=f"Twilio HTTP error: {e}", error_code="HTTP_ERROR"
            )

        if response.status_code in (200, 201):
            payload = response.json()
            return DispatchResult.success_result(
                provider_message_id=str(payload["sid"]),
                provider=self.provider_name,
                metadata={"status": payload.get("status")},
            )

        try:
            detail = response.json().get("message", response.text)
        except ValueError:
            detail = response.text
        return DispatchResult.failure_result(
            provider=self.provider_name,
            error=f"Twilio API error ({response.status_code}): {detail}",
            error_code=classify_http_error(response.status_code),
            metadata={"status_code": response.status_code},
        )

    async def fetch_status(self, provider_message_id: str) -> str | None:
        """Fetch a message's Twilio status (queued, sent, delivered, failed, ...)."""
        try:
            response = await self._request("GET", f"{self._messages_url}/{provider_message_id}.json")
        except httpx.HTTPError:
            logger.warning(
                "Twilio status lookup failed",
                extra={"provider_message_id": provider_message_id},
                exc_info=True,
            )
            return None
        if response.status_code != 200:
            return None
        return response.json().get("status")


__all__ = ["TwilioProvider"]
