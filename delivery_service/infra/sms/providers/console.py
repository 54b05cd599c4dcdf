"""Console SMS provider for development."""

from __future__ import annotations

import logging
import uuid

from delivery_service.infra.common.result import DispatchResult

from .base import BaseSmsProvider

logger = logging.getLogger(__name__)


class ConsoleSmsProvider(BaseSmsProvider):
    """Log SMS messages instead of sending them. Always succeeds."""

    @property
    def provider_name(self) -> str:
        return "console"

    async def _do_send(self, to: str, body: str) -> DispatchResult:
        message_id = f"console-sms-{uuid.uuid4()}"
        logger.info("SMS (console provider) to %s [%s]: %s", to, message_id, body)
        return DispatchResult.success_result(provider_message_id=message_id, provider=self.provider_name)

    async def fetch_status(self, provider_message_id: str) -> str | None:
        return "delivered" if provider_message_id.startswith("console-sms-") else None


__all__ = ["ConsoleSmsProvider"]
