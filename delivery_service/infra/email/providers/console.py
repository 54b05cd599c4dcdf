"""Console email provider for development.

Logs emails instead of sending them. Always succeeds.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from delivery_service.infra.common.result import DispatchResult

from .base import BaseEmailProvider

if TYPE_CHECKING:
    from delivery_service.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


class ConsoleEmailProvider(BaseEmailProvider):
    """Console email provider for development."""

    @property
    def provider_name(self) -> str:
        return "console"

    async def _do_send(self, message: EmailMessage) -> DispatchResult:
        message_id = f"console-{uuid.uuid4()}"
        separator = "=" * 60
        logger.info(
            "\n".join(
                [
                    "",
                    separator,
                    "EMAIL (console provider)",
                    separator,
                    f"From:    {self.sender_for(message)}",
                    f"To:      {message.to}",
                    f"Subject: {message.subject}",
                    f"ID:      {message_id}",
                    separator,
                    message.text or message.html or "",
                    separator,
                ]
            )
        )
        return DispatchResult.success_result(provider_message_id=message_id, provider=self.provider_name)


__all__ = ["ConsoleEmailProvider"]
