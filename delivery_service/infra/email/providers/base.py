"""Base email provider protocol and abstract class.

Defines the contract every email provider implements.

Usage:
    class MyProvider(BaseEmailProvider):
        async def _do_send(self, message: EmailMessage) -> DispatchResult:
            ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from delivery_service.infra.common.result import DispatchResult

if TYPE_CHECKING:
    from delivery_service.infra.email.schemas import EmailMessage

logger = logging.getLogger(__name__)


@runtime_checkable
class EmailProvider(Protocol):
    """Protocol defining the email provider interface.

    Fakes in tests only need ``provider_name`` and ``send``.
    """

    @property
    def provider_name(self) -> str: ...

    async def send(self, message: EmailMessage) -> DispatchResult: ...


class BaseEmailProvider(ABC):
    """Abstract base class for email providers.

    ``send`` wraps ``_do_send`` with timing, logging and a catch-all so
    a provider bug surfaces as a failed DispatchResult rather than an
    exception in the delivery pipeline.
    """

    def __init__(self, default_sender: str) -> None:
        self._default_sender = default_sender

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the provider name."""
        ...

    @abstractmethod
    async def _do_send(self, message: EmailMessage) -> DispatchResult:
        """Implement the actual sending logic."""
        ...

    async def send(self, message: EmailMessage) -> DispatchResult:
        """Send an email with timing and error handling.

        Args:
            message: The email message to send

        Returns:
            DispatchResult with delivery status
        """
        start_time = time.perf_counter()

        try:
            result = await self._do_send(message)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start_time) * 1000)
            logger.exception(
                f"Unexpected error in {self.provider_name} provider",
                extra={"provider": self.provider_name, "duration_ms": duration_ms},
            )
            return DispatchResult.failure_result(
                provider=self.provider_name,
                error=str(e) or type(e).__name__,
                error_code="UNEXPECTED_ERROR",
                duration_ms=duration_ms,
            )

        if result.duration_ms is None:
            result = result.with_duration(int((time.perf_counter() - start_time) * 1000))

        if result.success:
            logger.info(
                f"Email sent via {self.provider_name}",
                extra={
                    "provider_message_id": result.provider_message_id,
                    "provider": self.provider_name,
                    "duration_ms": result.duration_ms,
                },
            )
        else:
            logger.warning(
                f"Email send failed via {self.provider_name}",
                extra={
                    "provider": self.provider_name,
                    "error": result.error,
                    "error_code": result.error_code,
                    "duration_ms": result.duration_ms,
                },
            )
        return result

    def sender_for(self, message: EmailMessage) -> str:
        return message.sender or self._default_sender


__all__ = ["BaseEmailProvider", "EmailProvider"]
