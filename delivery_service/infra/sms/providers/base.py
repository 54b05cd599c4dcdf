"""Base SMS provider protocol and abstract class."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from delivery_service.infra.common.result import DispatchResult

logger = logging.getLogger(__name__)


@runtime_checkable
class SmsProvider(Protocol):
    """Protocol defining the SMS provider interface.

    ``to`` is always pre-normalized E.164.
    """

    @property
    def provider_name(self) -> str: ...

    async def send(self, to: str, body: str) -> DispatchResult: ...

    async def fetch_status(self, provider_message_id: str) -> str | None: ...


class BaseSmsProvider(ABC):
    """Abstract base class for SMS providers.

    ``send`` wraps ``_do_send`` with timing, logging and a catch-all,
    mirroring the email provider base.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @abstractmethod
    async def _do_send(self, to: str, body: str) -> DispatchResult: ...

    async def fetch_status(self, provider_message_id: str) -> str | None:
        """Look up the provider-side status of a sent message.

        Returns:
            Provider status string, or None if unknown.
        """
        _ = provider_message_id
        return None

    async def send(self, to: str, body: str) -> DispatchResult:
        start_time = time.perf_counter()
        try:
            result = await self._do_send(to, body)
        except Exception as e:
            logger.exception(
                f"Unexpected error in {self.provider_name} SMS provider",
                extra={"provider": self.provider_name},
            )
            result = DispatchResult.failure_result(
                provider=self.provider_name,
                error=str(e) or type(e).__name__,
                error_code="UNEXPECTED_ERROR",
            )

        if result.duration_ms is None:
            result = result.with_duration(int((time.perf_counter() - start_time) * 1000))

        log = logger.info if result.success else logger.warning
        log(
            f"SMS {'sent' if result.success else 'failed'} via {self.provider_name}",
            extra={
                "provider": self.provider_name,
                "provider_message_id": result.provider_message_id,
                "error_code": result.error_code,
                "duration_ms": result.duration_ms,
            },
        )
        return result


__all__ = ["BaseSmsProvider", "SmsProvider"]
