"""Channel dispatchers: thin wrappers over the email and SMS providers.

Dispatchers never retry and never raise for provider problems; every
outcome is a ``DispatchResult``. Retrying is the retry scheduler's job.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from delivery_service.features.delivery.metrics import (
    delivery_provider_duration_seconds,
    delivery_sms_sent_total,
)
from delivery_service.features.notifications.models import NotificationCategory
from delivery_service.infra.common.result import DispatchResult
from delivery_service.infra.email.schemas import EmailMessage
from delivery_service.infra.logging import get_lazy_logger
from delivery_service.infra.sms.phone import PhoneNumberError, normalize_phone

if TYPE_CHECKING:
    from collections.abc import Sequence

    from delivery_service.infra.email.providers.base import EmailProvider
    from delivery_service.infra.sms.providers.base import SmsProvider

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


def _observe_duration(channel: str, result: DispatchResult) -> None:
    if result.duration_ms is not None:
        delivery_provider_duration_seconds.labels(channel=channel).observe(result.duration_ms / 1000)


class EmailDispatcher:
    """Send one rendered email through the configured provider."""

    def __init__(self, provider: EmailProvider) -> None:
        self._provider = provider

    @property
    def provider_name(self) -> str:
        return self._provider.provider_name

    async def send(
        self,
        to: str,
        subject: str,
        html: str | None,
        text: str | None = None,
        *,
        sender: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> DispatchResult:
        """Send an email.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body
            text: Plain text body
            sender: Sender override
            tags: Provider tags

        Returns:
            DispatchResult; an invalid message becomes an ``INVALID_MESSAGE`` failure.
        """
        try:
            message = EmailMessage(to=to, subject=subject, html=html, text=text, sender=sender, tags=tags or {})
        except ValidationError as e:
            logger.warning(
                "Rejected malformed email before provider call",
                extra={"to": to, "errors": e.error_count()},
            )
            return DispatchResult.failure_result(
                provider=self._provider.provider_name,
                error=f"Invalid email message: {e.errors(include_url=False)[0]['msg']}",
                error_code="INVALID_MESSAGE",
            )

        try:
            result = await self._provider.send(message)
        except Exception as e:
            # Providers outside BaseEmailProvider (fakes, adapters) may still raise
            logger.exception("Email provider raised", extra={"provider": self._provider.provider_name})
            result = DispatchResult.failure_result(
                provider=self._provider.provider_name,
                error=str(e) or type(e).__name__,
                error_code="UNEXPECTED_ERROR",
            )

        _observe_duration("email", result)
        return result


def sms_body_for(
    category: NotificationCategory | str,
    payload: dict[str, Any],
    first_name: str | None = None,
) -> str:
    """Canned SMS text for a category.

    Args:
        category: Notification category
        payload: JSON-safe payload variables
        first_name: Optional greeting name

    Returns:
        Short SMS body
    """
    category = NotificationCategory(category)
    greeting = f"Hi {first_name}, " if first_name else ""

    match category:
        case NotificationCategory.CLAIM_SUBMITTED:
            body = f"Claim {payload.get('claim_number', '')} received. Our team will contact you shortly."
        case NotificationCategory.CLAIM_STATUS_UPDATE:
            body = (
                f"Claim {payload.get('claim_number', '')} status updated to "
                f"{payload.get('status', '')}. Check your account for details."
            )
        case NotificationCategory.CLAIM_PAYOUT:
            body = (
                f"Payout of {payload.get('amount', '')} for claim "
                f"{payload.get('claim_number', '')} has been processed."
            )
        case NotificationCategory.PAYMENT_DUE:
            body = (
                f"Payment reminder: {payload.get('amount', '')} due for policy "
                f"{payload.get('policy_number', '')} on {payload.get('due_date', '')}. "
                "Pay online to avoid late fees."
            )
        case NotificationCategory.PAYMENT_FAILED:
            body = (
                f"Your payment of {payload.get('amount', '')} could not be processed. "
                "Please update your payment details."
            )
        case NotificationCategory.POLICY_EXPIRING:
            body = (
                f"Your policy {payload.get('policy_number', '')} expires on "
                f"{payload.get('expiration_date', '')}. Renew now to maintain coverage."
            )
        case NotificationCategory.POLICY_RENEWAL:
            body = (
                f"Your policy {payload.get('policy_number', '')} renews on "
                f"{payload.get('renewal_date', '')}."
            )
        case _:
            body = "You have a new notification. Check your account for details."

    return f"Home Insurance: {greeting}{body}"


class SmsDispatcher:
    """Normalize phone numbers and send SMS through the configured provider.

    Malformed numbers are rejected locally with ``INVALID_PHONE``; the
    provider is never called for them.
    """

    def __init__(
        self,
        provider: SmsProvider,
        *,
        default_country_code: str = "1",
        bulk_delay_seconds: float = 0.1,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._country_code = default_country_code
        self._bulk_delay = bulk_delay_seconds
        self._sleep = sleep

    @property
    def provider_name(self) -> str:
        return self._provider.provider_name

    async def send(self, phone: str, body: str) -> DispatchResult:
        try:
            to = normalize_phone(phone, self._country_code)
        except PhoneNumberError as e:
            logger.warning("Rejected malformed phone number", extra={"reason": e.reason})
            delivery_sms_sent_total.labels(outcome="invalid_phone").inc()
            return DispatchResult.failure_result(
                provider=self._provider.provider_name,
                error=str(e),
                error_code="INVALID_PHONE",
            )

        try:
            result = await self._provider.send(to, body)
        except Exception as e:
            logger.exception("SMS provider raised", extra={"provider": self._provider.provider_name})
            result = DispatchResult.failure_result(
                provider=self._provider.provider_name,
                error=str(e) or type(e).__name__,
                error_code="UNEXPECTED_ERROR",
            )

        delivery_sms_sent_total.labels(outcome="success" if result.success else "failure").inc()
        _observe_duration("sms", result)
        return result

    async def send_bulk(self, recipients: Sequence[tuple[str, str]]) -> list[DispatchResult]:
        """Send sequentially, pausing ``bulk_delay_seconds`` between messages.

        Args:
            recipients: (phone, body) pairs

        Returns:
            One result per recipient, in input order.
        """
        results: list[DispatchResult] = []
        for index, (phone, body) in enumerate(recipients):
            if index and self._bulk_delay > 0:
                await self._sleep(self._bulk_delay)
            results.append(await self.send(phone, body))

        lazy_logger.debug(
            lambda: f"sms.send_bulk: {sum(r.success for r in results)}/{len(results)} succeeded"
        )
        return results

    async def fetch_status(self, provider_message_id: str) -> str | None:
        return await self._provider.fetch_status(provider_message_id)


__all__ = ["EmailDispatcher", "SleepFunc", "SmsDispatcher", "sms_body_for"]
