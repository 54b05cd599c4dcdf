"""Retry pass for failed tracked emails.

Each pass selects FAILED messages whose ``next_retry_at`` has come,
claims each one with a compare-and-set on (status, retry_count, still due)
that pushes ``next_retry_at`` out by a lease, and resends it. Overlapping
passes (scheduler plus manual trigger) therefore never send the same
message twice for one attempt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from delivery_service.core.database import utcnow
from delivery_service.core.services import BaseService
from delivery_service.features.delivery.metrics import (
    delivery_dead_lettered_total,
    delivery_email_sent_total,
    delivery_retry_processed_total,
)
from delivery_service.features.delivery.models import DeliveryStatus
from delivery_service.features.delivery.repository import TrackedMessageRepository
from delivery_service.features.delivery.state_machine import require_transition
from delivery_service.features.delivery.tracking import NON_RETRYABLE_ERROR_CODES, failure_values

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from delivery_service.core.settings.delivery import DeliverySettings
    from delivery_service.features.delivery.dispatchers import EmailDispatcher
    from delivery_service.features.delivery.models import TrackedMessage
    from delivery_service.features.delivery.tracking import Clock


class RetryScheduler(BaseService):
    """Resend due FAILED messages with clamped exponential backoff."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: EmailDispatcher,
        settings: DeliverySettings,
        *,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._settings = settings
        self._clock = clock
        self._messages = TrackedMessageRepository()

    async def run_retry_pass(self) -> int:
        """Process one batch of due messages.

        Returns:
            Number of messages this pass claimed and attempted.
        """
        now = self._clock()
        async with self._session_factory() as session:
            due = await self._messages.list_due_for_retry(session, now, self._settings.retry_batch_size)

        if not due:
            self._lazy.debug(lambda: "retry pass: nothing due")
            return 0

        self.logger.info("Retry pass started", extra={"due": len(due)})
        processed = 0
        for message in due:
            try:
                if await self._retry_one(message):
                    processed += 1
            except Exception:
                delivery_retry_processed_total.labels(outcome="error").inc()
                self.logger.exception(
                    "Retry failed for tracked message",
                    extra={"tracked_message_id": str(message.id)},
                )

        self.logger.info("Retry pass finished", extra={"due": len(due), "processed": processed})
        return processed

    async def _retry_one(self, message: TrackedMessage) -> bool:
        observed_count = message.retry_count
        now = self._clock()

        async with self._session_factory() as session:
            claimed = await self._messages.compare_and_set(
                session,
                message.id,
                DeliveryStatus.FAILED,
                {"next_retry_at": now + self._settings.claim_lease},
                expected_retry_count=observed_count,
                due_by=now,
            )
            await session.commit()

        if not claimed:
            delivery_retry_processed_total.labels(outcome="skipped").inc()
            self._lazy.debug(lambda: f"retry: {message.id} claimed elsewhere")
            return False

        result = await self._dispatcher.send(
            message.recipient,
            message.subject,
            message.html_body,
            message.text_body,
            sender=message.sender,
            tags={"category": message.category, "tracked_message_id": str(message.id)},
        )
        delivery_email_sent_total.labels(
            category=message.category,
            outcome="success" if result.success else "failure",
        ).inc()

        retry_count = observed_count + 1
        now = self._clock()

        if result.success:
            require_transition(DeliveryStatus.FAILED, DeliveryStatus.SENT)
            values = {
                "status": DeliveryStatus.SENT.value,
                "provider_message_id": result.provider_message_id,
                "sent_at": now,
                "error_message": None,
                "next_retry_at": None,
                "retry_count": min(retry_count, message.max_retries),
            }
            outcome = "sent"
        else:
            values = failure_values(
                retry_count,
                message.max_retries,
                result.error,
                now,
                self._settings,
                retryable=result.error_code not in NON_RETRYABLE_ERROR_CODES,
            )
            require_transition(DeliveryStatus.FAILED, DeliveryStatus(values["status"]))
            outcome = "dead_lettered" if values["status"] == DeliveryStatus.DEAD_LETTERED.value else "failed"

        async with self._session_factory() as session:
            applied = await self._messages.compare_and_set(
                session,
                message.id,
                DeliveryStatus.FAILED,
                values,
                expected_retry_count=observed_count,
            )
            await session.commit()

        if not applied:
            self.logger.warning(
                "Retry result not recorded, message changed while sending",
                extra={"tracked_message_id": str(message.id)},
            )
            return True

        delivery_retry_processed_total.labels(outcome=outcome).inc()
        if outcome == "dead_lettered":
            delivery_dead_lettered_total.inc()
            self.logger.warning(
                "Tracked message dead-lettered",
                extra={"tracked_message_id": str(message.id), "retry_count": values["retry_count"]},
            )
        else:
            self.logger.info(
                "Tracked message retried",
                extra={
                    "tracked_message_id": str(message.id),
                    "outcome": outcome,
                    "retry_count": values["retry_count"],
                },
            )
        return True


__all__ = ["RetryScheduler"]
