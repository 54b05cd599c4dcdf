"""Tracked email sends.

``send_tracked`` persists a PENDING row before calling the provider, so
every attempt leaves a record even if the process dies mid-call, then
moves the row to SENT or FAILED with a compare-and-set update.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from delivery_service.core.database import utcnow
from delivery_service.core.exceptions import NotFoundException
from delivery_service.core.services import BaseService
from delivery_service.features.delivery.metrics import (
    delivery_dead_lettered_total,
    delivery_email_sent_total,
)
from delivery_service.features.delivery.models import DeliveryStatus, TrackedMessage
from delivery_service.features.delivery.repository import TrackedMessageRepository
from delivery_service.features.delivery.state_machine import require_transition
from delivery_service.infra.common.result import DispatchResult

if TYPE_CHECKING:
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from delivery_service.core.settings.delivery import DeliverySettings
    from delivery_service.features.delivery.dispatchers import EmailDispatcher

Clock = Callable[[], datetime]

# Failures decided locally, before any provider call; resending cannot fix them.
NON_RETRYABLE_ERROR_CODES = frozenset({"INVALID_MESSAGE", "INVALID_TEMPLATE"})


def compute_backoff(retry_count: int, settings: DeliverySettings) -> timedelta:
    """Delay before the next attempt after ``retry_count`` failures.

    ``backoff_base_minutes * 2**retry_count``, clamped to ``max_backoff_minutes``.
    """
    minutes = settings.backoff_base_minutes * (2 ** max(retry_count, 0))
    return min(timedelta(minutes=minutes), settings.max_backoff)


def failure_values(
    retry_count: int,
    max_retries: int,
    error: str | None,
    now: datetime,
    settings: DeliverySettings,
    *,
    retryable: bool = True,
) -> dict[str, Any]:
    """Column values for a failed attempt that brought the count to ``retry_count``.

    The status is FAILED with a scheduled retry while attempts remain, and
    DEAD_LETTERED (no retry time) once ``retry_count`` reaches ``max_retries``
    or when the failure is not ``retryable``.
    """
    if retry_count >= max_retries or not retryable:
        return {
            "status": DeliveryStatus.DEAD_LETTERED.value,
            "retry_count": min(retry_count, max_retries),
            "error_message": error,
            "next_retry_at": None,
        }
    return {
        "status": DeliveryStatus.FAILED.value,
        "retry_count": retry_count,
        "error_message": error,
        "next_retry_at": now + compute_backoff(retry_count, settings),
    }


class DeliveryTracker(BaseService):
    """Send emails with a persisted delivery record."""

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

    async def send_tracked(
        self,
        to: str,
        subject: str,
        html: str | None,
        text: str | None,
        category: str,
        *,
        user_id: str | None = None,
        template_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        sender: str | None = None,
    ) -> TrackedMessage:
        """Create a tracked message, send it and record the outcome.

        Args:
            to: Recipient address
            subject: Rendered subject
            html: Rendered HTML body
            text: Rendered text body
            category: NotificationCategory value
            user_id: Related user, if any
            template_id: Stored template used, if any
            metadata: Caller context stored on the row
            sender: Sender override

        Returns:
            The refreshed TrackedMessage (SENT, FAILED or DEAD_LETTERED).
            Provider failures are recorded, never raised.
        """
        message = await self._create_pending(
            to,
            subject,
            html,
            text,
            category,
            user_id=user_id,
            template_id=template_id,
            metadata=metadata,
            sender=sender,
        )
        message_id = message.id

        result = await self._dispatcher.send(
            to,
            subject,
            html,
            text,
            sender=sender,
            tags={"category": str(category), "tracked_message_id": str(message_id)},
        )
        delivery_email_sent_total.labels(
            category=str(category),
            outcome="success" if result.success else "failure",
        ).inc()

        async with self._session_factory() as session:
            await self._record_first_attempt(session, message, result)
            await session.commit()
            refreshed = await self._messages.get_fresh(session, message_id)

        assert refreshed is not None
        self._lazy.debug(lambda: f"send_tracked: {message_id} -> {refreshed.status}")
        return refreshed

    async def record_rejected(
        self,
        to: str,
        subject: str,
        category: str,
        error: str,
        *,
        error_code: str = "INVALID_TEMPLATE",
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> TrackedMessage:
        """Record a message that failed before it could be handed to the provider.

        The row goes through PENDING and FAILED to DEAD_LETTERED without a
        provider call, so callers sending to many recipients still get one row
        per recipient.
        """
        message = await self._create_pending(to, subject, None, None, category, user_id=user_id, metadata=metadata)
        result = DispatchResult.failure_result(self._dispatcher.provider_name, error, error_code)
        delivery_email_sent_total.labels(category=str(category), outcome="failure").inc()

        async with self._session_factory() as session:
            await self._record_first_attempt(session, message, result)
            await session.commit()
            refreshed = await self._messages.get_fresh(session, message.id)

        assert refreshed is not None
        return refreshed

    async def _create_pending(
        self,
        to: str,
        subject: str,
        html: str | None,
        text: str | None,
        category: str,
        *,
        user_id: str | None = None,
        template_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
        sender: str | None = None,
    ) -> TrackedMessage:
        async with self._session_factory() as session:
            message = await self._messages.create(
                session,
                TrackedMessage(
                    category=str(category),
                    recipient=to,
                    sender=sender,
                    subject=subject,
                    html_body=html,
                    text_body=text,
                    status=DeliveryStatus.PENDING.value,
                    retry_count=0,
                    max_retries=self._settings.max_retries,
                    related_user_id=user_id,
                    related_template_id=template_id,
                    meta=metadata,
                ),
            )
            await session.commit()
        return message

    async def _record_first_attempt(
        self,
        session: AsyncSession,
        message: TrackedMessage,
        result: DispatchResult,
    ) -> None:
        now = self._clock()

        if result.success:
            require_transition(DeliveryStatus.PENDING, DeliveryStatus.SENT)
            applied = await self._messages.compare_and_set(
                session,
                message.id,
                DeliveryStatus.PENDING,
                {
                    "status": DeliveryStatus.SENT.value,
                    "provider_message_id": result.provider_message_id,
                    "sent_at": now,
                    "error_message": None,
                },
            )
            if applied:
                self.logger.info(
                    "Tracked email sent",
                    extra={
                        "tracked_message_id": str(message.id),
                        "provider_message_id": result.provider_message_id,
                        "category": message.category,
                    },
                )
        else:
            values = failure_values(
                1,
                message.max_retries,
                result.error,
                now,
                self._settings,
                retryable=result.error_code not in NON_RETRYABLE_ERROR_CODES,
            )
            dead = values["status"] == DeliveryStatus.DEAD_LETTERED.value

            # PENDING -> FAILED first; DEAD_LETTERED is only reachable from FAILED
            require_transition(DeliveryStatus.PENDING, DeliveryStatus.FAILED)
            applied = await self._messages.compare_and_set(
                session,
                message.id,
                DeliveryStatus.PENDING,
                (values | {"status": DeliveryStatus.FAILED.value}) if dead else values,
            )
            if applied and dead:
                require_transition(DeliveryStatus.FAILED, DeliveryStatus.DEAD_LETTERED)
                await self._messages.compare_and_set(session, message.id, DeliveryStatus.FAILED, values)
                delivery_dead_lettered_total.inc()

            if applied:
                self.logger.warning(
                    "Tracked email failed",
                    extra={
                        "tracked_message_id": str(message.id),
                        "error": result.error,
                        "error_code": result.error_code,
                        "status": values["status"],
                    },
                )

        if not applied:
            self.logger.warning(
                "Tracked message changed during first send",
                extra={"tracked_message_id": str(message.id)},
            )

    async def get_message(self, message_id: UUID) -> TrackedMessage:
        """Load a tracked message.

        Raises:
            NotFoundException: If it does not exist.
        """
        async with self._session_factory() as session:
            message = await self._messages.get(session, message_id)
        if message is None:
            raise NotFoundException(
                detail=f"Tracked message {message_id} not found",
                type="tracked-message-not-found",
                extra={"message_id": str(message_id)},
            )
        return message


__all__ = ["NON_RETRYABLE_ERROR_CODES", "Clock", "DeliveryTracker", "compute_backoff", "failure_values"]
