"""Bulk tracked sends in paced batches."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from delivery_service.core.exceptions import ValidationException
from delivery_service.core.services import BaseService
from delivery_service.features.delivery.metrics import delivery_bulk_batches_total
from delivery_service.features.delivery.models import DeliveryStatus
from delivery_service.features.delivery.templates import TemplateRenderError, TemplateSource

if TYPE_CHECKING:
    from collections.abc import Sequence

    from delivery_service.core.settings.delivery import DeliverySettings
    from delivery_service.features.delivery.dispatchers import SleepFunc
    from delivery_service.features.delivery.models import TrackedMessage
    from delivery_service.features.delivery.schemas import BulkRecipient
    from delivery_service.features.delivery.templates import TemplateRenderer
    from delivery_service.features.delivery.tracking import DeliveryTracker

MAX_BATCH_SIZE = 100


class BulkSender(BaseService):
    """Send one templated email to many recipients.

    Recipients are split into sequential batches. Inside a batch every
    recipient gets its own render and the sends run concurrently; between
    batches the sender pauses for ``bulk_pause_seconds``.
    """

    def __init__(
        self,
        tracker: DeliveryTracker,
        renderer: TemplateRenderer,
        settings: DeliverySettings,
        *,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        super().__init__()
        self._tracker = tracker
        self._renderer = renderer
        self._settings = settings
        self._sleep = sleep

    async def send_bulk(
        self,
        recipients: Sequence[BulkRecipient],
        subject: str,
        html: str,
        text: str | None,
        category: str,
        batch_size: int | None = None,
    ) -> list[TrackedMessage]:
        """Send to every recipient.

        Args:
            recipients: Addresses with optional user id and template variables
            subject: Subject template
            html: HTML body template (autoescaped)
            text: Plain text body template
            category: NotificationCategory value recorded on each row
            batch_size: Recipients per batch (1..100), default from settings

        Returns:
            One TrackedMessage per recipient, in input order. A recipient whose
            variables break the render gets a DEAD_LETTERED row; one whose send
            raised unexpectedly is logged and omitted.

        Raises:
            ValidationException: Bad batch size or a template that does not compile.
        """
        size = self._settings.bulk_batch_size if batch_size is None else batch_size
        if not 1 <= size <= MAX_BATCH_SIZE:
            raise ValidationException(
                detail=f"batch_size must be between 1 and {MAX_BATCH_SIZE}",
                extra={"batch_size": size},
            )

        source = TemplateSource(subject=subject, html=html, text=text)
        try:
            self._renderer.render(source, {})
        except TemplateRenderError as e:
            raise ValidationException(detail=str(e), type="invalid-template") from e

        batches = [recipients[i : i + size] for i in range(0, len(recipients), size)]
        self.logger.info(
            "Bulk send started",
            extra={"recipients": len(recipients), "batches": len(batches), "category": category},
        )

        results: list[TrackedMessage] = []
        for index, batch in enumerate(batches):
            if index and self._settings.bulk_pause_seconds > 0:
                await self._sleep(self._settings.bulk_pause_seconds)

            sent = await asyncio.gather(*(self._send_one(r, source, category) for r in batch))
            results.extend(message for message in sent if message is not None)
            delivery_bulk_batches_total.inc()
            self._lazy.debug(lambda: f"bulk batch {index + 1}/{len(batches)}: {len(batch)} recipients")

        failed = sum(1 for m in results if m.status != DeliveryStatus.SENT)
        self.logger.info(
            "Bulk send finished",
            extra={"recipients": len(results), "failed": failed, "category": category},
        )
        return results

    async def _send_one(
        self,
        recipient: BulkRecipient,
        source: TemplateSource,
        category: str,
    ) -> TrackedMessage | None:
        """Send to one recipient; failures stay with that recipient.

        A render failure is recorded as a dead-lettered row. Any other error
        is logged and the recipient is left without a row.
        """
        variables: dict[str, Any] = {"email": recipient.address, **recipient.variables}
        try:
            rendered = self._renderer.render(source, variables)
        except TemplateRenderError as e:
            self.logger.warning(
                "Bulk recipient template failed to render",
                extra={"recipient": recipient.address, "error": str(e)},
            )
            return await self._tracker.record_rejected(
                recipient.address,
                source.subject,
                category,
                str(e),
                user_id=recipient.user_id,
                metadata={"bulk": True},
            )

        try:
            return await self._tracker.send_tracked(
                recipient.address,
                rendered.subject,
                rendered.html,
                rendered.text,
                category,
                user_id=recipient.user_id,
                metadata={"bulk": True},
            )
        except Exception:
            self.logger.exception("Bulk recipient send failed", extra={"recipient": recipient.address})
            return None


__all__ = ["MAX_BATCH_SIZE", "BulkSender"]
