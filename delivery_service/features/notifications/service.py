"""Notification routing and the user inbox.

``NotificationRouter.create`` is the entry point for business events: it
validates the payload, persists the notification, then delivers it over
every channel the recipient's preferences allow.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from delivery_service.core.database import utcnow
from delivery_service.core.exceptions import NotFoundException
from delivery_service.core.services import BaseService
from delivery_service.features.delivery.dispatchers import sms_body_for
from delivery_service.features.delivery.models import DeliveryStatus
from delivery_service.features.delivery.templates import TemplateNotFoundError
from delivery_service.features.notifications.metrics import (
    notification_channel_attempt_total,
    notification_created_total,
)
from delivery_service.features.notifications.models import Notification, NotificationCategory
from delivery_service.features.notifications.repository import (
    NotificationRepository,
    RecipientRepository,
)
from delivery_service.features.notifications.schemas import (
    ChannelPreferences,
    parse_payload,
    payload_variables,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from delivery_service.core.database import SearchResult
    from delivery_service.core.settings.delivery import DeliverySettings
    from delivery_service.features.delivery.dispatchers import SmsDispatcher
    from delivery_service.features.delivery.templates import TemplateResolver
    from delivery_service.features.delivery.tracking import Clock, DeliveryTracker
    from delivery_service.features.notifications.models import Recipient

_FALLBACK_HTML = "<p>{{ message }}</p>"


class NotificationRouter(BaseService):
    """Create notifications and fan them out to email and SMS.

    Provides:
    - create: validate, persist, route by preference, record attempts
    - inbox queries and read state for one user
    - purge_expired: retention for read notifications
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        resolver: TemplateResolver,
        tracker: DeliveryTracker,
        sms: SmsDispatcher,
        settings: DeliverySettings,
        *,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._resolver = resolver
        self._tracker = tracker
        self._sms = sms
        self._settings = settings
        self._clock = clock
        self._recipients = RecipientRepository()
        self._notifications = NotificationRepository()

    async def create(
        self,
        user_id: str,
        category: NotificationCategory | str,
        title: str,
        message: str,
        payload: dict[str, Any] | None = None,
    ) -> Notification:
        """Persist a notification and deliver it on the qualifying channels.

        Args:
            user_id: Recipient user id
            category: Notification category
            title: Short title (email subject when no template applies)
            message: Notification text
            payload: Category payload; ``kind`` is injected when omitted

        Returns:
            The notification with ``email_attempted``/``sms_attempted`` set.

        Raises:
            ValidationException: Payload does not match the category.
            NotFoundException: Unknown user. Nothing is persisted.
        """
        category = NotificationCategory(category)
        parsed = parse_payload(category, payload)

        async with self._session_factory() as session:
            recipient = await self._recipients.get(session, user_id)
            if recipient is None:
                raise NotFoundException(
                    detail=f"Recipient {user_id} not found",
                    type="recipient-not-found",
                    extra={"user_id": user_id},
                )

            notification = await self._notifications.create(
                session,
                Notification(
                    user_id=user_id,
                    category=category.value,
                    title=title,
                    message=message,
                    payload=parsed.model_dump(mode="json"),
                ),
            )
            await session.commit()

        notification_created_total.labels(category=category.value).inc()
        self.logger.info(
            "Notification created",
            extra={"notification_id": str(notification.id), "user_id": user_id, "category": category.value},
        )

        preferences = ChannelPreferences.from_document(recipient.preferences)
        variables = {
            **payload_variables(parsed),
            "recipient_name": recipient.first_name or recipient.display_name,
            "first_name": recipient.first_name,
            "last_name": recipient.last_name,
            "title": title,
            "message": message,
        }

        channels: dict[str, Awaitable[bool]] = {}
        if preferences.wants_email(category):
            channels["email"] = self._send_email(recipient, notification, category, variables)
        if preferences.wants_sms(category) and recipient.phone:
            channels["sms"] = self._send_sms(recipient, category, variables)

        self._lazy.debug(lambda: f"route {notification.id}: channels={sorted(channels)}")
        outcomes = await asyncio.gather(
            *(self._guarded(notification, channel, send) for channel, send in channels.items())
        )
        attempted = dict(zip(channels, outcomes, strict=True))

        async with self._session_factory() as session:
            row = await self._notifications.get_or_raise(session, notification.id)
            row.email_attempted = attempted.get("email", False)
            row.sms_attempted = attempted.get("sms", False)
            await session.commit()

        return row

    async def _guarded(self, notification: Notification, channel: str, send: Awaitable[bool]) -> bool:
        """Run one channel; its failure is logged and never reaches the caller."""
        try:
            return await send
        except Exception:
            notification_channel_attempt_total.labels(channel=channel, outcome="error").inc()
            self.logger.exception(
                "Notification channel failed",
                extra={"notification_id": str(notification.id), "channel": channel},
            )
            return False

    async def _send_email(
        self,
        recipient: Recipient,
        notification: Notification,
        category: NotificationCategory,
        variables: dict[str, Any],
    ) -> bool:
        try:
            rendered = await self._resolver.resolve(category.template_name, variables)
        except TemplateNotFoundError:
            subject = notification.title
            html = self._resolver.renderer.render_string(_FALLBACK_HTML, variables, html=True)
            text = notification.message
            template_id = None
        else:
            subject, html, text, template_id = rendered.subject, rendered.html, rendered.text, rendered.template_id

        message = await self._tracker.send_tracked(
            recipient.email,
            subject,
            html,
            text,
            category.value,
            user_id=recipient.id,
            template_id=template_id,
            metadata={"notification_id": str(notification.id)},
        )
        notification_channel_attempt_total.labels(
            channel="email",
            outcome="success" if message.status == DeliveryStatus.SENT else "failure",
        ).inc()
        return True

    async def _send_sms(
        self,
        recipient: Recipient,
        category: NotificationCategory,
        variables: dict[str, Any],
    ) -> bool:
        assert recipient.phone is not None
        body = sms_body_for(category, variables, recipient.first_name)
        result = await self._sms.send(recipient.phone, body)
        notification_channel_attempt_total.labels(
            channel="sms",
            outcome="success" if result.success else "failure",
        ).inc()
        # A locally rejected phone number still counts as an attempt
        return True

    # ------------------------------------------------------------------
    # Inbox
    # ------------------------------------------------------------------

    async def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        unread_only: bool = False,
    ) -> SearchResult[Notification]:
        async with self._session_factory() as session:
            return await self._notifications.list_for_user(
                session, user_id, unread_only=unread_only, limit=limit, offset=offset
            )

    async def unread_count(self, user_id: str) -> int:
        async with self._session_factory() as session:
            return await self._notifications.count_unread(session, user_id)

    async def mark_as_read(self, notification_id: UUID, user_id: str) -> Notification:
        """Mark one notification read.

        Raises:
            NotFoundException: Missing, or owned by another user.
        """
        async with self._session_factory() as session:
            notification = await self._get_owned(session, notification_id, user_id)
            if not notification.read:
                notification.read = True
                notification.read_at = self._clock()
                await session.commit()
            return notification

    async def mark_all_as_read(self, user_id: str) -> int:
        async with self._session_factory() as session:
            updated = await self._notifications.mark_all_read(session, user_id, self._clock())
            await session.commit()
        self._lazy.debug(lambda: f"mark_all_as_read: {user_id} -> {updated}")
        return updated

    async def delete(self, notification_id: UUID, user_id: str) -> None:
        async with self._session_factory() as session:
            notification = await self._get_owned(session, notification_id, user_id)
            await self._notifications.delete(session, notification)
            await session.commit()

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete read notifications older than ``retention_days``.

        Returns:
            Number of rows deleted.
        """
        cutoff = (now or self._clock()) - timedelta(days=self._settings.retention_days)
        async with self._session_factory() as session:
            deleted = await self._notifications.delete_read_before(session, cutoff)
            await session.commit()
        return deleted

    async def _get_owned(self, session: AsyncSession, notification_id: UUID, user_id: str) -> Notification:
        notification = await self._notifications.get(session, notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundException(
                detail=f"Notification {notification_id} not found",
                type="notification-not-found",
                extra={"notification_id": str(notification_id)},
            )
        return notification


__all__ = ["NotificationRouter"]
