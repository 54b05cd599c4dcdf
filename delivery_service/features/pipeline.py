"""Wiring for the delivery pipeline.

``DeliveryPipeline`` holds every component the API and scheduled jobs
use. It is built once per application (in the lifespan) or per test and
passed around explicitly; nothing here is a module-level singleton.

Example:
    pipeline = build_pipeline(
        session_factory,
        email_provider=ConsoleEmailProvider("noreply@example.com"),
        sms_provider=ConsoleSmsProvider(),
        delivery_settings=DeliverySettings(),
        sms_settings=SmsSettings(),
    )
    await pipeline.router.create("u-1", "WELCOME", "Hi", "Welcome aboard")
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from delivery_service.core.database import utcnow
from delivery_service.features.delivery.analytics import AnalyticsAggregator
from delivery_service.features.delivery.bulk import BulkSender
from delivery_service.features.delivery.dispatchers import EmailDispatcher, SmsDispatcher
from delivery_service.features.delivery.retry import RetryScheduler
from delivery_service.features.delivery.templates import TemplateRenderer, TemplateResolver
from delivery_service.features.delivery.tracking import DeliveryTracker
from delivery_service.features.delivery.webhooks import WebhookIngestor
from delivery_service.features.notifications.service import NotificationRouter

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from delivery_service.core.settings.delivery import DeliverySettings
    from delivery_service.core.settings.sms import SmsSettings
    from delivery_service.features.delivery.dispatchers import SleepFunc
    from delivery_service.features.delivery.tracking import Clock
    from delivery_service.infra.email.providers.base import EmailProvider
    from delivery_service.infra.sms.providers.base import SmsProvider


@dataclass(slots=True)
class DeliveryPipeline:
    """Container of wired pipeline components."""

    settings: DeliverySettings
    session_factory: async_sessionmaker[AsyncSession]
    resolver: TemplateResolver
    email: EmailDispatcher
    sms: SmsDispatcher
    tracker: DeliveryTracker
    router: NotificationRouter
    webhooks: WebhookIngestor
    retry: RetryScheduler
    bulk: BulkSender
    analytics: AnalyticsAggregator


def build_pipeline(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    email_provider: EmailProvider,
    sms_provider: SmsProvider,
    delivery_settings: DeliverySettings,
    sms_settings: SmsSettings,
    clock: Clock = utcnow,
    sleep: SleepFunc = asyncio.sleep,
) -> DeliveryPipeline:
    """Build a pipeline around one session factory and two providers.

    Args:
        session_factory: Factory used for every unit of work
        email_provider: Provider behind the email dispatcher
        sms_provider: Provider behind the SMS dispatcher
        delivery_settings: Retry, bulk, webhook and retention tuning
        sms_settings: Country code and bulk pacing for SMS
        clock: Time source (UTC)
        sleep: Awaitable pause used for pacing and webhook retries
    """
    renderer = TemplateRenderer()
    resolver = TemplateResolver(session_factory, renderer)
    email = EmailDispatcher(email_provider)
    sms = SmsDispatcher(
        sms_provider,
        default_country_code=sms_settings.default_country_code,
        bulk_delay_seconds=sms_settings.bulk_delay_seconds,
        sleep=sleep,
    )
    tracker = DeliveryTracker(session_factory, email, delivery_settings, clock=clock)

    return DeliveryPipeline(
        settings=delivery_settings,
        session_factory=session_factory,
        resolver=resolver,
        email=email,
        sms=sms,
        tracker=tracker,
        router=NotificationRouter(session_factory, resolver, tracker, sms, delivery_settings, clock=clock),
        webhooks=WebhookIngestor(session_factory, delivery_settings, clock=clock, sleep=sleep),
        retry=RetryScheduler(session_factory, email, delivery_settings, clock=clock),
        bulk=BulkSender(tracker, renderer, delivery_settings, sleep=sleep),
        analytics=AnalyticsAggregator(session_factory, clock=clock),
    )


__all__ = ["DeliveryPipeline", "build_pipeline"]
