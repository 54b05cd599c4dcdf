"""Delivery API routers: provider webhooks, retry trigger, bulk sends, analytics."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from delivery_service.core.database import utcnow
from delivery_service.core.dependencies import CronAuthorized, PipelineDep
from delivery_service.features.delivery.models import DeliveryStatus
from delivery_service.features.delivery.schemas import (
    BulkSendRequest,
    BulkSendResponse,
    CategoryAnalytics,
    DateRange,
    DeliveryAnalyticsSummary,
    DeliveryTrends,
    FailedMessagesResponse,
    PerformanceMetrics,
    RetryRunResponse,
    TrackedMessageResponse,
    TrackingEventResponse,
)
from delivery_service.features.notifications.models import NotificationCategory
from delivery_service.infra.logging import get_lazy_logger

webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])
router = APIRouter(prefix="/delivery", tags=["delivery"])

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

RangeQuery = Annotated[str, Query(alias="range", pattern=r"^(7d|30d|90d|1y)$")]


def _date_range(range_preset: str, start: datetime | None, end: datetime | None) -> DateRange | str:
    if start is not None and end is not None:
        return DateRange(start=start, end=end)
    return range_preset


# =============================================================================
# Webhooks
# =============================================================================


@webhook_router.post(
    "/email",
    summary="Receive email provider events",
    description="Accepts a single event object or an array of events and always acknowledges.",
)
async def receive_email_webhook(request: Request, pipeline: PipelineDep) -> dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        logger.warning("Email webhook body is not valid JSON")
        body = None
    processed = await pipeline.webhooks.ingest_batch(body)
    lazy_logger.debug(lambda: f"email webhook: processed={processed}")
    return {"success": True, "processed": processed}


@webhook_router.get("/email", summary="Webhook endpoint verification")
async def verify_email_webhook() -> dict[str, str]:
    return {"status": "ok"}


# =============================================================================
# Retry / bulk
# =============================================================================


@router.post(
    "/retry",
    response_model=RetryRunResponse,
    dependencies=[CronAuthorized],
    summary="Run a retry pass",
    description="Resend due FAILED emails. Requires the cron bearer secret when one is configured.",
)
async def run_retry(pipeline: PipelineDep) -> RetryRunResponse:
    processed = await pipeline.retry.run_retry_pass()
    logger.info("Manual retry pass completed", extra={"processed": processed})
    return RetryRunResponse(success=True, processed=processed, timestamp=utcnow())


@router.post(
    "/bulk",
    response_model=BulkSendResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Send one templated email to many recipients",
)
async def send_bulk(payload: BulkSendRequest, pipeline: PipelineDep) -> BulkSendResponse:
    messages = await pipeline.bulk.send_bulk(
        payload.recipients,
        payload.subject,
        payload.html,
        payload.text,
        payload.category.value,
        batch_size=payload.batch_size,
    )
    sent = sum(1 for m in messages if m.status == DeliveryStatus.SENT)
    return BulkSendResponse(
        total=len(payload.recipients),
        sent=sent,
        failed=len(payload.recipients) - sent,
        messages=[TrackedMessageResponse.model_validate(m) for m in messages],
    )


# =============================================================================
# Analytics
# =============================================================================


@router.get(
    "/analytics",
    response_model=DeliveryAnalyticsSummary,
    summary="Delivery summary for a time range",
)
async def get_analytics(
    pipeline: PipelineDep,
    range_preset: RangeQuery = "30d",
    category: NotificationCategory | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> DeliveryAnalyticsSummary:
    return await pipeline.analytics.analytics(
        _date_range(range_preset, start, end),
        category.value if category else None,
    )


@router.get(
    "/analytics/by-category",
    response_model=CategoryAnalytics,
    summary="Delivery summary per category",
)
async def get_analytics_by_category(
    pipeline: PipelineDep,
    range_preset: RangeQuery = "30d",
    start: datetime | None = None,
    end: datetime | None = None,
) -> CategoryAnalytics:
    return await pipeline.analytics.by_category(_date_range(range_preset, start, end))


@router.get(
    "/analytics/trends",
    response_model=DeliveryTrends,
    summary="Daily delivery trends",
)
async def get_trends(
    pipeline: PipelineDep,
    days: Annotated[int, Query(ge=1, le=365)] = 30,
) -> DeliveryTrends:
    return await pipeline.analytics.delivery_trends(days)


@router.get(
    "/analytics/performance",
    response_model=PerformanceMetrics,
    summary="Average time to deliver and to open",
)
async def get_performance(
    pipeline: PipelineDep,
    days: Annotated[int, Query(ge=1, le=365)] = 30,
) -> PerformanceMetrics:
    return await pipeline.analytics.performance(days)


@router.get(
    "/failed",
    response_model=FailedMessagesResponse,
    summary="List failed and dead-lettered messages",
)
async def list_failed(
    pipeline: PipelineDep,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> FailedMessagesResponse:
    page = await pipeline.analytics.failed_messages(limit=limit, offset=offset)
    return FailedMessagesResponse(
        items=[TrackedMessageResponse.model_validate(m) for m in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.get(
    "/messages/{message_id}",
    response_model=TrackedMessageResponse,
    summary="Get a tracked message",
)
async def get_message(message_id: UUID, pipeline: PipelineDep) -> TrackedMessageResponse:
    return TrackedMessageResponse.model_validate(await pipeline.tracker.get_message(message_id))


@router.get(
    "/messages/{message_id}/events",
    response_model=list[TrackingEventResponse],
    summary="List open and click events for a message",
)
async def get_message_events(message_id: UUID, pipeline: PipelineDep) -> list[TrackingEventResponse]:
    events = await pipeline.analytics.tracking_events(message_id)
    return [TrackingEventResponse.model_validate(e) for e in events]
