"""Notifications API router."""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from delivery_service.core.dependencies import PipelineDep
from delivery_service.features.notifications.schemas import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from delivery_service.infra.logging import get_lazy_logger

router = APIRouter(prefix="/notifications", tags=["notifications"])

logger = logging.getLogger(__name__)
lazy_logger = get_lazy_logger(__name__)

UserIdQuery = Annotated[str, Query(min_length=1, max_length=64, description="Recipient user id")]


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Emit a notification",
    description="Persist a notification and deliver it over the recipient's enabled channels.",
)
async def create_notification(payload: NotificationCreate, pipeline: PipelineDep) -> NotificationResponse:
    notification = await pipeline.router.create(
        user_id=payload.user_id,
        category=payload.category,
        title=payload.title,
        message=payload.message,
        payload=payload.payload,
    )
    return NotificationResponse.model_validate(notification)


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List a user's notifications",
)
async def list_notifications(
    pipeline: PipelineDep,
    user_id: UserIdQuery,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    unread_only: bool = False,
) -> NotificationListResponse:
    page = await pipeline.router.list_for_user(user_id, limit=limit, offset=offset, unread_only=unread_only)
    unread = await pipeline.router.unread_count(user_id)
    lazy_logger.debug(lambda: f"list_notifications: {user_id} -> {len(page.items)}/{page.total}")
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
        unread_count=unread,
    )


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Count unread notifications",
)
async def unread_count(pipeline: PipelineDep, user_id: UserIdQuery) -> UnreadCountResponse:
    return UnreadCountResponse(user_id=user_id, unread_count=await pipeline.router.unread_count(user_id))


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications read",
)
async def mark_all_read(pipeline: PipelineDep, user_id: UserIdQuery) -> MarkAllReadResponse:
    updated = await pipeline.router.mark_all_as_read(user_id)
    return MarkAllReadResponse(user_id=user_id, updated=updated)


@router.post(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark a notification read",
)
async def mark_read(notification_id: UUID, pipeline: PipelineDep, user_id: UserIdQuery) -> NotificationResponse:
    notification = await pipeline.router.mark_as_read(notification_id, user_id)
    return NotificationResponse.model_validate(notification)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a notification",
)
async def delete_notification(notification_id: UUID, pipeline: PipelineDep, user_id: UserIdQuery) -> None:
    await pipeline.router.delete(notification_id, user_id)
    logger.info(
        "Notification deleted",
        extra={"notification_id": str(notification_id), "user_id": user_id},
    )
