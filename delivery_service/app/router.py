"""API router registration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from delivery_service.features.delivery.router import router as delivery_router
from delivery_service.features.delivery.router import webhook_router
from delivery_service.features.notifications.router import router as notifications_router

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


def setup_routers(app: FastAPI, api_prefix: str = "/api/v1") -> None:
    """Mount feature routers under ``api_prefix``."""
    app.include_router(notifications_router, prefix=api_prefix)
    app.include_router(webhook_router, prefix=api_prefix)
    app.include_router(delivery_router, prefix=api_prefix)
    logger.debug("Routers configured", extra={"api_prefix": api_prefix})


__all__ = ["setup_routers"]
