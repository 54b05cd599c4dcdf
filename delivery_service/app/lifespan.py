"""Application lifespan management.

Startup order:
1. Logging
2. Database engine and session factory (tables created when DB_CREATE_TABLES is set)
3. Shared HTTP client and the email/SMS providers
4. Delivery pipeline, stored on ``app.state.pipeline``
5. APScheduler jobs (when enabled)

Shutdown runs in reverse.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

import httpx

from delivery_service.core.settings import (
    get_app_settings,
    get_db_settings,
    get_delivery_settings,
    get_email_settings,
    get_logging_settings,
    get_sms_settings,
)
from delivery_service.features.pipeline import build_pipeline
from delivery_service.infra.database import build_engine, build_session_factory, close_database, init_database
from delivery_service.infra.email import build_email_provider
from delivery_service.infra.logging import setup_logging
from delivery_service.infra.logging import shutdown as shutdown_logging
from delivery_service.infra.sms import build_sms_provider
from delivery_service.tasks.scheduler import build_scheduler, get_job_status, start_scheduler, stop_scheduler

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start and stop every service the API depends on."""
    app_settings = get_app_settings()
    db_settings = get_db_settings()
    delivery_settings = get_delivery_settings()

    setup_logging(get_logging_settings(), force=True, service_name=app_settings.service_name)
    logger.info(
        "Application starting",
        extra={
            "service": app_settings.service_name,
            "version": app_settings.version,
            "environment": app_settings.environment,
        },
    )

    engine = build_engine(db_settings)
    await init_database(engine, create_tables=db_settings.create_tables)
    session_factory = build_session_factory(engine)

    http_client = httpx.AsyncClient()
    pipeline = build_pipeline(
        session_factory,
        email_provider=build_email_provider(get_email_settings(), http_client),
        sms_provider=build_sms_provider(get_sms_settings(), http_client),
        delivery_settings=delivery_settings,
        sms_settings=get_sms_settings(),
    )
    app.state.pipeline = pipeline

    scheduler = None
    if delivery_settings.scheduler_enabled:
        scheduler = build_scheduler(pipeline, delivery_settings)
        start_scheduler(scheduler)
        logger.debug("Scheduled jobs", extra={"jobs": get_job_status(scheduler)})
    else:
        logger.info("Scheduler disabled; retries run only via POST /delivery/retry")

    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Application shutting down")
        if scheduler is not None:
            stop_scheduler(scheduler)
        await http_client.aclose()
        await close_database(engine)
        logger.info("Application shutdown complete")
        shutdown_logging()


__all__ = ["lifespan"]
