"""In-process APScheduler jobs for the delivery pipeline.

Two jobs run beside the API:

- ``retry_failed_emails``: a retry pass every ``retry_interval_seconds``
- ``purge_read_notifications``: daily retention cleanup at ``retention_cron_hour`` UTC

The scheduler is built per application from a ``DeliveryPipeline`` so tests
and the lifespan each own their instance.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from delivery_service.infra.logging import clear_log_context, set_log_context

if TYPE_CHECKING:
    from delivery_service.core.settings.delivery import DeliverySettings
    from delivery_service.features.pipeline import DeliveryPipeline

logger = logging.getLogger(__name__)

RETRY_JOB_ID = "retry_failed_emails"
RETENTION_JOB_ID = "purge_read_notifications"


async def retry_failed_emails(pipeline: DeliveryPipeline) -> int:
    """Run one retry pass.

    Scheduled: every ``retry_interval_seconds``.
    """
    set_log_context(job=RETRY_JOB_ID)
    try:
        processed = await pipeline.retry.run_retry_pass()
        logger.info("Retry job finished", extra={"processed": processed})
        return processed
    except Exception:
        logger.exception("Retry job failed")
        raise
    finally:
        clear_log_context()


async def purge_read_notifications(pipeline: DeliveryPipeline) -> int:
    """Delete read notifications past retention.

    Scheduled: daily.
    """
    set_log_context(job=RETENTION_JOB_ID)
    try:
        deleted = await pipeline.router.purge_expired()
        logger.info("Retention job finished", extra={"deleted": deleted})
        return deleted
    except Exception:
        logger.exception("Retention job failed")
        raise
    finally:
        clear_log_context()


def build_scheduler(pipeline: DeliveryPipeline, settings: DeliverySettings) -> AsyncIOScheduler:
    """Create a scheduler with the retry and retention jobs registered."""
    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60,
        },
    )

    scheduler.add_job(
        func=retry_failed_emails,
        trigger=IntervalTrigger(seconds=settings.retry_interval_seconds),
        args=[pipeline],
        id=RETRY_JOB_ID,
        name="Retry failed emails",
        replace_existing=True,
    )

    scheduler.add_job(
        func=purge_read_notifications,
        trigger=CronTrigger(hour=settings.retention_cron_hour, minute=0),
        args=[pipeline],
        id=RETENTION_JOB_ID,
        name="Purge read notifications",
        replace_existing=True,
    )

    logger.info(
        "Scheduled jobs registered",
        extra={
            "retry_interval_seconds": settings.retry_interval_seconds,
            "retention_cron_hour": settings.retention_cron_hour,
        },
    )
    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Start ``scheduler`` unless it is already running."""
    if scheduler.running:
        logger.warning("APScheduler is already running")
        return
    scheduler.start()
    logger.info("APScheduler started", extra={"jobs": len(scheduler.get_jobs())})


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Shut ``scheduler`` down, waiting for running jobs."""
    if not scheduler.running:
        logger.debug("APScheduler is not running")
        return
    scheduler.shutdown(wait=True)
    logger.info("APScheduler stopped")


def get_job_status(scheduler: AsyncIOScheduler) -> list[dict[str, Any]]:
    """Describe every registered job.

    Jobs added before ``start`` have no next run time yet.
    """
    jobs = []
    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs.append(
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            }
        )
    return jobs


__all__ = [
    "RETENTION_JOB_ID",
    "RETRY_JOB_ID",
    "build_scheduler",
    "get_job_status",
    "purge_read_notifications",
    "retry_failed_emails",
    "start_scheduler",
    "stop_scheduler",
]
