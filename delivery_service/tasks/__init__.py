"""Scheduled background jobs."""

from delivery_service.tasks.scheduler import build_scheduler, start_scheduler, stop_scheduler

__all__ = ["build_scheduler", "start_scheduler", "stop_scheduler"]
