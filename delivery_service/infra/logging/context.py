"""Contextvar-backed log context.

Request handlers, webhook ingestion and scheduled jobs bind identifiers
(request_id, user_id, provider_message_id, job) once; every record emitted
while that context is active carries them, including records from tasks
spawned with ``asyncio.gather`` since they copy the current context.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})


def set_log_context(**kwargs: Any) -> None:
    """Add fields to the log context of the current task.

    Example:
        ```python
        set_log_context(job="retry_failed_emails")
        logger.info("Retry pass started")  # record has job=...
        ```
    """
    current = _log_context.get().copy()
    current.update(kwargs)
    _log_context.set(current)


def get_log_context() -> dict[str, Any]:
    """Return a copy of the current log context."""
    return _log_context.get().copy()


def clear_log_context() -> None:
    """Drop every field from the current log context."""
    _log_context.set({})


def remove_from_log_context(*keys: str) -> None:
    """Remove the named fields from the current log context."""
    current = _log_context.get().copy()
    for key in keys:
        current.pop(key, None)
    _log_context.set(current)


class ContextInjectingFilter(logging.Filter):
    """Copy log context fields onto each LogRecord.

    Installed on the root logger by ``configure_logging`` so the JSON
    formatter sees the fields as record attributes. Existing attributes
    (including ones passed via ``extra=``) are never overwritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True
