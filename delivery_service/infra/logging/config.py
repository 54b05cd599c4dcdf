"""Logging setup.

Root logger gets a single QueueHandler; a QueueListener drains the queue
into the console and (optionally) rotating file handlers, so slow log I/O
never blocks the event loop while webhooks or retry passes are running.
Filters and the root level are applied through ``dictConfig``.
"""

from __future__ import annotations

import atexit
import logging
import logging.config
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from pathlib import Path
from queue import Queue
from typing import TYPE_CHECKING, Any

from delivery_service.infra.logging.formatters import JSONFormatter

if TYPE_CHECKING:
    from delivery_service.core.settings.logs import LoggingSettings

logger = logging.getLogger(__name__)

_listener: QueueListener | None = None
_LOGGING_INITIALIZED = False

TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def shutdown() -> None:
    """Stop the queue listener, flushing pending records."""
    global _listener

    if _listener is not None:
        _listener.stop()
        _listener = None


def setup_logging(
    log_settings: LoggingSettings | None = None,
    *,
    force: bool = False,
    service_name: str = "delivery-service",
) -> None:
    """Configure logging once per process.

    Args:
        log_settings: Settings to apply; loaded from the environment if omitted.
        force: Reconfigure even if logging was already set up.
        service_name: Static ``service`` field on JSON records.
    """
    global _LOGGING_INITIALIZED

    if _LOGGING_INITIALIZED and not force:
        return

    if log_settings is None:
        from delivery_service.core.settings import get_logging_settings

        log_settings = get_logging_settings()

    configure_logging(**log_settings.to_logging_kwargs(), service_name=service_name)
    _LOGGING_INITIALIZED = True


def configure_logging(
    log_level: str = "INFO",
    file_path: str | Path | None = None,
    json_logs: bool = True,
    console_enabled: bool = True,
    include_context: bool = True,
    file_max_bytes: int = 10 * 1024 * 1024,
    file_backup_count: int = 5,
    service_name: str = "delivery-service",
    **kwargs: Any,
) -> None:
    """Apply the logging configuration.

    Args:
        log_level: Root logger level.
        file_path: JSONL/text log file; None disables file output.
        json_logs: Emit JSON Lines instead of human-readable text.
        console_enabled: Write to stderr.
        include_context: Attach ContextInjectingFilter to the root logger.
        file_max_bytes: Rotation threshold for the file handler.
        file_backup_count: Rotated files to keep.
        service_name: Static ``service`` field on JSON records.
        **kwargs: Ignored; logged at DEBUG for visibility.
    """
    global _listener

    if kwargs:
        logger.debug("Unused logging kwargs supplied: %s", ", ".join(sorted(kwargs)))

    logging.captureWarnings(True)
    shutdown()

    root_filters = ["context"] if include_context else []
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "context": {
                    "()": "delivery_service.infra.logging.context.ContextInjectingFilter",
                },
            },
            "root": {
                "level": log_level.upper(),
                "handlers": [],
                "filters": root_filters,
            },
        }
    )

    handlers: list[logging.Handler] = []
    if console_enabled:
        handlers.append(logging.StreamHandler())
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=file_max_bytes,
                backupCount=file_backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        if json_logs:
            handler.setFormatter(JSONFormatter(static={"service": service_name}))
        else:
            handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATEFMT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, QueueHandler):
            root.removeHandler(existing)

    if handlers:
        log_queue: Queue[logging.LogRecord] = Queue()
        _listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
        _listener.start()
        atexit.register(shutdown)
        root.addHandler(QueueHandler(log_queue))
