"""Logging infrastructure.

Structured logging for the delivery service:
- JSONL output with OpenTelemetry trace correlation
- Automatic context injection (request_id, provider_message_id, job, ...)
- QueueHandler + QueueListener for non-blocking I/O
- Lazy evaluation for expensive DEBUG messages

Basic usage:
    import logging

    from delivery_service.infra.logging import get_lazy_logger, set_log_context

    logger = logging.getLogger(__name__)
    lazy_logger = get_lazy_logger(__name__)

    set_log_context(provider_message_id="re_123")
    logger.info("Webhook applied")  # includes provider_message_id
    lazy_logger.debug(lambda: f"Row state: {row_dump()}")
"""

from delivery_service.infra.logging.config import configure_logging, setup_logging, shutdown
from delivery_service.infra.logging.context import (
    ContextInjectingFilter,
    clear_log_context,
    get_log_context,
    remove_from_log_context,
    set_log_context,
)
from delivery_service.infra.logging.formatters import JSONFormatter
from delivery_service.infra.logging.lazy import (
    LazyLoggerAdapter,
    LazyString,
    get_lazy_logger,
    lazy,
)

__all__ = [
    "ContextInjectingFilter",
    "JSONFormatter",
    "LazyLoggerAdapter",
    "LazyString",
    "clear_log_context",
    "configure_logging",
    "get_lazy_logger",
    "get_log_context",
    "lazy",
    "remove_from_log_context",
    "set_log_context",
    "setup_logging",
    "shutdown",
]
