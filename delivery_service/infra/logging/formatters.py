"""JSON Lines formatter with trace correlation."""
from __future__ import annotations

from datetime import UTC, datetime
import json
import logging
from typing import Any

from opentelemetry import trace

# Attributes every LogRecord carries; anything else on a record is an extra
# field (bound context, ``extra=`` kwargs) and is copied to the output.
_STANDARD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "taskName"}


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object.

    Keys, in order: ``fmt_keys`` (level, logger, message by default),
    ``timestamp`` in UTC with millisecond precision and a ``Z`` suffix,
    ``trace_id``/``span_id`` when an OpenTelemetry span is recording,
    ``exception`` for ``exc_info``, the ``static`` fields, then record extras.

    Example output:
        ```json
        {"level": "WARNING", "logger": "WebhookIngestor", "message": "Webhook for unknown message", "timestamp": "2026-01-05T09:30:00.412Z", "service": "delivery-service", "provider_message_id": "re_123"}
        ```
    """

    def __init__(
        self,
        fmt_keys: dict[str, str] | None = None,
        static: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.fmt_keys = fmt_keys or {"level": "levelname", "logger": "name", "message": "message"}
        self.static = static or {}

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()
        data: dict[str, Any] = {key: getattr(record, attr, None) for key, attr in self.fmt_keys.items()}
        data["timestamp"] = (
            datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        )

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            data["trace_id"] = format(span_context.trace_id, "032x")
            data["span_id"] = format(span_context.span_id, "016x")

        # One record per line, tracebacks included.
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info).replace("\n", "\\n")
        if record.stack_info:
            data["stack_trace"] = record.stack_info.replace("\n", "\\n")

        data.update(self.static)
        data.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key not in data
        )
        return json.dumps(data, ensure_ascii=False, default=str)


__all__ = ["JSONFormatter"]
