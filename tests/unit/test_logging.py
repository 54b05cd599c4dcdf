"""Tests for the log context, JSON formatter and lazy logger."""

from __future__ import annotations

import json
import logging
import sys

import pytest

from delivery_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_lazy_logger,
    get_log_context,
    lazy,
    remove_from_log_context,
    set_log_context,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("delivery_service.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ============================================================================
# Log context
# ============================================================================


def test_set_and_remove_context_fields():
    set_log_context(request_id="req-1", job="retry_failed_emails")
    set_log_context(user_id="u-1")

    assert get_log_context() == {"request_id": "req-1", "job": "retry_failed_emails", "user_id": "u-1"}

    remove_from_log_context("job", "missing")
    assert get_log_context() == {"request_id": "req-1", "user_id": "u-1"}

    clear_log_context()
    assert get_log_context() == {}


def test_get_log_context_returns_copy():
    set_log_context(request_id="req-1")
    snapshot = get_log_context()
    snapshot["request_id"] = "changed"

    assert get_log_context()["request_id"] == "req-1"


def test_filter_injects_context_without_overwriting_extra():
    """Test that explicit ``extra=`` fields win over the bound context."""
    set_log_context(request_id="req-1", provider_message_id="re_123")
    record = _record(request_id="explicit")

    assert ContextInjectingFilter().filter(record) is True
    assert record.request_id == "explicit"
    assert record.provider_message_id == "re_123"


# ============================================================================
# JSONFormatter
# ============================================================================


def test_json_formatter_renders_one_line_with_extras():
    formatter = JSONFormatter(static={"service": "delivery-service"})
    record = _record("Retry pass %s", processed=12)
    record.args = ("complete",)

    line = formatter.format(record)
    data = json.loads(line)

    assert "\n" not in line
    assert data["message"] == "Retry pass complete"
    assert data["level"] == "INFO"
    assert data["logger"] == "delivery_service.test"
    assert data["service"] == "delivery-service"
    assert data["processed"] == 12
    assert data["timestamp"].endswith("Z")
    assert "trace_id" not in data


def test_json_formatter_flattens_exception():
    formatter = JSONFormatter()
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

    data = json.loads(formatter.format(record))

    assert "ValueError: boom" in data["exception"]
    assert "\n" not in data["exception"]


# ============================================================================
# Lazy logging
# ============================================================================


def test_lazy_logger_skips_callables_when_disabled(caplog):
    calls = []

    def expensive() -> str:
        calls.append(1)
        return "state"

    logger = get_lazy_logger("delivery_service.lazy_test")
    with caplog.at_level(logging.INFO, logger="delivery_service.lazy_test"):
        logger.debug(expensive)
        logger.info("Claimed %s rows", lambda: 3)

    assert calls == []
    assert "Claimed 3 rows" in caplog.text


def test_lazy_string_defers_until_str():
    calls = []
    value = lazy(lambda: calls.append(1) or "done")

    assert calls == []
    assert str(value) == "done"
    assert calls == [1]
