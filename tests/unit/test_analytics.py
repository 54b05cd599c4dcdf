"""Unit tests for analytics rate math and range presets."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from pydantic import ValidationError
import pytest

from delivery_service.core.exceptions import ValidationException
from delivery_service.features.delivery.analytics import resolve_range, safe_rate, summarize
from delivery_service.features.delivery.schemas import DateRange

NOW = datetime(2026, 3, 1, tzinfo=UTC)
RANGE = DateRange(start=NOW - timedelta(days=30), end=NOW)


class TestSafeRate:
    """Tests for clamped division."""

    @pytest.mark.parametrize(
        ("numerator", "denominator", "expected"),
        [(0, 0, 0.0), (5, 0, 0.0), (3, 4, 0.75), (4, 4, 1.0), (5, 4, 1.0), (-1, 4, 0.0)],
    )
    def test_values(self, numerator: int, denominator: int, expected: float) -> None:
        """Test rates stay in [0, 1] and are 0 for a zero denominator."""
        assert safe_rate(numerator, denominator) == expected


class TestSummarize:
    """Tests for cumulative stage counting."""

    def test_cumulative_counts_and_rates(self) -> None:
        """Test that later statuses count toward earlier stages."""
        summary = summarize(
            {
                "PENDING": 1,
                "SENT": 2,
                "DELIVERED": 3,
                "OPENED": 2,
                "CLICKED": 1,
                "BOUNCED": 1,
                "FAILED": 1,
            },
            RANGE,
        )

        assert summary.total == 11
        assert summary.sent == 9
        assert summary.delivered == 6
        assert summary.opened == 3
        assert summary.clicked == 1
        assert summary.bounced == 1
        assert summary.failed == 1
        assert summary.pending == 1
        assert summary.delivery_rate == pytest.approx(6 / 9)
        assert summary.open_rate == pytest.approx(0.5)
        assert summary.click_rate == pytest.approx(1 / 6)
        assert summary.bounce_rate == pytest.approx(1 / 9)

    def test_empty_is_all_zero(self) -> None:
        """Test that no messages means zero counts and zero rates."""
        summary = summarize({}, RANGE, "PAYMENT_DUE")
        assert summary.total == 0
        assert summary.category == "PAYMENT_DUE"
        assert (summary.delivery_rate, summary.open_rate, summary.click_rate, summary.bounce_rate) == (
            0.0,
            0.0,
            0.0,
            0.0,
        )

    def test_only_failures(self) -> None:
        """Test that failed and dead-lettered messages do not count as sent."""
        summary = summarize({"FAILED": 2, "DEAD_LETTERED": 1}, RANGE)
        assert summary.sent == 0
        assert summary.dead_lettered == 1
        assert summary.delivery_rate == 0.0


class TestResolveRange:
    """Tests for preset ranges."""

    @pytest.mark.parametrize(("preset", "days"), [("7d", 7), ("30d", 30), ("90d", 90), ("1y", 365)])
    def test_presets(self, preset: str, days: int) -> None:
        """Test that each preset ends now and spans its length."""
        resolved = resolve_range(preset, NOW)
        assert resolved.end == NOW
        assert resolved.start == NOW - timedelta(days=days)

    def test_explicit_range_passes_through(self) -> None:
        """Test that a DateRange is returned unchanged."""
        assert resolve_range(RANGE, NOW) is RANGE

    def test_unknown_preset(self) -> None:
        """Test that an unknown preset is a validation error."""
        with pytest.raises(ValidationException) as exc_info:
            resolve_range("2w", NOW)
        assert exc_info.value.status_code == 422

    def test_reversed_range_rejected(self) -> None:
        """Test that DateRange rejects end before start."""
        with pytest.raises(ValidationError):
            DateRange(start=NOW, end=NOW - timedelta(days=1))
