"""Unit tests for retry backoff and failure bookkeeping."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from delivery_service.core.settings import DeliverySettings
from delivery_service.features.delivery.models import DeliveryStatus
from delivery_service.features.delivery.tracking import compute_backoff, failure_values

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def settings() -> DeliverySettings:
    return DeliverySettings(backoff_base_minutes=1.0, max_backoff_minutes=60.0, max_retries=3)


class TestComputeBackoff:
    """Tests for exponential backoff with a ceiling."""

    @pytest.mark.parametrize(
        ("retry_count", "minutes"),
        [(0, 1), (1, 2), (2, 4), (3, 8), (5, 32)],
    )
    def test_doubles(self, settings: DeliverySettings, retry_count: int, minutes: int) -> None:
        """Test base * 2^retry_count below the ceiling."""
        assert compute_backoff(retry_count, settings) == timedelta(minutes=minutes)

    @pytest.mark.parametrize("retry_count", [6, 7, 20])
    def test_clamped(self, settings: DeliverySettings, retry_count: int) -> None:
        """Test that backoff never exceeds max_backoff_minutes."""
        assert compute_backoff(retry_count, settings) == timedelta(minutes=60)

    def test_custom_base(self) -> None:
        """Test a non-default base and ceiling."""
        settings = DeliverySettings(backoff_base_minutes=5.0, max_backoff_minutes=30.0)
        assert compute_backoff(1, settings) == timedelta(minutes=10)
        assert compute_backoff(3, settings) == timedelta(minutes=30)


class TestFailureValues:
    """Tests for FAILED vs DEAD_LETTERED column values."""

    def test_attempts_left_schedules_retry(self, settings: DeliverySettings) -> None:
        """Test that a failure with attempts left stays FAILED with a retry time."""
        values = failure_values(1, 3, "boom", NOW, settings)
        assert values == {
            "status": DeliveryStatus.FAILED.value,
            "retry_count": 1,
            "error_message": "boom",
            "next_retry_at": NOW + timedelta(minutes=2),
        }

    def test_bound_reached_dead_letters(self, settings: DeliverySettings) -> None:
        """Test that reaching max_retries dead-letters without a retry time."""
        values = failure_values(3, 3, "boom", NOW, settings)
        assert values["status"] == DeliveryStatus.DEAD_LETTERED.value
        assert values["retry_count"] == 3
        assert values["next_retry_at"] is None

    def test_retry_count_never_exceeds_bound(self, settings: DeliverySettings) -> None:
        """Test that retry_count is clamped to max_retries."""
        assert failure_values(7, 3, None, NOW, settings)["retry_count"] == 3

    def test_non_retryable_dead_letters_immediately(self, settings: DeliverySettings) -> None:
        """Test that a non-retryable failure skips the schedule and keeps its attempt count."""
        values = failure_values(1, 3, "Invalid email message", NOW, settings, retryable=False)

        assert values["status"] == DeliveryStatus.DEAD_LETTERED.value
        assert values["retry_count"] == 1
        assert values["next_retry_at"] is None
