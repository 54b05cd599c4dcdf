"""Test doubles and helpers shared across the suite.

Usage:
    from tests.utils import FakeClock, FakeEmailProvider, metric_value

    provider = FakeEmailProvider()
    provider.fail_next(2)
    before = metric_value("delivery_dead_lettered_total")
"""

from __future__ import annotations

from collections import deque
from datetime import timedelta
from typing import TYPE_CHECKING

from prometheus_client import REGISTRY

from delivery_service.core.database import utcnow
from delivery_service.infra.common.result import DispatchResult

if TYPE_CHECKING:
    from datetime import datetime

    from delivery_service.infra.email.schemas import EmailMessage


class FakeClock:
    """Settable UTC clock. Starts at the real current time."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class SleepRecorder:
    """Async stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeEmailProvider:
    """Email provider that records messages and can be scripted to fail."""

    provider_name = "fake-email"

    def __init__(self) -> None:
        self.sent: list[EmailMessage] = []
        self.fail_all = False
        self._failures: deque[str] = deque()
        self._counter = 0

    def fail_next(self, times: int = 1, error: str = "provider unavailable") -> None:
        self._failures.extend([error] * times)

    async def send(self, message: EmailMessage) -> DispatchResult:
        self.sent.append(message)
        if self.fail_all:
            return DispatchResult.failure_result(self.provider_name, "provider unavailable", "SERVER_ERROR")
        if self._failures:
            return DispatchResult.failure_result(self.provider_name, self._failures.popleft(), "SERVER_ERROR")
        self._counter += 1
        return DispatchResult.success_result(f"fake-{self._counter}", self.provider_name, duration_ms=3)


class FakeSmsProvider:
    """SMS provider that records (to, body) pairs."""

    provider_name = "fake-sms"

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail_all = False

    async def send(self, to: str, body: str) -> DispatchResult:
        self.sent.append((to, body))
        if self.fail_all:
            return DispatchResult.failure_result(self.provider_name, "carrier rejected", "API_ERROR")
        return DispatchResult.success_result(f"SM{len(self.sent)}", self.provider_name, duration_ms=2)

    async def fetch_status(self, provider_message_id: str) -> str | None:
        return "delivered" if provider_message_id.startswith("SM") else None


def metric_value(name: str, labels: dict[str, str] | None = None) -> float:
    """Current value of a sample in the default registry (0.0 if never set)."""
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0
