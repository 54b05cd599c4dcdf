"""Normalized outcome of a single provider call.

Email and SMS providers both return a DispatchResult so dispatchers,
tracked sends and retry passes handle them identically.

Usage:
    result = DispatchResult.success_result("re_123", provider="resend")
    result = DispatchResult.failure_result("resend", "Resend API timeout", "TIMEOUT")

    if result.success:
        record(result.provider_message_id)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class DispatchResult:
    """Result of a provider send attempt.

    Attributes:
        success: Whether the provider accepted the message
        provider_message_id: Provider-assigned ID (used to match webhooks)
        provider: Provider name (resend, twilio, console, ...)
        error: Error message if failed
        error_code: Error category for programmatic handling
        duration_ms: Time spent in the provider call
        metadata: Provider-specific details (HTTP status, request id, ...)
    """

    success: bool
    provider_message_id: str | None
    provider: str
    error: str | None = None
    error_code: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.success and not self.error:
            object.__setattr__(self, "error", "Unknown error")

    @classmethod
    def success_result(
        cls,
        provider_message_id: str,
        provider: str,
        duration_ms: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """Create a successful result."""
        return cls(
            success=True,
            provider_message_id=provider_message_id,
            provider=provider,
            duration_ms=duration_ms,
            metadata=metadata or {},
        )

    @classmethod
    def failure_result(
        cls,
        provider: str,
        error: str,
        error_code: str | None = None,
        duration_ms: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> DispatchResult:
        """Create a failed result."""
        return cls(
            success=False,
            provider_message_id=None,
            provider=provider,
            error=error,
            error_code=error_code,
            duration_ms=duration_ms,
            metadata=metadata or {},
        )

    def with_duration(self, duration_ms: int) -> DispatchResult:
        """Copy with ``duration_ms`` set (dataclass is frozen)."""
        return replace(self, duration_ms=duration_ms)


def classify_http_error(status_code: int) -> str:
    """Map an HTTP status code from a provider API to an error code."""
    if status_code == 401:
        return "AUTH_FAILED"
    if status_code == 403:
        return "FORBIDDEN"
    if status_code == 429:
        return "RATE_LIMITED"
    if status_code in (400, 422):
        return "BAD_REQUEST"
    if status_code >= 500:
        return "SERVER_ERROR"
    return "API_ERROR"


__all__ = ["DispatchResult", "classify_http_error"]
