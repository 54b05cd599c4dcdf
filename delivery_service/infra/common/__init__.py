"""Shared infrastructure types."""

from delivery_service.infra.common.result import (
    DispatchResult,
    classify_http_error,
)

__all__ = ["DispatchResult", "classify_http_error"]
