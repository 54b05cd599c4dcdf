"""Shared API schemas."""

from delivery_service.core.schemas.problem_details import (
    FieldError,
    ProblemDetail,
    ValidationProblemDetail,
)

__all__ = ["FieldError", "ProblemDetail", "ValidationProblemDetail"]
