"""Shared service base classes."""

from delivery_service.core.services.base import BaseService

__all__ = ["BaseService"]
