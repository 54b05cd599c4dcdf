"""Errors raised by repositories."""
from __future__ import annotations

from typing import Any


class NotFoundError(LookupError):
    """A row expected to exist is missing.

    Raised when a unit of work re-reads a row it wrote earlier (a notification
    between insert and channel fan-out) and finds it gone.
    """

    def __init__(self, model_name: str, key: Any) -> None:
        super().__init__(f"{model_name} {key!r} does not exist")
        self.model_name = model_name
        self.key = key


__all__ = ["NotFoundError"]
