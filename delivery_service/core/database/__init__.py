"""Database core: declarative base, column types, repository, errors."""

from delivery_service.core.database.base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    UUIDv7PKMixin,
    UUIDv7TimestampedBase,
    generate_uuid7,
    utcnow,
)
from delivery_service.core.database.exceptions import NotFoundError
from delivery_service.core.database.repository import BaseRepository, SearchResult
from delivery_service.core.database.types import UTCDateTime

__all__ = [
    "NAMING_CONVENTION",
    "Base",
    "BaseRepository",
    "NotFoundError",
    "SearchResult",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDv7PKMixin",
    "UUIDv7TimestampedBase",
    "generate_uuid7",
    "utcnow",
]
