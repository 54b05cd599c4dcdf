"""Custom SQLAlchemy column types.

Types included:
- UTCDateTime: timezone-aware datetimes normalized to UTC on every backend
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, TypeDecorator

if TYPE_CHECKING:
    from sqlalchemy.engine import Dialect


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware datetime stored and returned in UTC.

    PostgreSQL keeps the offset in ``timestamptz``; SQLite has no timezone
    support and returns naive values. This type converts aware values to
    UTC on write and attaches UTC to naive values on read, so comparisons
    against ``datetime.now(UTC)`` behave the same on both backends.

    Example:
        >>> class Message(Base):
        ...     sent_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    Raises:
        ValueError: On write, if given a naive datetime.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            msg = f"UTCDateTime requires an aware datetime, got naive {value!r}"
            raise ValueError(msg)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


__all__ = ["UTCDateTime"]
