"""Generic repository shared by the notification and delivery tables.

Sessions are always passed in by the caller, so a repository never decides
where a transaction starts or ends. Feature repositories subclass
``BaseRepository`` and add the queries their pipeline stage needs.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import Select, func, select

from delivery_service.core.database.exceptions import NotFoundError
from delivery_service.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class SearchResult(Generic[T]):
    """One page of rows plus the unpaged total."""

    items: Sequence[T]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.total > self.offset + self.limit


class BaseRepository(Generic[T]):
    """Primary-key lookups, paging, insert and delete for one model."""

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        self.model = model
        name = f"repository.{model.__name__}"
        self._logger = logging.getLogger(name)
        self._lazy = get_lazy_logger(name)

    async def get(self, session: AsyncSession, key: Any) -> T | None:
        """Load a row by primary key, or None."""
        row = await session.get(self.model, key)
        self._lazy.debug(lambda: f"get {self.model.__name__}({key!r}) hit={row is not None}")
        return row

    async def get_or_raise(self, session: AsyncSession, key: Any) -> T:
        """Load a row by primary key.

        Raises:
            NotFoundError: No row has that key.
        """
        row = await self.get(session, key)
        if row is None:
            self._logger.warning("Row missing", extra={"entity": self.model.__name__, "key": str(key)})
            raise NotFoundError(self.model.__name__, key)
        return row

    async def search(
        self,
        session: AsyncSession,
        statement: Select[tuple[T]],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[T]:
        """Page through ``statement``, which already carries filters and ordering.

        The total is counted over the unordered statement so the database can
        skip the sort.
        """
        count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
        total = (await session.execute(count_stmt)).scalar_one()
        items = (await session.execute(statement.limit(limit).offset(offset))).scalars().all()

        self._lazy.debug(
            lambda: f"search {self.model.__name__} limit={limit} offset={offset}: {len(items)} of {total}"
        )
        return SearchResult(items=items, total=total, limit=limit, offset=offset)

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Insert ``instance`` and refresh it so server defaults are loaded."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)
        self._lazy.debug(lambda: f"create {self.model.__name__}({getattr(instance, 'id', None)})")
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)
        await session.flush()
        self._logger.info(
            "Row deleted",
            extra={"entity": self.model.__name__, "key": str(getattr(instance, "id", None))},
        )


__all__ = ["BaseRepository", "SearchResult"]
