"""Shared plumbing for the table repositories.

Each repository wraps one mapped table and an ``AsyncSession`` owned by
the caller. Writes only flush; committing belongs to the unit of work in
``ideaflow.services.transactions``.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ideaflow.db.base import Base

RowT = TypeVar("RowT", bound=Base)


class BaseRepository(Generic[RowT]):
    model: type[RowT]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def first(self, *criteria) -> RowT | None:
        """The single row matching ``criteria``, or None."""
        result = await self.session.execute(select(self.model).where(*criteria))
        return result.scalar_one_or_none()

    async def create(self, **values: Any) -> RowT:
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        return row

    async def update(self, row: RowT, **values: Any) -> RowT:
        for column, value in values.items():
            setattr(row, column, value)
        await self.session.flush()
        return row

    async def delete(self, row: RowT) -> None:
        await self.session.delete(row)
        await self.session.flush()
