"""
Shared read/insert helpers for the repositories.
"""
from collections.abc import Iterable
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Data access for one model keyed by a UUID `id`.

    Subclasses set `model`. Nothing here commits: callers own the
    transaction, repositories only flush.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        return await self.session.get(self.model, id)

    async def get_many(self, ids: Iterable[UUID]) -> dict[UUID, ModelType]:
        """Batch lookup keyed by id; unknown ids are simply absent."""
        wanted = set(ids)
        if not wanted:
            return {}
        result = await self.session.execute(select(self.model).where(self.model.id.in_(wanted)))
        return {row.id: row for row in result.scalars()}

    async def create(self, values: dict[str, Any]) -> ModelType:
        """Insert a row and return it with server-side defaults loaded."""
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return row
