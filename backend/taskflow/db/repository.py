"""Generic async repository over SQLAlchemy models.

Services talk to persistence through this interface rather than issuing
ad-hoc queries for plain CRUD, so the storage backend stays swappable.
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """Create/read/update/delete for a single model class."""

    def __init__(self, db: AsyncSession, model: type[ModelT]):
        self.db = db
        self.model = model

    def _filtered(self, query: Select, filters: dict[str, Any]) -> Select:
        for name, value in filters.items():
            column = getattr(self.model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.where(column.in_(list(value)))
            elif value is None:
                query = query.where(column.is_(None))
            else:
                query = query.where(column == value)
        return query

    async def get(self, id: UUID) -> ModelT | None:
        return await self.db.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelT | None:
        query = self._filtered(select(self.model), filters).limit(1)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        order_by: Sequence[Any] = (),
        limit: int | None = None,
        **filters: Any,
    ) -> list[ModelT]:
        query = self._filtered(select(self.model), filters)
        if order_by:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count(self, **filters: Any) -> int:
        query = self._filtered(select(func.count()).select_from(self.model), filters)
        result = await self.db.execute(query)
        return int(result.scalar_one())

    async def create(self, **values: Any) -> ModelT:
        instance = self.model(**values)
        self.db.add(instance)
        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    async def update(self, instance: ModelT, **values: Any) -> ModelT:
        """Apply ``values`` to ``instance``, including explicit Nones."""
        for name, value in values.items():
            setattr(instance, name, value)
        await self.db.flush()
        await self.db.refresh(instance)
        return instance

    async def delete(self, instance: ModelT) -> None:
        await self.db.delete(instance)
        await self.db.flush()

    async def delete_where(self, **filters: Any) -> int:
        query = delete(self.model)
        for name, value in filters.items():
            query = query.where(getattr(self.model, name) == value)
        result = await self.db.execute(query)
        return result.rowcount or 0
