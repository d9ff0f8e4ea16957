from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar
import uuid

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.interfaces import LoaderOption

from hms.infrastructure.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Shared CRUD plumbing for the per-aggregate repositories.

    Repositories stage changes with flush() and never commit; the service
    that owns the use case decides the transaction boundary.
    """

    model: Type[ModelType]

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, entity: ModelType) -> ModelType:
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def create(self, data: Dict[str, Any]) -> ModelType:
        return await self.add(self.model(**data))

    async def get(self, entity_id: uuid.UUID, options: Sequence[LoaderOption] = ()) -> Optional[ModelType]:
        query = (
            select(self.model)
            .options(*options)
            .where(self.model.id == entity_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def update(self, entity: ModelType, data: Dict[str, Any]) -> ModelType:
        for field, value in data.items():
            setattr(entity, field, value)
        await self.db.flush()
        return entity

    async def delete(self, entity: ModelType) -> None:
        await self.db.delete(entity)
        await self.db.flush()

    async def fetch(self, query: Select, skip: int = 0, limit: Optional[int] = None) -> List[ModelType]:
        query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().unique().all())

    async def count_query(self, query: Select) -> int:
        count_stmt = select(func.count()).select_from(query.order_by(None).subquery())
        result = await self.db.execute(count_stmt)
        return result.scalar_one()
