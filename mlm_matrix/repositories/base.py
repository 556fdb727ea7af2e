"""
Base repository.

Generic data access shared by the matrix repositories. Repositories never
commit: the service owning the unit of work decides when to commit or roll
back, and inserts run inside the caller's savepoint.
"""

from typing import Any, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one model.

    Matrix data is never hard-deleted: positions are deactivated and
    commissions change status, so there is no delete.

    Example:
        class InvestmentRepository(BaseRepository[Investment]):
            def __init__(self, session: AsyncSession):
                super().__init__(Investment, session)
    """

    def __init__(
        self, model: type[ModelType], session: AsyncSession
    ) -> None:
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> ModelType | None:
        """Entity by primary key (identity map first)."""
        return await self.session.get(self.model, id)

    async def get_by(self, **filters: Any) -> ModelType | None:
        """
        Single entity matching column filters.

        Args:
            **filters: Column equality filters on unique columns

        Returns:
            Matching entity or None
        """
        stmt = select(self.model).filter_by(**filters)
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def create(self, **data: Any) -> ModelType:
        """
        Insert an entity and load server defaults.

        Flushes immediately so unique index violations raise IntegrityError
        here, inside the caller's savepoint, not at commit time.

        Args:
            **data: Column values

        Returns:
            Persisted entity with its ID
        """
        entity = self.model(**data)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def update(self, id: int, **data: Any) -> ModelType | None:
        """
        Set column values on an entity and flush.

        Args:
            id: Entity ID
            **data: Column values

        Returns:
            Updated entity or None if not found
        """
        entity = await self.get_by_id(id)
        if entity is None:
            return None

        for key, value in data.items():
            setattr(entity, key, value)

        await self.session.flush()
        await self.session.refresh(entity)
        return entity
