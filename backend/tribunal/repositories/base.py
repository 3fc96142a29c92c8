"""
Base repository class with common database operations.

This module provides the foundation for all repository classes,
implementing common patterns like locked lookups and inserts.
Repositories never commit: the caller owns the transaction (see
tribunal.db.transaction.atomic).
"""
from typing import Generic, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tribunal.db.base import Base

# Type variable for generic repository
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Base repository implementing common database operations.

    Usage:
        class ReportRepository(BaseRepository[Report]):
            def __init__(self, db: AsyncSession):
                super().__init__(Report, db)
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize the repository.

        Args:
            model: SQLAlchemy model class this repository manages
            db: Async database session
        """
        self.model = model
        self.db = db

    async def get_by_id(self, id: str, *, for_update: bool = False) -> ModelType | None:
        """
        Get a single record by its primary key.

        Args:
            id: Primary key value
            for_update: Take a row lock and refresh the identity-map copy

        Returns:
            Model instance or None if not found
        """
        query = select(self.model).where(self.model.id == id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def add(self, instance: ModelType) -> ModelType:
        """
        Stage a new record and flush it so constraints are checked now.

        Args:
            instance: Unsaved model instance

        Returns:
            The same instance, with database defaults populated
        """
        self.db.add(instance)
        await self.db.flush()
        return instance
