# alumni_hub/services/base_service.py
"""Base service with common CRUD operations."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, inspect
from typing import Type, Any, Optional, TypeVar, Generic

# Define generic type
T = TypeVar('T')

class BaseService(Generic[T]):
    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db
        # Tables name their own primary keys (user_id, connection_id, ...)
        self.pk = inspect(model).primary_key[0]

    async def get(self, id: Any) -> Optional[T]:
        stmt = select(self.model).where(self.pk == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def count(self, *criteria) -> int:
        stmt = select(func.count()).select_from(self.model).where(*criteria)
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def hard_delete(self, obj: T):
        """Permanently delete record from database"""
        await self.db.delete(obj)
        await self.db.commit()
