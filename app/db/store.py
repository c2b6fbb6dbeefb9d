"""
Tenant-scoped entity store over an AsyncSession.

Every call takes tenant_id explicitly and filters on Model.tenant_id, so a query
can never read or write another tenant's rows. The store flushes but never
commits: the calling service owns the transaction.

    students = EntityStore(db, Student)
    active = await students.find(tenant_id, status="active", class_name="10")
    n = await students.count(tenant_id, Student.name.ilike("%ali%"))
"""

from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import Base

ModelT = TypeVar("ModelT", bound=Base)


class EntityStore(Generic[ModelT]):
    def __init__(self, db: AsyncSession, model: Type[ModelT]) -> None:
        self.db = db
        self.model = model

    def _where(self, stmt, tenant_id: UUID, criteria: Sequence[Any], equals: dict):
        stmt = stmt.where(self.model.tenant_id == tenant_id)
        for column, value in equals.items():
            stmt = stmt.where(getattr(self.model, column) == value)
        if criteria:
            stmt = stmt.where(*criteria)
        return stmt

    async def find(
        self,
        tenant_id: UUID,
        *criteria: Any,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        **equals: Any,
    ) -> List[ModelT]:
        stmt = self._where(select(self.model), tenant_id, criteria, equals)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_one(self, tenant_id: UUID, *criteria: Any, **equals: Any) -> Optional[ModelT]:
        stmt = self._where(select(self.model), tenant_id, criteria, equals).limit(1)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get(self, tenant_id: UUID, entity_id: UUID) -> Optional[ModelT]:
        return await self.find_one(tenant_id, self.model.id == entity_id)

    async def count(self, tenant_id: UUID, *criteria: Any, **equals: Any) -> int:
        stmt = self._where(
            select(func.count()).select_from(self.model), tenant_id, criteria, equals
        )
        result = await self.db.execute(stmt)
        return int(result.scalar() or 0)

    async def create(self, tenant_id: UUID, **data: Any) -> ModelT:
        entity = self.model(tenant_id=tenant_id, **data)
        self.db.add(entity)
        await self.db.flush()
        return entity

    async def update(self, tenant_id: UUID, entity_id: UUID, **data: Any) -> Optional[ModelT]:
        entity = await self.get(tenant_id, entity_id)
        if entity is None:
            return None
        for key, value in data.items():
            setattr(entity, key, value)
        await self.db.flush()
        return entity

    async def delete(self, tenant_id: UUID, entity_id: UUID) -> bool:
        entity = await self.get(tenant_id, entity_id)
        if entity is None:
            return False
        await self.db.delete(entity)
        await self.db.flush()
        return True
