import uuid
from typing import List, Optional

from models.models import Tenant
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError


class TenantRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, tenant_id: uuid.UUID) -> Optional[Tenant]:
        stmt = select(Tenant).where(Tenant.id == tenant_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_ids(self, tenant_ids) -> List[Tenant]:
        if not tenant_ids:
            return []
        stmt = select(Tenant).where(Tenant.id.in_(list(tenant_ids)))
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def tenant_exists(
        self,
        *,
        property_id: uuid.UUID | None,
        first_name: str,
        last_name: str,
        is_active: bool = True,
    ) -> bool:
        stmt = select(Tenant.id).where(
            Tenant.property_id == property_id,
            func.lower(Tenant.first_name) == first_name.lower(),
            func.lower(Tenant.last_name) == last_name.lower(),
            Tenant.is_active == is_active,
        )
        result = await self.db.execute(stmt)
        return result.first() is not None

    async def get_all(
        self, property_id: uuid.UUID | None = None, active_only: bool = False
    ) -> List[Tenant]:
        stmt = select(Tenant).order_by(Tenant.last_name, Tenant.first_name)
        if property_id is not None:
            stmt = stmt.where(Tenant.property_id == property_id)
        if active_only:
            stmt = stmt.where(Tenant.is_active.is_(True))
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create(self, tenant: Tenant) -> Tenant:
        try:
            self.db.add(tenant)
            await self.db.commit()
            await self.db.refresh(tenant)
            return tenant
        except SQLAlchemyError:
            await self.db.rollback()
            raise
