import uuid
from typing import List, Optional

from models.enums import LeaseStatus
from models.models import Lease
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload


class LeaseRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, lease_id: uuid.UUID) -> Optional[Lease]:
        stmt = select(Lease).where(Lease.id == lease_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock(self, lease_id: uuid.UUID) -> Optional[Lease]:
        stmt = select(Lease).where(Lease.id == lease_id).with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_with_children(self, lease_id: uuid.UUID) -> Optional[Lease]:
        stmt = (
            select(Lease)
            .options(selectinload(Lease.periods), selectinload(Lease.ledger_entries))
            .where(Lease.id == lease_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active(
        self,
        tenant_id: uuid.UUID,
        property_id: uuid.UUID,
        exclude_id: uuid.UUID | None = None,
    ) -> Optional[Lease]:
        stmt = select(Lease).where(
            Lease.tenant_id == tenant_id,
            Lease.property_id == property_id,
            Lease.status == LeaseStatus.ACTIVE,
        )
        if exclude_id is not None:
            stmt = stmt.where(Lease.id != exclude_id)
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def get_all(
        self,
        tenant_id: uuid.UUID | None = None,
        property_id: uuid.UUID | None = None,
        status: LeaseStatus | None = None,
    ) -> List[Lease]:
        stmt = select(Lease).order_by(Lease.lease_start_date, Lease.created_at)
        if tenant_id is not None:
            stmt = stmt.where(Lease.tenant_id == tenant_id)
        if property_id is not None:
            stmt = stmt.where(Lease.property_id == property_id)
        if status is not None:
            stmt = stmt.where(Lease.status == status)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_needing_periods(self) -> List[Lease]:
        """Active leases that have no generated schedule yet."""
        stmt = (
            select(Lease)
            .where(
                Lease.status == LeaseStatus.ACTIVE,
                ~Lease.periods.any(),
            )
            .order_by(Lease.created_at)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create(self, lease: Lease) -> Lease:
        self.db.add(lease)
        await self.db.flush()
        return lease

    async def delete(self, lease: Lease) -> None:
        await self.db.delete(lease)
        await self.db.flush()

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
