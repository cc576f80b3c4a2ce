import uuid
from datetime import date
from typing import Iterable, List, Optional

from models.enums import PeriodStatus
from models.models import RentPeriod
from sqlalchemy import delete, select

OPEN_STATUSES = (PeriodStatus.UNPAID, PeriodStatus.PARTIAL)


class RentPeriodRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, period_id: uuid.UUID) -> Optional[RentPeriod]:
        stmt = select(RentPeriod).where(RentPeriod.id == period_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock(self, period_id: uuid.UUID) -> Optional[RentPeriod]:
        stmt = select(RentPeriod).where(RentPeriod.id == period_id).with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_by_ids(self, period_ids: Iterable[uuid.UUID]) -> List[RentPeriod]:
        period_ids = list(period_ids)
        if not period_ids:
            return []
        stmt = (
            select(RentPeriod)
            .where(RentPeriod.id.in_(period_ids))
            .order_by(RentPeriod.period_due_date, RentPeriod.id)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_for_lease(
        self, lease_id: uuid.UUID, status: PeriodStatus | None = None
    ) -> List[RentPeriod]:
        stmt = (
            select(RentPeriod)
            .where(RentPeriod.lease_id == lease_id)
            .order_by(RentPeriod.period_due_date)
        )
        if status is not None:
            stmt = stmt.where(RentPeriod.status == status)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def lock_for_lease(self, lease_id: uuid.UUID) -> List[RentPeriod]:
        stmt = (
            select(RentPeriod)
            .where(RentPeriod.lease_id == lease_id)
            .order_by(RentPeriod.period_due_date)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def lock_open_for_lease(self, lease_id: uuid.UUID) -> List[RentPeriod]:
        stmt = (
            select(RentPeriod)
            .where(
                RentPeriod.lease_id == lease_id,
                RentPeriod.status.in_(OPEN_STATUSES),
            )
            .order_by(RentPeriod.period_due_date)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def lock_open_for_tenant(
        self, tenant_id: uuid.UUID, property_id: uuid.UUID | None = None
    ) -> List[RentPeriod]:
        stmt = (
            select(RentPeriod)
            .where(
                RentPeriod.tenant_id == tenant_id,
                RentPeriod.status.in_(OPEN_STATUSES),
            )
            .order_by(RentPeriod.period_due_date, RentPeriod.id)
            .with_for_update()
        )
        if property_id is not None:
            stmt = stmt.where(RentPeriod.property_id == property_id)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_overdue(
        self, due_before: date, tenant_id: uuid.UUID | None = None
    ) -> List[RentPeriod]:
        """Open periods due strictly before ``due_before``, oldest first."""
        stmt = (
            select(RentPeriod)
            .where(
                RentPeriod.status.in_(OPEN_STATUSES),
                RentPeriod.period_due_date < due_before,
            )
            .order_by(RentPeriod.tenant_id, RentPeriod.period_due_date)
        )
        if tenant_id is not None:
            stmt = stmt.where(RentPeriod.tenant_id == tenant_id)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def add_all(self, periods: List[RentPeriod]) -> List[RentPeriod]:
        self.db.add_all(periods)
        await self.db.flush()
        return periods

    async def delete_by_ids(self, period_ids: Iterable[uuid.UUID]) -> int:
        period_ids = list(period_ids)
        if not period_ids:
            return 0
        stmt = (
            delete(RentPeriod)
            .where(RentPeriod.id.in_(period_ids))
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def flush(self):
        await self.db.flush()
