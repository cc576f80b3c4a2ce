import uuid
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from models.models import Payment, PaymentAllocation, Property, RentPeriod, Tenant
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError


class PaymentRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, payment_id: uuid.UUID) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.id == payment_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def lock(self, payment_id: uuid.UUID) -> Optional[Payment]:
        stmt = select(Payment).where(Payment.id == payment_id).with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_tenant(
        self,
        tenant_id: uuid.UUID,
        start: date | None = None,
        end: date | None = None,
    ) -> List[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.tenant_id == tenant_id)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
        )
        if start is not None:
            stmt = stmt.where(Payment.payment_date >= start)
        if end is not None:
            stmt = stmt.where(Payment.payment_date <= end)
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_allocations(self, payment_id: uuid.UUID) -> List[PaymentAllocation]:
        stmt = (
            select(PaymentAllocation)
            .join(RentPeriod, RentPeriod.id == PaymentAllocation.rent_period_id)
            .where(PaymentAllocation.payment_id == payment_id)
            .order_by(RentPeriod.period_due_date)
        )
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def get_allocation_lines(self, payment_id: uuid.UUID):
        """(allocation, period) pairs for a payment, oldest period first."""
        stmt = (
            select(PaymentAllocation, RentPeriod)
            .join(RentPeriod, RentPeriod.id == PaymentAllocation.rent_period_id)
            .where(PaymentAllocation.payment_id == payment_id)
            .order_by(RentPeriod.period_due_date)
        )
        result = await self.db.execute(stmt)
        return result.all()

    async def applied_to_lease(self, lease_id: uuid.UUID) -> Dict[uuid.UUID, Decimal]:
        """Total applied per payment across every period of a lease."""
        stmt = (
            select(
                PaymentAllocation.payment_id,
                func.sum(PaymentAllocation.amount_applied),
            )
            .join(RentPeriod, RentPeriod.id == PaymentAllocation.rent_period_id)
            .where(RentPeriod.lease_id == lease_id)
            .group_by(PaymentAllocation.payment_id)
        )
        result = await self.db.execute(stmt)
        return {payment_id: total for payment_id, total in result.all()}

    async def lock_by_ids(self, payment_ids: Iterable[uuid.UUID]) -> List[Payment]:
        ids = list(payment_ids)
        if not ids:
            return []
        stmt = select(Payment).where(Payment.id.in_(ids)).with_for_update()
        result = await self.db.execute(stmt)
        return result.scalars().all()

    async def create(self, payment: Payment) -> Payment:
        self.db.add(payment)
        await self.db.flush()
        return payment

    async def add_allocations(
        self, allocations: List[PaymentAllocation]
    ) -> List[PaymentAllocation]:
        self.db.add_all(allocations)
        await self.db.flush()
        return allocations

    async def delete_allocations(self, payment_id: uuid.UUID) -> int:
        stmt = (
            delete(PaymentAllocation)
            .where(PaymentAllocation.payment_id == payment_id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        return result.rowcount

    async def delete(self, payment: Payment) -> None:
        await self.db.delete(payment)
        await self.db.flush()

    async def collected(
        self,
        start: date,
        end: date,
        tenant_id: uuid.UUID | None = None,
        property_id: uuid.UUID | None = None,
    ):
        """Sum of payments in ``[start, end]`` grouped by tenant and property."""
        stmt = (
            select(
                Payment.tenant_id,
                Tenant.first_name,
                Tenant.last_name,
                Payment.property_id,
                Property.name.label("property_name"),
                func.count(Payment.id).label("payment_count"),
                func.sum(Payment.amount).label("total"),
            )
            .join(Tenant, Tenant.id == Payment.tenant_id)
            .outerjoin(Property, Property.id == Payment.property_id)
            .where(Payment.payment_date >= start, Payment.payment_date <= end)
            .group_by(
                Payment.tenant_id,
                Tenant.first_name,
                Tenant.last_name,
                Payment.property_id,
                Property.name,
            )
        )
        if tenant_id is not None:
            stmt = stmt.where(Payment.tenant_id == tenant_id)
        if property_id is not None:
            stmt = stmt.where(Payment.property_id == property_id)
        result = await self.db.execute(stmt)
        return result.all()

    async def db_commit(self):
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def db_rollback(self):
        await self.db.rollback()
