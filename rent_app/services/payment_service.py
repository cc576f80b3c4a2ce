import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from core.friendly_msg import CONFLICT_MESSAGE
from models.enums import AllocationMode, PaymentType, RentLedgerEvent
from models.models import Payment, PaymentAllocation, RentPeriod
from models.utils import to_money
from policy.allocation_policy import (
    AllocationLine,
    allocate_auto,
    allocate_manual,
    reverse_allocation,
)
from policy.errors import AllocationError, RentEngineError
from repos.payment_repo import PaymentRepo
from repos.property_repo import PropertyRepo
from repos.rent_ledger_repo import RentLedgerRepository
from repos.rent_period_repo import RentPeriodRepo
from repos.tenant_repo import TenantRepo
from schemas.schema import (
    AllocationLineOut,
    PaymentCreate,
    PaymentOut,
    PaymentUpdate,
    PaymentWithAllocationsOut,
    ReallocateIn,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _split_from(allocations) -> Dict[UUID, Decimal]:
    return {line.period_id: line.amount for line in allocations or []}


class PaymentService:
    def __init__(self, db):
        self.repo: PaymentRepo = PaymentRepo(db)
        self.period_repo: RentPeriodRepo = RentPeriodRepo(db)
        self.tenant_repo: TenantRepo = TenantRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.ledger: RentLedgerRepository = RentLedgerRepository(db)

    async def _run(self, work):
        """Run ``work`` in one transaction, mapping engine and race failures."""
        try:
            result = await work()
            await self.repo.db_commit()
            return result
        except RentEngineError as e:
            await self.repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except StaleDataError:
            await self.repo.db_rollback()
            logger.warning("Concurrent update on rent periods, payment not applied")
            raise HTTPException(status_code=409, detail=CONFLICT_MESSAGE)
        except SQLAlchemyError:
            await self.repo.db_rollback()
            raise

    def _record_lines(
        self,
        event: RentLedgerEvent,
        payment: Payment,
        periods: Dict[UUID, RentPeriod],
        lines: List[AllocationLine],
    ) -> None:
        by_lease = defaultdict(list)
        for line in lines:
            by_lease[periods[line.period_id].lease_id].append(
                {
                    "period_id": line.period_id,
                    "due": line.due_date,
                    "amount": line.amount_applied,
                    "status": line.status,
                }
            )
        for lease_id, entries in by_lease.items():
            self.ledger.record(
                lease_id,
                event,
                new_value={"payment_id": payment.id, "lines": entries},
            )

    async def _allocate(
        self,
        payment: Payment,
        mode: AllocationMode = AllocationMode.AUTO,
        split: Optional[Dict[UUID, Decimal]] = None,
    ) -> List[AllocationLine]:
        if payment.payment_type != PaymentType.RENT:
            if split:
                raise AllocationError(
                    "only rent payments can be allocated to periods",
                    code="not_rent_payment",
                )
            payment.unapplied_amount = ZERO
            return []

        candidates = await self.period_repo.lock_open_for_tenant(
            payment.tenant_id, payment.property_id
        )
        if mode == AllocationMode.MANUAL:
            result = allocate_manual(payment.amount, candidates, split or {})
        else:
            result = allocate_auto(payment.amount, candidates)

        periods = {p.id: p for p in candidates}
        rows = []
        for line in result.lines:
            period = periods[line.period_id]
            period.amount_paid = line.amount_paid
            period.status = line.status
            rows.append(
                PaymentAllocation(
                    payment_id=payment.id,
                    rent_period_id=period.id,
                    amount_applied=line.amount_applied,
                )
            )
        payment.unapplied_amount = result.unapplied
        await self.repo.add_allocations(rows)

        if result.lines:
            self._record_lines(
                RentLedgerEvent.PAYMENT_ALLOCATED, payment, periods, result.lines
            )
        if result.unapplied > 0:
            logger.info(
                "Payment %s left %s unapplied for tenant %s",
                payment.id,
                result.unapplied,
                payment.tenant_id,
            )
        return result.lines

    async def _reverse(self, payment: Payment) -> None:
        allocations = await self.repo.get_allocations(payment.id)
        if not allocations:
            return

        applied = {a.rent_period_id: a.amount_applied for a in allocations}
        periods = {
            p.id: p for p in await self.period_repo.lock_by_ids(applied.keys())
        }

        lines = []
        for period_id, amount in applied.items():
            period = periods.get(period_id)
            if period is None:
                continue
            line = reverse_allocation(period, amount)
            period.amount_paid = line.amount_paid
            period.status = line.status
            lines.append(line)

        await self.repo.delete_allocations(payment.id)
        await self.period_repo.flush()
        payment.unapplied_amount = ZERO
        self._record_lines(RentLedgerEvent.PAYMENT_REVERSED, payment, periods, lines)

    async def _lines_for(self, payment: Payment) -> List[AllocationLineOut]:
        rows = await self.repo.get_allocation_lines(payment.id)
        return [
            AllocationLineOut(
                period_id=period.id,
                period_due_date=period.period_due_date,
                amount_applied=allocation.amount_applied,
                amount_paid=period.amount_paid,
                status=period.status,
            )
            for allocation, period in rows
        ]

    async def _out(self, payment: Payment) -> PaymentWithAllocationsOut:
        lines = await self._lines_for(payment)
        return PaymentWithAllocationsOut(
            payment=PaymentOut.model_validate(payment),
            allocations=lines,
            total_applied=to_money(
                sum((line.amount_applied for line in lines), ZERO)
            ),
            unapplied_amount=to_money(payment.unapplied_amount),
        )

    async def _locked_payment(self, payment_id: UUID) -> Payment:
        payment = await self.repo.lock(payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment

    async def record_payment(
        self, payload: PaymentCreate
    ) -> PaymentWithAllocationsOut:
        tenant = await self.tenant_repo.get_by_id(payload.tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")
        if payload.property_id is not None:
            prop = await self.property_repo.get_by_id(payload.property_id)
            if not prop:
                raise HTTPException(status_code=404, detail="Property not found")

        payment = Payment(
            tenant_id=payload.tenant_id,
            property_id=payload.property_id,
            payment_date=payload.payment_date,
            amount=payload.amount,
            payment_type=payload.payment_type,
            notes=payload.notes,
            unapplied_amount=ZERO,
        )

        async def work():
            await self.repo.create(payment)
            await self._allocate(
                payment, payload.allocation_mode, _split_from(payload.allocations)
            )
            return payment

        await self._run(work)
        logger.info(
            "Recorded %s payment %s of %s for tenant %s",
            payment.payment_type.value,
            payment.id,
            payment.amount,
            payment.tenant_id,
        )
        return await self._out(payment)

    async def get_payment(self, payment_id: UUID) -> PaymentWithAllocationsOut:
        payment = await self.repo.get_by_id(payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return await self._out(payment)

    async def list_tenant_payments(
        self,
        tenant_id: UUID,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[PaymentOut]:
        tenant = await self.tenant_repo.get_by_id(tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")
        payments = await self.repo.get_for_tenant(tenant_id, start=start, end=end)
        return [PaymentOut.model_validate(p) for p in payments]

    async def update_payment(
        self, payment_id: UUID, payload: PaymentUpdate
    ) -> PaymentWithAllocationsOut:
        changes = payload.model_dump(
            exclude_unset=True, exclude={"allocation_mode", "allocations"}
        )
        changes = {k: v for k, v in changes.items() if v is not None or k == "notes"}

        async def work():
            payment = await self._locked_payment(payment_id)
            await self._reverse(payment)
            for key, value in changes.items():
                setattr(payment, key, value)
            await self._allocate(
                payment, payload.allocation_mode, _split_from(payload.allocations)
            )
            return payment

        payment = await self._run(work)
        logger.info("Payment %s updated and re-allocated", payment_id)
        return await self._out(payment)

    async def delete_payment(self, payment_id: UUID) -> dict:
        async def work():
            payment = await self._locked_payment(payment_id)
            await self._reverse(payment)
            await self.repo.delete(payment)

        await self._run(work)
        logger.info("Payment %s deleted and allocations reversed", payment_id)
        return {"message": "Payment deleted"}

    async def reallocate(
        self, payment_id: UUID, payload: Optional[ReallocateIn] = None
    ) -> PaymentWithAllocationsOut:
        payload = payload or ReallocateIn()

        async def work():
            payment = await self._locked_payment(payment_id)
            if await self.repo.get_allocations(payment.id):
                return payment
            await self._allocate(
                payment, payload.allocation_mode, _split_from(payload.allocations)
            )
            return payment

        payment = await self._run(work)
        return await self._out(payment)
