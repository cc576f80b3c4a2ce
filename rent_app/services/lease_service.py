import logging
from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.enums import (
    LeaseStatus,
    PeriodGenerationStatus,
    RentLedgerEvent,
)
from models.models import Lease
from models.utils import to_money
from policy.cadence import is_due_day_required
from policy.errors import InvalidLeaseError, RentEngineError
from policy.period_generator import LeaseTerms, validate_terms
from repos.lease_repo import LeaseRepo
from repos.payment_repo import PaymentRepo
from repos.property_repo import PropertyRepo
from repos.rent_ledger_repo import RentLedgerRepository
from repos.tenant_repo import TenantRepo
from schemas.schema import (
    LeaseCreate,
    LeaseCreatedOut,
    LeaseOut,
    LeaseTerminate,
    LeaseUpdate,
    LeaseUpdatedOut,
    RentLedgerOut,
)
from services.rent_period_service import RentPeriodService, regeneration_cutoff

logger = logging.getLogger(__name__)

GENERATION_FAILED_WARNING = (
    "Lease created but period generation failed. "
    "Periods can be generated manually from the lease."
)

# Changing any of these rebuilds the unpaid part of the schedule.
SCHEDULE_FIELDS = (
    "rent",
    "rent_cadence",
    "rent_due_day",
    "lease_start_date",
    "lease_end_date",
)
UPDATABLE_FIELDS = SCHEDULE_FIELDS + ("move_in_fee", "late_fee_amount", "status")


def _lease_snapshot(lease: Lease, fields=UPDATABLE_FIELDS) -> dict:
    return {name: getattr(lease, name) for name in fields}


class LeaseService:
    def __init__(self, db):
        self.repo: LeaseRepo = LeaseRepo(db)
        self.tenant_repo: TenantRepo = TenantRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.payment_repo: PaymentRepo = PaymentRepo(db)
        self.ledger: RentLedgerRepository = RentLedgerRepository(db)
        self.periods: RentPeriodService = RentPeriodService(db)

    async def _get_or_404(self, lease_id: UUID) -> Lease:
        lease = await self.repo.get_by_id(lease_id)
        if not lease:
            raise HTTPException(status_code=404, detail="Lease not found")
        return lease

    async def _assert_no_other_active(
        self, tenant_id: UUID, property_id: UUID, exclude_id: UUID | None = None
    ):
        existing = await self.repo.get_active(
            tenant_id, property_id, exclude_id=exclude_id
        )
        if existing:
            raise HTTPException(
                status_code=409,
                detail="Tenant already has an active lease for this property",
            )

    async def create_lease(self, payload: LeaseCreate) -> LeaseCreatedOut:
        tenant = await self.tenant_repo.get_by_id(payload.tenant_id)
        if not tenant:
            raise HTTPException(status_code=404, detail="Tenant not found")
        prop = await self.property_repo.get_by_id(payload.property_id)
        if not prop:
            raise HTTPException(status_code=404, detail="Property not found")

        if payload.status == LeaseStatus.ACTIVE:
            await self._assert_no_other_active(payload.tenant_id, payload.property_id)

        data = payload.model_dump()
        data["rent_cadence"] = payload.rent_cadence.value
        try:
            validate_terms(LeaseTerms.from_lease(data))
        except RentEngineError as e:
            raise HTTPException(status_code=400, detail=e.to_detail())

        lease = Lease(**data)
        try:
            await self.repo.create(lease)
            self.ledger.record(
                lease.id,
                RentLedgerEvent.LEASE_CREATED,
                new_value=_lease_snapshot(lease),
            )
            await self.repo.db_commit()
        except IntegrityError:
            await self.repo.db_rollback()
            raise HTTPException(
                status_code=409,
                detail="Tenant already has an active lease for this property",
            )

        lease_id = lease.id
        logger.info(
            "Lease %s created for tenant %s at property %s",
            lease.id,
            lease.tenant_id,
            lease.property_id,
        )

        try:
            outcome = await self.periods.apply_initial(lease)
            await self.repo.db_commit()
        except Exception as e:
            await self.repo.db_rollback()
            logger.warning(
                "Period generation failed for lease %s: %s", lease_id, e, exc_info=True
            )
            return await self._mark_generation_failed(lease_id, e)

        return LeaseCreatedOut(
            message="Lease created",
            lease=LeaseOut.model_validate(lease),
            periods_generated=outcome.created,
            data_warnings=outcome.warnings,
        )

    async def _mark_generation_failed(
        self, lease_id: UUID, error: Exception
    ) -> LeaseCreatedOut:
        lease = await self._get_or_404(lease_id)
        lease.period_generation_status = PeriodGenerationStatus.FAILED
        self.ledger.record(
            lease.id,
            RentLedgerEvent.PERIOD_GENERATION_FAILED,
            new_value={"error": str(error)},
        )
        await self.repo.db_commit()
        return LeaseCreatedOut(
            message="Lease created",
            lease=LeaseOut.model_validate(lease),
            periods_generated=0,
            warning=GENERATION_FAILED_WARNING,
        )

    async def get_lease(self, lease_id: UUID) -> LeaseOut:
        return LeaseOut.model_validate(await self._get_or_404(lease_id))

    async def list_leases(
        self,
        tenant_id: UUID | None = None,
        property_id: UUID | None = None,
        status: LeaseStatus | None = None,
    ) -> List[LeaseOut]:
        leases = await self.repo.get_all(
            tenant_id=tenant_id, property_id=property_id, status=status
        )
        return [LeaseOut.model_validate(lease) for lease in leases]

    async def get_ledger(self, lease_id: UUID) -> List[RentLedgerOut]:
        await self._get_or_404(lease_id)
        entries = await self.ledger.get_for_lease(lease_id)
        return [RentLedgerOut.model_validate(e) for e in entries]

    async def update_lease(
        self, lease_id: UUID, payload: LeaseUpdate
    ) -> LeaseUpdatedOut:
        changes = payload.model_dump(exclude_unset=True, exclude={"effective_date"})
        if "rent_cadence" in changes and changes["rent_cadence"] is not None:
            changes["rent_cadence"] = changes["rent_cadence"].value
        changes = {
            k: v
            for k, v in changes.items()
            if v is not None or k == "late_fee_amount"
        }

        if changes.get("status") == LeaseStatus.TERMINATED:
            raise HTTPException(
                status_code=400,
                detail="Use the terminate action to terminate a lease",
            )

        try:
            lease = await self.repo.lock(lease_id)
            if not lease:
                raise HTTPException(status_code=404, detail="Lease not found")
            if lease.status == LeaseStatus.TERMINATED:
                raise HTTPException(
                    status_code=400, detail="Terminated leases cannot be edited"
                )

            changed = {
                k: v for k, v in changes.items() if getattr(lease, k) != v
            }
            if not changed:
                return LeaseUpdatedOut(
                    message="No changes", lease=LeaseOut.model_validate(lease)
                )

            merged = {**_lease_snapshot(lease), **changed}
            if is_due_day_required(merged["rent_cadence"]):
                if merged["rent_due_day"] is None:
                    raise InvalidLeaseError(
                        "rent_due_day is required for monthly cadence",
                        code="invalid_due_day",
                    )
            elif merged["rent_due_day"] is not None:
                merged["rent_due_day"] = None
                if lease.rent_due_day is not None:
                    changed["rent_due_day"] = None
                else:
                    changed.pop("rent_due_day", None)
            validate_terms(LeaseTerms.from_lease(merged))

            if changed.get("status") == LeaseStatus.ACTIVE:
                await self._assert_no_other_active(
                    lease.tenant_id, lease.property_id, exclude_id=lease.id
                )

            old = _lease_snapshot(lease, changed.keys())
            for key, value in changed.items():
                setattr(lease, key, value)
            self.ledger.record(
                lease.id, RentLedgerEvent.LEASE_UPDATED, old_value=old, new_value=changed
            )

            regeneration = None
            if lease.status == LeaseStatus.ACTIVE and (
                set(changed) & set(SCHEDULE_FIELDS) or "status" in changed
            ):
                cutoff = regeneration_cutoff(payload.effective_date)
                outcome = await self.periods.apply_regeneration(lease, cutoff)
                regeneration = outcome.to_schema(lease.period_generation_status)

            await self.repo.db_commit()
        except RentEngineError as e:
            await self.repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except IntegrityError:
            await self.repo.db_rollback()
            raise HTTPException(
                status_code=409,
                detail="Tenant already has an active lease for this property",
            )
        except SQLAlchemyError:
            await self.repo.db_rollback()
            raise

        return LeaseUpdatedOut(
            message="Lease updated",
            lease=LeaseOut.model_validate(lease),
            regeneration=regeneration,
        )

    async def terminate_lease(
        self, lease_id: UUID, payload: Optional[LeaseTerminate] = None
    ) -> LeaseUpdatedOut:
        payload = payload or LeaseTerminate()
        try:
            lease = await self.repo.lock(lease_id)
            if not lease:
                raise HTTPException(status_code=404, detail="Lease not found")
            if lease.status == LeaseStatus.TERMINATED:
                raise HTTPException(
                    status_code=400, detail="Lease is already terminated"
                )

            termination_date = payload.termination_date or date.today()
            old = _lease_snapshot(lease, ("status", "lease_end_date"))

            lease.status = LeaseStatus.TERMINATED
            if termination_date < lease.lease_end_date:
                lease.lease_end_date = max(termination_date, lease.lease_start_date)

            # Periods due after the termination date go unless money landed on them.
            outcome = await self.periods.apply_regeneration(
                lease, termination_date + timedelta(days=1)
            )
            self.ledger.record(
                lease.id,
                RentLedgerEvent.LEASE_TERMINATED,
                old_value=old,
                new_value={
                    "status": lease.status,
                    "lease_end_date": lease.lease_end_date,
                    "termination_date": termination_date,
                    "periods_removed": outcome.replaced,
                    "notes": payload.notes,
                },
            )
            await self.repo.db_commit()
        except RentEngineError as e:
            await self.repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except SQLAlchemyError:
            await self.repo.db_rollback()
            raise

        logger.info("Lease %s terminated as of %s", lease.id, termination_date)
        return LeaseUpdatedOut(
            message="Lease terminated",
            lease=LeaseOut.model_validate(lease),
            regeneration=outcome.to_schema(lease.period_generation_status),
        )

    async def delete_lease(self, lease_id: UUID) -> dict:
        """Delete a lease and its schedule.

        Money applied to the lease's periods goes back to each payment's
        unapplied amount, so payments keep balancing after their allocation
        rows cascade away.
        """
        try:
            lease = await self.repo.get_with_children(lease_id)
            if not lease:
                raise HTTPException(status_code=404, detail="Lease not found")

            released = await self.payment_repo.applied_to_lease(lease_id)
            for payment in await self.payment_repo.lock_by_ids(released.keys()):
                amount = to_money(released[payment.id])
                payment.unapplied_amount = to_money(payment.unapplied_amount + amount)
                logger.info(
                    "Payment %s: %s returned to unapplied by deletion of lease %s",
                    payment.id,
                    amount,
                    lease_id,
                )

            await self.repo.delete(lease)
            await self.repo.db_commit()
        except SQLAlchemyError:
            await self.repo.db_rollback()
            raise

        logger.info("Lease %s deleted", lease_id)
        return {"message": "Lease deleted", "payments_released": len(released)}
