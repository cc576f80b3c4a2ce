import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from models.enums import LateFeeSource, PeriodStatus, RentLedgerEvent
from models.models import Lease, RentPeriod
from models.utils import to_money, utcnow
from policy.allocation_policy import period_status
from policy.errors import RentEngineError
from policy.late_fee_policy import assess, manual_override
from repos.lease_repo import LeaseRepo
from repos.rent_ledger_repo import RentLedgerRepository
from repos.rent_period_repo import OPEN_STATUSES, RentPeriodRepo
from repos.tenant_repo import TenantRepo
from schemas.schema import (
    LateFeeAssessmentOut,
    LateFeeOverrideIn,
    PeriodLateFeeOut,
    RentPeriodOut,
    ResyncOut,
    ResyncPeriodOut,
    ResyncSummaryOut,
)

logger = logging.getLogger(__name__)

OVERPAID = "overpaid"


def _resync_line(period: RentPeriod) -> ResyncPeriodOut:
    outstanding = to_money(period.rent_amount) - to_money(period.amount_paid)
    remaining = max(outstanding, Decimal("0.00"))
    if period.status in OPEN_STATUSES and not period.late_fee_waived:
        remaining += to_money(period.late_fee_applied)
    return ResyncPeriodOut(
        period_id=period.id,
        lease_id=period.lease_id,
        tenant_id=period.tenant_id,
        period_due_date=period.period_due_date,
        rent_amount=period.rent_amount,
        amount_paid=period.amount_paid,
        status=period.status,
        late_fee_applied=period.late_fee_applied,
        remaining_due=to_money(remaining),
        note=OVERPAID if outstanding < 0 else None,
    )


class LateFeeService:
    def __init__(self, db):
        self.lease_repo: LeaseRepo = LeaseRepo(db)
        self.tenant_repo: TenantRepo = TenantRepo(db)
        self.repo: RentPeriodRepo = RentPeriodRepo(db)
        self.ledger: RentLedgerRepository = RentLedgerRepository(db)

    async def _assess_lease_periods(
        self,
        lease: Lease,
        as_of: date,
        include_overrides: bool,
        result: LateFeeAssessmentOut,
        periods: Optional[List[RentPeriod]] = None,
    ) -> None:
        if periods is None:
            periods = await self.repo.lock_open_for_lease(lease.id)
        changes = []

        for period in periods:
            if period.late_fee_source == LateFeeSource.MANUAL and not include_overrides:
                result.skipped_overrides.append(period.id)
                continue

            decision = assess(period, as_of, late_fee_override=lease.late_fee_amount)
            source = (
                LateFeeSource.AUTOMATIC if decision.applied_fee > 0 else LateFeeSource.NONE
            )
            changed = (
                to_money(period.late_fee_applied) != decision.applied_fee
                or period.late_fee_waived != decision.waived
                or period.late_fee_source != source
            )
            if changed:
                changes.append(
                    {
                        "period_id": period.id,
                        "due": period.period_due_date,
                        "old": period.late_fee_applied,
                        "new": decision.applied_fee,
                    }
                )
                period.late_fee_applied = decision.applied_fee
                period.late_fee_waived = decision.waived
                period.late_fee_source = source
                period.late_fee_overridden_by = None
                period.late_fee_overridden_at = None
            period.late_fee_assessed_as_of = as_of

            result.assessed.append(
                PeriodLateFeeOut(
                    period_id=period.id,
                    lease_id=lease.id,
                    period_due_date=period.period_due_date,
                    days_late=decision.days_late,
                    late_periods=decision.late_periods,
                    late_fee_applied=decision.applied_fee,
                    late_fee_waived=decision.waived,
                    changed=changed,
                )
            )

        if changes:
            self.ledger.record(
                lease.id,
                RentLedgerEvent.LATE_FEES_ASSESSED,
                new_value={
                    "as_of": as_of,
                    "include_overrides": include_overrides,
                    "changes": changes,
                },
            )

    def _finish(self, result: LateFeeAssessmentOut) -> LateFeeAssessmentOut:
        result.total_late_fees = to_money(
            sum((a.late_fee_applied for a in result.assessed), Decimal("0"))
        )
        return result

    async def assess_lease(
        self,
        lease_id: UUID,
        as_of: Optional[date] = None,
        include_overrides: bool = False,
    ) -> LateFeeAssessmentOut:
        as_of = as_of or date.today()
        result = LateFeeAssessmentOut(as_of=as_of, include_overrides=include_overrides)
        try:
            lease = await self.lease_repo.get_by_id(lease_id)
            if not lease:
                raise HTTPException(status_code=404, detail="Lease not found")

            await self._assess_lease_periods(lease, as_of, include_overrides, result)
            await self.lease_repo.db_commit()
        except RentEngineError as e:
            await self.lease_repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except SQLAlchemyError:
            await self.lease_repo.db_rollback()
            raise

        logger.info(
            "Assessed %s periods on lease %s as of %s",
            len(result.assessed),
            lease_id,
            as_of,
        )
        return self._finish(result)

    async def assess_tenant(
        self,
        tenant_id: UUID,
        as_of: Optional[date] = None,
        include_overrides: bool = False,
    ) -> LateFeeAssessmentOut:
        as_of = as_of or date.today()
        result = LateFeeAssessmentOut(as_of=as_of, include_overrides=include_overrides)
        try:
            tenant = await self.tenant_repo.get_by_id(tenant_id)
            if not tenant:
                raise HTTPException(status_code=404, detail="Tenant not found")

            for lease in await self.lease_repo.get_all(tenant_id=tenant_id):
                await self._assess_lease_periods(
                    lease, as_of, include_overrides, result
                )
            await self.lease_repo.db_commit()
        except RentEngineError as e:
            await self.lease_repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except SQLAlchemyError:
            await self.lease_repo.db_rollback()
            raise

        return self._finish(result)

    async def override_period_fee(
        self, period_id: UUID, payload: LateFeeOverrideIn
    ) -> RentPeriodOut:
        try:
            period = await self.repo.lock(period_id)
            if not period:
                raise HTTPException(status_code=404, detail="Rent period not found")
            if period.status == PeriodStatus.PAID and payload.late_fee_applied > 0:
                raise HTTPException(
                    status_code=400,
                    detail="Cannot charge a late fee on a paid period",
                )

            decision = manual_override(payload.late_fee_applied)
            old = {
                "late_fee_applied": period.late_fee_applied,
                "late_fee_waived": period.late_fee_waived,
                "late_fee_source": period.late_fee_source,
            }

            period.late_fee_applied = decision.applied_fee
            period.late_fee_waived = decision.waived
            period.late_fee_source = LateFeeSource.MANUAL
            period.late_fee_overridden_by = payload.overridden_by
            period.late_fee_overridden_at = utcnow()
            if payload.notes is not None:
                period.notes = payload.notes

            self.ledger.record(
                period.lease_id,
                RentLedgerEvent.LATE_FEE_OVERRIDDEN,
                old_value=old,
                new_value={
                    "period_id": period.id,
                    "late_fee_applied": period.late_fee_applied,
                    "late_fee_waived": period.late_fee_waived,
                    "overridden_by": period.late_fee_overridden_by,
                },
            )
            await self.lease_repo.db_commit()
        except RentEngineError as e:
            await self.lease_repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except SQLAlchemyError:
            await self.lease_repo.db_rollback()
            raise

        return RentPeriodOut.model_validate(period)

    async def resync_all(
        self,
        as_of: Optional[date] = None,
        include_overrides: bool = False,
    ) -> ResyncOut:
        """Bring every stored period back in line with the rules as of ``as_of``.

        Period status is recomputed from the money recorded on it, late fees
        are reassessed on every open period, and each period is reported
        with what is still owed on it.
        """
        as_of = as_of or date.today()
        assessment = LateFeeAssessmentOut(
            as_of=as_of, include_overrides=include_overrides
        )
        summary = ResyncSummaryOut(as_of_date=as_of)
        details: List[ResyncPeriodOut] = []
        try:
            for lease in await self.lease_repo.get_all():
                periods = await self.repo.lock_for_lease(lease.id)
                if not periods:
                    continue

                for period in periods:
                    status = period_status(
                        to_money(period.amount_paid), to_money(period.rent_amount)
                    )
                    if period.status != status:
                        logger.warning(
                            "Period %s on lease %s marked %s but holds %s of %s, now %s",
                            period.id,
                            lease.id,
                            period.status.value,
                            period.amount_paid,
                            period.rent_amount,
                            status.value,
                        )
                        period.status = status
                        summary.status_corrections += 1

                await self._assess_lease_periods(
                    lease,
                    as_of,
                    include_overrides,
                    assessment,
                    periods=[p for p in periods if p.status in OPEN_STATUSES],
                )
                details.extend(_resync_line(period) for period in periods)

            await self.lease_repo.db_commit()
        except RentEngineError as e:
            await self.lease_repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except SQLAlchemyError:
            await self.lease_repo.db_rollback()
            raise

        self._finish(assessment)
        summary.total_periods = len(details)
        summary.overpaid_count = sum(1 for line in details if line.note == OVERPAID)
        summary.late_fees_changed = sum(1 for a in assessment.assessed if a.changed)
        summary.total_late_fees = assessment.total_late_fees
        summary.total_remaining_due = to_money(
            sum((line.remaining_due for line in details), Decimal("0"))
        )
        logger.info(
            "Resynced %s periods as of %s: %s status corrections, %s late fees changed",
            summary.total_periods,
            as_of,
            summary.status_corrections,
            summary.late_fees_changed,
        )
        return ResyncOut(summary=summary, details=details)
