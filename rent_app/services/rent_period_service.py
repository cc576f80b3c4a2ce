import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

from models.enums import LeaseStatus, PeriodGenerationStatus, RentLedgerEvent
from models.models import Lease, RentPeriod
from policy.errors import RentEngineError
from policy.period_generator import (
    LeaseTerms,
    PeriodDraft,
    generate_periods,
    plan_regeneration,
)
from repos.lease_repo import LeaseRepo
from repos.rent_ledger_repo import RentLedgerRepository
from repos.rent_period_repo import RentPeriodRepo
from schemas.schema import GenerationOut, RentPeriodOut

logger = logging.getLogger(__name__)


@dataclass
class GenerationOutcome:
    lease_id: UUID
    created: int = 0
    replaced: int = 0
    kept: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_schema(self, status: PeriodGenerationStatus) -> GenerationOut:
        return GenerationOut(
            lease_id=self.lease_id,
            period_generation_status=status,
            periods_created=self.created,
            periods_replaced=self.replaced,
            periods_kept=self.kept,
            warnings=self.warnings,
        )


def regeneration_cutoff(requested: Optional[date] = None) -> date:
    """Earliest due date a schedule edit may rewrite: never before today."""
    today = date.today()
    if requested is None or requested < today:
        return today
    return requested


def _to_row(lease: Lease, draft: PeriodDraft) -> RentPeriod:
    return RentPeriod(
        lease_id=lease.id,
        tenant_id=lease.tenant_id,
        property_id=lease.property_id,
        period_due_date=draft.due_date,
        rent_amount=draft.rent_amount,
        rent_cadence=draft.rent_cadence,
        amount_paid=draft.amount_paid,
        status=draft.status,
    )


class RentPeriodService:
    """Writes generated schedules for a lease.

    Nothing here commits on its own except the public ``generate_for_lease``
    and ``regenerate_future`` entry points; the ``apply_*`` helpers run inside
    whatever transaction the caller has open.
    """

    def __init__(self, db):
        self.lease_repo: LeaseRepo = LeaseRepo(db)
        self.repo: RentPeriodRepo = RentPeriodRepo(db)
        self.ledger: RentLedgerRepository = RentLedgerRepository(db)

    async def _locked_lease(self, lease_id: UUID) -> Lease:
        lease = await self.lease_repo.lock(lease_id)
        if not lease:
            raise HTTPException(status_code=404, detail="Lease not found")
        return lease

    async def apply_initial(self, lease: Lease) -> GenerationOutcome:
        terms = LeaseTerms.from_lease(lease)
        outcome = GenerationOutcome(lease_id=lease.id, warnings=list(terms.data_warnings))

        drafts = generate_periods(terms)
        await self.repo.add_all([_to_row(lease, d) for d in drafts])
        outcome.created = len(drafts)

        lease.period_generation_status = PeriodGenerationStatus.GENERATED
        self.ledger.record(
            lease.id,
            RentLedgerEvent.PERIODS_GENERATED,
            new_value={
                "count": outcome.created,
                "first_due": drafts[0].due_date if drafts else None,
                "last_due": drafts[-1].due_date if drafts else None,
                "warnings": outcome.warnings,
            },
        )
        logger.info("Generated %s periods for lease %s", outcome.created, lease.id)
        return outcome

    async def apply_regeneration(
        self, lease: Lease, cutoff: date, existing: Optional[List[RentPeriod]] = None
    ) -> GenerationOutcome:
        if existing is None:
            existing = await self.repo.lock_for_lease(lease.id)

        terms = LeaseTerms.from_lease(lease)
        plan = plan_regeneration(existing, terms, cutoff)
        outcome = GenerationOutcome(
            lease_id=lease.id,
            kept=len(plan.keep),
            warnings=list(terms.data_warnings),
        )

        if plan.changed:
            await self.repo.delete_by_ids([p.id for p in plan.replace])
            await self.repo.add_all([_to_row(lease, d) for d in plan.create])
            outcome.replaced = len(plan.replace)
            outcome.created = len(plan.create)

            self.ledger.record(
                lease.id,
                RentLedgerEvent.PERIODS_REGENERATED,
                old_value={
                    "removed": [
                        {"due": p.period_due_date, "rent": p.rent_amount}
                        for p in plan.replace
                    ]
                },
                new_value={
                    "cutoff": cutoff,
                    "created": [
                        {"due": d.due_date, "rent": d.rent_amount}
                        for d in plan.create
                    ],
                },
            )
            logger.info(
                "Regenerated lease %s from %s: %s replaced, %s created, %s kept",
                lease.id,
                cutoff,
                outcome.replaced,
                outcome.created,
                outcome.kept,
            )

        lease.period_generation_status = PeriodGenerationStatus.GENERATED
        return outcome

    async def generate_for_lease(
        self, lease_id: UUID, as_of: Optional[date] = None
    ) -> GenerationOut:
        """First generation, or a clean retry when periods already exist."""
        try:
            lease = await self._locked_lease(lease_id)
            existing = await self.repo.lock_for_lease(lease.id)

            if existing:
                outcome = await self.apply_regeneration(
                    lease, regeneration_cutoff(as_of), existing
                )
            else:
                outcome = await self.apply_initial(lease)

            await self.lease_repo.db_commit()
            return outcome.to_schema(lease.period_generation_status)
        except RentEngineError as e:
            await self.lease_repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except SQLAlchemyError:
            await self.lease_repo.db_rollback()
            raise

    async def regenerate_future(
        self, lease_id: UUID, effective_date: Optional[date] = None
    ) -> GenerationOut:
        try:
            lease = await self._locked_lease(lease_id)
            if lease.status != LeaseStatus.ACTIVE:
                raise HTTPException(
                    status_code=400,
                    detail="Only active leases can be regenerated",
                )
            outcome = await self.apply_regeneration(
                lease, regeneration_cutoff(effective_date)
            )
            await self.lease_repo.db_commit()
            return outcome.to_schema(lease.period_generation_status)
        except RentEngineError as e:
            await self.lease_repo.db_rollback()
            raise HTTPException(status_code=400, detail=e.to_detail())
        except SQLAlchemyError:
            await self.lease_repo.db_rollback()
            raise

    async def list_for_lease(
        self, lease_id: UUID, status=None
    ) -> List[RentPeriodOut]:
        lease = await self.lease_repo.get_by_id(lease_id)
        if not lease:
            raise HTTPException(status_code=404, detail="Lease not found")
        periods = await self.repo.get_for_lease(lease_id, status=status)
        return [RentPeriodOut.model_validate(p) for p in periods]

    async def get_period(self, period_id: UUID) -> RentPeriodOut:
        period = await self.repo.get_by_id(period_id)
        if not period:
            raise HTTPException(status_code=404, detail="Rent period not found")
        return RentPeriodOut.model_validate(period)
