"""Generate rent periods for active leases that have none yet.

Run once after importing leases from another system:

    python -m scripts.generate_initial_periods
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List
from uuid import UUID

from core.get_db import AsyncSessionLocal
from models.enums import PeriodGenerationStatus, RentLedgerEvent
from repos.lease_repo import LeaseRepo
from repos.rent_ledger_repo import RentLedgerRepository
from repos.rent_period_repo import RentPeriodRepo
from services.rent_period_service import RentPeriodService

logger = logging.getLogger(__name__)


@dataclass
class BackfillReport:
    success: int = 0
    skipped: int = 0
    errors: int = 0
    failed_leases: List[UUID] = field(default_factory=list)


async def backfill(db) -> BackfillReport:
    lease_repo = LeaseRepo(db)
    period_repo = RentPeriodRepo(db)
    service = RentPeriodService(db)
    report = BackfillReport()

    lease_ids = [lease.id for lease in await lease_repo.get_needing_periods()]
    logger.info("Found %s active leases without periods", len(lease_ids))

    for lease_id in lease_ids:
        lease = await lease_repo.lock(lease_id)
        if lease is None or await period_repo.get_for_lease(lease_id):
            report.skipped += 1
            continue

        try:
            outcome = await service.apply_initial(lease)
            await lease_repo.db_commit()
        except Exception as e:
            await lease_repo.db_rollback()
            logger.warning("Could not generate periods for lease %s: %s", lease_id, e)
            report.errors += 1
            report.failed_leases.append(lease_id)

            lease = await lease_repo.get_by_id(lease_id)
            lease.period_generation_status = PeriodGenerationStatus.FAILED
            RentLedgerRepository(db).record(
                lease_id,
                RentLedgerEvent.PERIOD_GENERATION_FAILED,
                new_value={"error": str(e), "source": "backfill"},
            )
            await lease_repo.db_commit()
            continue

        if outcome.created == 0:
            report.skipped += 1
        else:
            report.success += 1

    logger.info(
        "Backfill finished: %s generated, %s skipped, %s errors",
        report.success,
        report.skipped,
        report.errors,
    )
    return report


async def run():
    async with AsyncSessionLocal() as db:
        await backfill(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run())
