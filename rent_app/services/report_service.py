import logging
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fastapi import HTTPException

from core.settings import settings
from models.utils import to_money
from policy.late_fee_policy import days_past_due, severity_band
from repos.payment_repo import PaymentRepo
from repos.rent_period_repo import RentPeriodRepo
from repos.tenant_repo import TenantRepo
from schemas.schema import (
    CollectionBreakdownOut,
    CollectionsOut,
    LateTenantOut,
    LateTenantsOut,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class ReportService:
    def __init__(self, db):
        self.payment_repo: PaymentRepo = PaymentRepo(db)
        self.period_repo: RentPeriodRepo = RentPeriodRepo(db)
        self.tenant_repo: TenantRepo = TenantRepo(db)

    async def collected_total(
        self,
        start: date,
        end: date,
        tenant_id: Optional[UUID] = None,
        property_id: Optional[UUID] = None,
    ) -> CollectionsOut:
        if end < start:
            raise HTTPException(status_code=400, detail="end must be on or after start")

        rows = await self.payment_repo.collected(
            start, end, tenant_id=tenant_id, property_id=property_id
        )

        by_tenant = defaultdict(lambda: {"name": "", "count": 0, "total": ZERO})
        by_property = defaultdict(lambda: {"name": "", "count": 0, "total": ZERO})
        total = ZERO
        count = 0
        for row in rows:
            amount = to_money(row.total)
            total += amount
            count += row.payment_count

            tenant = by_tenant[row.tenant_id]
            tenant["name"] = f"{row.first_name} {row.last_name}"
            tenant["count"] += row.payment_count
            tenant["total"] += amount

            prop = by_property[row.property_id]
            prop["name"] = row.property_name or "Unassigned"
            prop["count"] += row.payment_count
            prop["total"] += amount

        def breakdown(groups):
            items = [
                CollectionBreakdownOut(
                    id=key,
                    name=value["name"],
                    payment_count=value["count"],
                    total=to_money(value["total"]),
                )
                for key, value in groups.items()
            ]
            return sorted(items, key=lambda item: item.total, reverse=True)

        return CollectionsOut(
            start=start,
            end=end,
            total_collected=to_money(total),
            payment_count=count,
            by_tenant=breakdown(by_tenant) if tenant_id is None else [],
            by_property=breakdown(by_property) if property_id is None else [],
        )

    async def late_tenants(self, as_of: Optional[date] = None) -> LateTenantsOut:
        as_of = as_of or date.today()
        cutoff = as_of - timedelta(days=settings.LATE_FEE_GRACE_DAYS)
        periods = await self.period_repo.get_overdue(due_before=cutoff)

        grouped = defaultdict(list)
        for period in periods:
            grouped[period.tenant_id].append(period)

        tenants = {
            t.id: t for t in await self.tenant_repo.get_by_ids(grouped.keys())
        }

        results = []
        for tenant_id, tenant_periods in grouped.items():
            outstanding = to_money(
                sum((p.rent_amount - p.amount_paid for p in tenant_periods), ZERO)
            )
            fees = to_money(
                sum(
                    (p.late_fee_applied for p in tenant_periods if not p.late_fee_waived),
                    ZERO,
                )
            )
            total_due = to_money(outstanding + fees)
            tenant = tenants.get(tenant_id)
            results.append(
                LateTenantOut(
                    tenant_id=tenant_id,
                    tenant_name=(
                        f"{tenant.first_name} {tenant.last_name}" if tenant else "Unknown"
                    ),
                    overdue_periods=len(tenant_periods),
                    max_days_late=max(
                        days_past_due(p.period_due_date, as_of) for p in tenant_periods
                    ),
                    outstanding_rent=outstanding,
                    late_fees=fees,
                    total_due=total_due,
                    severity=severity_band(total_due),
                )
            )

        results.sort(key=lambda item: item.total_due, reverse=True)
        logger.info("%s tenants late as of %s", len(results), as_of)
        return LateTenantsOut(as_of=as_of, tenants=results)
