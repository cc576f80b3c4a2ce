"""Rent period generation.

A lease is turned into an ordered list of billing periods between its start
and end dates (both inclusive). Each period snapshots the rent at generation
time, so later rent changes never rewrite history. Regeneration only replaces
periods that are due on or after a cutoff date and have nothing recorded
against them.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from models.enums import LateFeeSource, LeaseStatus, PeriodStatus, RentCadence
from models.utils import read_attr, to_money

from .cadence import (
    MONTHLY_DUE_DAYS,
    is_due_day_required,
    is_recognized,
    next_due_date,
    next_weekday_on_or_after,
    normalize_cadence,
    normalize_lease_status,
    rule_for,
)
from .errors import InvalidLeaseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaseTerms:
    rent: Decimal
    cadence: RentCadence
    start_date: date
    end_date: date
    due_day: Optional[int] = None
    late_fee_amount: Optional[Decimal] = None
    status: LeaseStatus = LeaseStatus.ACTIVE
    data_warnings: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_lease(cls, lease: Any) -> "LeaseTerms":
        """Build strict terms from a stored lease row or a plain mapping."""
        warnings: list[str] = []

        raw_cadence = read_attr(lease, "rent_cadence")
        cadence = normalize_cadence(raw_cadence)
        if not is_recognized(raw_cadence):
            warnings.append(
                f"rent cadence {raw_cadence!r} not recognised, treated as monthly"
            )

        due_day = read_attr(lease, "rent_due_day")
        if is_due_day_required(cadence):
            if due_day is None:
                due_day = MONTHLY_DUE_DAYS[0]
                warnings.append("monthly lease without a due day, using day 1")
            else:
                due_day = int(due_day)
        else:
            due_day = None

        rent = read_attr(lease, "rent")
        late_fee_amount = read_attr(lease, "late_fee_amount")

        for message in warnings:
            logger.warning(
                "Lease %s data quality: %s", read_attr(lease, "id", "<new>"), message
            )

        return cls(
            rent=to_money(rent) if rent is not None else Decimal("0"),
            cadence=cadence,
            start_date=read_attr(lease, "lease_start_date"),
            end_date=read_attr(lease, "lease_end_date"),
            due_day=due_day,
            late_fee_amount=(
                to_money(late_fee_amount) if late_fee_amount is not None else None
            ),
            status=normalize_lease_status(read_attr(lease, "status")),
            data_warnings=tuple(warnings),
        )


@dataclass(frozen=True)
class PeriodDraft:
    due_date: date
    rent_amount: Decimal
    rent_cadence: RentCadence
    amount_paid: Decimal = Decimal("0.00")
    status: PeriodStatus = PeriodStatus.UNPAID


@dataclass
class RegenerationPlan:
    keep: List[Any]
    replace: List[Any]
    create: List[PeriodDraft]

    @property
    def changed(self) -> bool:
        return bool(self.replace or self.create)


def validate_terms(terms: LeaseTerms) -> None:
    if terms.start_date is None or terms.end_date is None:
        raise InvalidLeaseError(
            "Lease start and end dates are required", code="invalid_dates"
        )
    if terms.start_date > terms.end_date:
        raise InvalidLeaseError(
            "Lease end date must be on or after the start date", code="invalid_dates"
        )
    if terms.rent is None or terms.rent <= 0:
        raise InvalidLeaseError("Rent amount must be positive", code="invalid_rent")
    if (
        is_due_day_required(terms.cadence)
        and terms.due_day not in rule_for(terms.cadence).allowed_due_days
    ):
        raise InvalidLeaseError(
            "Rent due day must be 1 or 15 for monthly cadence",
            code="invalid_due_day",
        )
    if terms.late_fee_amount is not None and terms.late_fee_amount < 0:
        raise InvalidLeaseError(
            "Late fee amount cannot be negative", code="invalid_late_fee"
        )


def first_due_date(terms: LeaseTerms) -> date:
    rule = rule_for(terms.cadence)
    if not rule.uses_due_day:
        return next_weekday_on_or_after(terms.start_date, rule.due_weekday)

    candidate = terms.start_date.replace(day=terms.due_day)
    if candidate < terms.start_date:
        candidate += relativedelta(months=1)
    return candidate


def iter_due_dates(terms: LeaseTerms) -> Iterable[date]:
    due = first_due_date(terms)
    while due <= terms.end_date:
        yield due
        due = next_due_date(due, terms.cadence)


def generate_periods(terms: LeaseTerms) -> List[PeriodDraft]:
    validate_terms(terms)

    if terms.status != LeaseStatus.ACTIVE:
        return []

    return [
        PeriodDraft(
            due_date=due,
            rent_amount=terms.rent,
            rent_cadence=terms.cadence,
        )
        for due in iter_due_dates(terms)
    ]


def is_untouched(period: Any) -> bool:
    """True when nothing has been recorded against the period yet.

    Money, an assessed late fee, a waiver and a manual fee override all
    count as activity.
    """
    amount_paid = read_attr(period, "amount_paid") or Decimal("0")
    status = read_attr(period, "status") or PeriodStatus.UNPAID
    if amount_paid != 0 or PeriodStatus(status) != PeriodStatus.UNPAID:
        return False

    late_fee = read_attr(period, "late_fee_applied") or Decimal("0")
    source = read_attr(period, "late_fee_source") or LateFeeSource.NONE
    return (
        late_fee == 0
        and not read_attr(period, "late_fee_waived", False)
        and LateFeeSource(source) == LateFeeSource.NONE
    )


def plan_regeneration(
    existing: Sequence[Any], terms: LeaseTerms, cutoff: date
) -> RegenerationPlan:
    """Partition ``existing`` around ``cutoff`` and work out what to insert.

    Periods due before the cutoff, and any period with money or a late fee
    recorded against it, are kept as they are. Untouched periods due on or after the cutoff are
    replaced by freshly generated ones. A generated period whose due date
    matches a kept period is skipped.
    """
    keep: list = []
    replace: list = []
    for period in existing:
        if read_attr(period, "period_due_date") >= cutoff and is_untouched(period):
            replace.append(period)
        else:
            keep.append(period)

    kept_dates = {read_attr(p, "period_due_date") for p in keep}
    create = [
        draft
        for draft in generate_periods(terms)
        if draft.due_date >= cutoff and draft.due_date not in kept_dates
    ]
    return RegenerationPlan(keep=keep, replace=replace, create=create)
