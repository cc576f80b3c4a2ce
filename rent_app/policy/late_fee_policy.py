import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from core.settings import settings
from models.enums import PeriodStatus, SeverityBand
from models.utils import read_attr, to_money

from .cadence import rule_for
from .errors import RentEngineError

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class LateFeeDecision:
    applied_fee: Decimal
    waived: bool
    days_late: int
    late_periods: int

    @property
    def is_late(self) -> bool:
        return self.late_periods > 0


def days_past_due(due_date: date, as_of: date) -> int:
    return (as_of - due_date).days


def fee_per_period(cadence, late_fee_override: Optional[Decimal] = None) -> Decimal:
    if late_fee_override is not None and late_fee_override > 0:
        return to_money(late_fee_override)
    return to_money(rule_for(cadence).default_late_fee)


def assess(
    period: Any,
    as_of: date,
    late_fee_override: Optional[Decimal] = None,
    grace_days: Optional[int] = None,
) -> LateFeeDecision:
    """Recompute the late fee owed on ``period`` as of ``as_of``.

    The fee is recomputed from scratch every call, never accumulated, so
    repeated calls with the same date agree.
    """
    grace = settings.LATE_FEE_GRACE_DAYS if grace_days is None else grace_days
    due_date = read_attr(period, "period_due_date")
    status = PeriodStatus(read_attr(period, "status") or PeriodStatus.UNPAID)
    days_late = days_past_due(due_date, as_of)

    if status == PeriodStatus.PAID or days_late <= grace:
        return LateFeeDecision(
            applied_fee=ZERO, waived=False, days_late=max(days_late, 0), late_periods=0
        )

    cadence = read_attr(period, "rent_cadence")
    interval = rule_for(cadence).interval_days
    late_periods = math.ceil(days_late / interval)
    fee = to_money(late_periods * fee_per_period(cadence, late_fee_override))

    return LateFeeDecision(
        applied_fee=fee, waived=False, days_late=days_late, late_periods=late_periods
    )


def manual_override(new_fee) -> LateFeeDecision:
    fee = to_money(new_fee)
    if fee < 0:
        raise RentEngineError("Late fee cannot be negative", code="invalid_late_fee")
    return LateFeeDecision(applied_fee=fee, waived=fee == 0, days_late=0, late_periods=0)


def severity_band(total_due) -> SeverityBand:
    total_due = to_money(total_due)
    if total_due > settings.SEVERE_BALANCE:
        return SeverityBand.SEVERE
    if total_due > settings.HIGH_BALANCE:
        return SeverityBand.HIGH
    if total_due > settings.MODERATE_BALANCE:
        return SeverityBand.MODERATE
    return SeverityBand.NONE
