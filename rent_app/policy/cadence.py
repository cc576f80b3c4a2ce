"""Billing cadence rules.

Every place that reads a cadence goes through :func:`normalize_cadence`, so
stored leases with inconsistent spellings (``Bi_Weekly``, ``biweekly``,
``MONTHLY``) all resolve to the same rule. Unrecognised values fall back to
monthly and are logged, never raised.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import FR, relativedelta

from core.settings import settings
from models.enums import (
    BIWEEKLY_ALIASES,
    ENDED_LEASE_ALIASES,
    LeaseStatus,
    RentCadence,
)

from .errors import InvalidLeaseError

logger = logging.getLogger(__name__)

FRIDAY = 4
MONTHLY_DUE_DAYS = (1, 15)


@dataclass(frozen=True)
class CadenceRule:
    cadence: RentCadence
    interval_days: int
    due_weekday: Optional[int]
    allowed_due_days: tuple[int, ...]
    default_late_fee: Decimal

    @property
    def uses_due_day(self) -> bool:
        return self.due_weekday is None


def _clean(value) -> str:
    if isinstance(value, RentCadence):
        return value.value
    return str(value or "").strip().lower()


def _match(cleaned: str) -> Optional[RentCadence]:
    if cleaned == RentCadence.WEEKLY.value:
        return RentCadence.WEEKLY
    if cleaned in BIWEEKLY_ALIASES:
        return RentCadence.BIWEEKLY
    if cleaned == RentCadence.MONTHLY.value:
        return RentCadence.MONTHLY
    return None


def is_recognized(value) -> bool:
    return _match(_clean(value)) is not None


def normalize_cadence(value) -> RentCadence:
    cadence = _match(_clean(value))
    if cadence is None:
        logger.warning(
            "Unrecognised rent cadence %r, falling back to monthly", value
        )
        return RentCadence.MONTHLY
    return cadence


def parse_cadence(value) -> RentCadence:
    cadence = _match(_clean(value))
    if cadence is None:
        allowed = ", ".join(c.value for c in RentCadence)
        raise InvalidLeaseError(
            f"Invalid rent cadence: {value}. Allowed values: {allowed}",
            code="invalid_cadence",
        )
    return cadence


def rule_for(cadence) -> CadenceRule:
    cadence = normalize_cadence(cadence)

    if cadence == RentCadence.WEEKLY:
        return CadenceRule(
            cadence=cadence,
            interval_days=7,
            due_weekday=FRIDAY,
            allowed_due_days=(),
            default_late_fee=settings.WEEKLY_LATE_FEE,
        )

    if cadence == RentCadence.BIWEEKLY:
        return CadenceRule(
            cadence=cadence,
            interval_days=14,
            due_weekday=FRIDAY,
            allowed_due_days=(),
            default_late_fee=settings.BIWEEKLY_LATE_FEE,
        )

    return CadenceRule(
        cadence=RentCadence.MONTHLY,
        interval_days=settings.MONTHLY_INTERVAL_DAYS,
        due_weekday=None,
        allowed_due_days=MONTHLY_DUE_DAYS,
        default_late_fee=settings.MONTHLY_LATE_FEE,
    )


def default_late_fee(cadence) -> Decimal:
    return rule_for(cadence).default_late_fee


def is_due_day_required(cadence) -> bool:
    return rule_for(cadence).uses_due_day


def next_due_date(current: date, cadence) -> date:
    rule = rule_for(cadence)
    if rule.cadence == RentCadence.MONTHLY:
        return current + relativedelta(months=1)
    return current + timedelta(days=rule.interval_days)


def next_weekday_on_or_after(start: date, weekday: int = FRIDAY) -> date:
    if weekday == FRIDAY:
        return start + relativedelta(weekday=FR)
    return start + timedelta(days=(weekday - start.weekday()) % 7)


def normalize_lease_status(value) -> LeaseStatus:
    if isinstance(value, LeaseStatus):
        return value

    cleaned = str(value or "").strip().lower()
    if cleaned in ENDED_LEASE_ALIASES:
        return LeaseStatus.ENDED
    if cleaned == LeaseStatus.TERMINATED.value:
        return LeaseStatus.TERMINATED
    return LeaseStatus.ACTIVE
