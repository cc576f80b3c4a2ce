"""Applying a payment against outstanding rent periods.

Two modes are supported. ``auto`` walks open periods oldest-first and fills
each one's outstanding balance until the payment runs out. ``manual`` takes
an explicit period -> amount split chosen by an operator and validates it
against the current balances. Neither mode ever pushes a period's
``amount_paid`` past its ``rent_amount``; money that does not fit anywhere is
returned as ``unapplied``.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from models.enums import PeriodStatus
from models.utils import read_attr, to_money

from .errors import AllocationError

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PeriodBalance:
    id: uuid.UUID
    due_date: date
    rent_amount: Decimal
    amount_paid: Decimal

    @property
    def outstanding(self) -> Decimal:
        return max(self.rent_amount - self.amount_paid, ZERO)

    @classmethod
    def from_period(cls, period: Any) -> "PeriodBalance":
        return cls(
            id=read_attr(period, "id"),
            due_date=read_attr(period, "period_due_date"),
            rent_amount=to_money(read_attr(period, "rent_amount")),
            amount_paid=to_money(read_attr(period, "amount_paid")),
        )


@dataclass(frozen=True)
class AllocationLine:
    period_id: uuid.UUID
    due_date: date
    amount_applied: Decimal
    amount_paid: Decimal
    status: PeriodStatus


@dataclass
class AllocationResult:
    payment_amount: Decimal
    lines: List[AllocationLine] = field(default_factory=list)

    @property
    def total_applied(self) -> Decimal:
        return to_money(sum((line.amount_applied for line in self.lines), ZERO))

    @property
    def unapplied(self) -> Decimal:
        return to_money(self.payment_amount - self.total_applied)


def period_status(amount_paid: Decimal, rent_amount: Decimal) -> PeriodStatus:
    if amount_paid >= rent_amount:
        return PeriodStatus.PAID
    if amount_paid > 0:
        return PeriodStatus.PARTIAL
    return PeriodStatus.UNPAID


def _balances(periods: Iterable[Any]) -> List[PeriodBalance]:
    return [
        p if isinstance(p, PeriodBalance) else PeriodBalance.from_period(p)
        for p in periods
    ]


def _apply(balance: PeriodBalance, amount: Decimal) -> AllocationLine:
    new_paid = to_money(balance.amount_paid + amount)
    return AllocationLine(
        period_id=balance.id,
        due_date=balance.due_date,
        amount_applied=to_money(amount),
        amount_paid=new_paid,
        status=period_status(new_paid, balance.rent_amount),
    )


def _check_amount(amount) -> Decimal:
    amount = to_money(amount)
    if amount <= 0:
        raise AllocationError("Payment amount must be positive", code="invalid_amount")
    return amount


def allocate_auto(amount, periods: Sequence[Any]) -> AllocationResult:
    amount = _check_amount(amount)
    result = AllocationResult(payment_amount=amount)
    remaining = amount

    ordered = sorted(_balances(periods), key=lambda b: (b.due_date, str(b.id)))
    for balance in ordered:
        if remaining <= 0:
            break
        if balance.outstanding <= 0:
            continue
        applied = min(remaining, balance.outstanding)
        result.lines.append(_apply(balance, applied))
        remaining -= applied

    return result


def allocate_manual(
    amount, periods: Sequence[Any], split: Mapping[uuid.UUID, Any]
) -> AllocationResult:
    amount = _check_amount(amount)
    if not split:
        raise AllocationError(
            "Manual allocation needs at least one period", code="empty_split"
        )

    by_id: Dict[uuid.UUID, PeriodBalance] = {b.id: b for b in _balances(periods)}
    lines: List[AllocationLine] = []
    total = ZERO

    for period_id, requested in split.items():
        balance = by_id.get(period_id)
        if balance is None:
            raise AllocationError(
                f"Period {period_id} is not open for this tenant",
                code="unknown_period",
            )
        requested = to_money(requested)
        if requested <= 0:
            raise AllocationError(
                f"Amount for period {period_id} must be positive",
                code="invalid_amount",
            )
        if requested > balance.outstanding:
            raise AllocationError(
                f"Amount {requested} exceeds outstanding balance "
                f"{balance.outstanding} for period {period_id}",
                code="exceeds_outstanding",
            )
        total += requested
        lines.append(_apply(balance, requested))

    if total > amount:
        raise AllocationError(
            f"Split total {total} exceeds payment amount {amount}",
            code="exceeds_payment",
        )

    lines.sort(key=lambda line: line.due_date)
    return AllocationResult(payment_amount=amount, lines=lines)


def reverse_allocation(period: Any, amount_applied) -> AllocationLine:
    """Take ``amount_applied`` back off ``period``; status may drop to unpaid."""
    balance = PeriodBalance.from_period(period)
    new_paid = max(to_money(balance.amount_paid - to_money(amount_applied)), ZERO)
    return AllocationLine(
        period_id=balance.id,
        due_date=balance.due_date,
        amount_applied=-to_money(amount_applied),
        amount_paid=new_paid,
        status=period_status(new_paid, balance.rent_amount),
    )
