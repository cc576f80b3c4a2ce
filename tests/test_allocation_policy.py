from decimal import Decimal

import pytest

from models.enums import PeriodStatus
from policy.allocation_policy import (
    allocate_auto,
    allocate_manual,
    period_status,
    reverse_allocation,
)
from policy.errors import AllocationError

from helpers import period_row


def _open_months():
    return [
        period_row("2024-01-01"),
        period_row("2024-02-01"),
        period_row("2024-03-01"),
    ]


class TestAutoAllocation:
    def test_fifteen_hundred_fills_oldest_first(self):
        jan, feb, mar = _open_months()
        result = allocate_auto(Decimal("1500"), [mar, jan, feb])

        assert [line.period_id for line in result.lines] == [jan["id"], feb["id"]]
        first, second = result.lines
        assert first.amount_applied == Decimal("1000.00")
        assert first.status == PeriodStatus.PAID
        assert second.amount_applied == Decimal("500.00")
        assert second.amount_paid == Decimal("500.00")
        assert second.status == PeriodStatus.PARTIAL
        assert result.unapplied == 0

    def test_partial_period_takes_remaining_balance_only(self):
        jan = period_row("2024-01-01", paid="400.00", status="partial")
        feb = period_row("2024-02-01")
        result = allocate_auto(Decimal("800"), [jan, feb])

        assert result.lines[0].amount_applied == Decimal("600.00")
        assert result.lines[0].status == PeriodStatus.PAID
        assert result.lines[1].amount_applied == Decimal("200.00")

    def test_overpayment_is_left_unapplied(self):
        result = allocate_auto(Decimal("3500"), _open_months())

        assert result.total_applied == Decimal("3000.00")
        assert result.unapplied == Decimal("500.00")
        assert all(line.status == PeriodStatus.PAID for line in result.lines)

    def test_amount_is_conserved(self):
        result = allocate_auto(Decimal("1234.56"), _open_months())
        assert result.total_applied + result.unapplied == Decimal("1234.56")

    def test_no_open_periods(self):
        result = allocate_auto(Decimal("100"), [])
        assert result.lines == []
        assert result.unapplied == Decimal("100.00")

    def test_non_positive_amount_rejected(self):
        with pytest.raises(AllocationError) as exc:
            allocate_auto(Decimal("0"), _open_months())
        assert exc.value.code == "invalid_amount"


class TestManualAllocation:
    def test_split_is_applied_as_given(self):
        jan, feb, mar = _open_months()
        result = allocate_manual(
            Decimal("700"), [jan, feb, mar], {mar["id"]: "500", jan["id"]: "200"}
        )

        assert [line.period_id for line in result.lines] == [jan["id"], mar["id"]]
        assert result.lines[1].status == PeriodStatus.PARTIAL
        assert result.unapplied == 0

    def test_split_below_payment_leaves_remainder(self):
        jan, feb, mar = _open_months()
        result = allocate_manual(Decimal("700"), [jan], {jan["id"]: "300"})
        assert result.unapplied == Decimal("400.00")

    @pytest.mark.parametrize(
        "amount,split_amount,code",
        [
            ("2000", "1200", "exceeds_outstanding"),
            ("100", "200", "exceeds_payment"),
            ("100", "0", "invalid_amount"),
        ],
    )
    def test_bad_split_amounts(self, amount, split_amount, code):
        jan = period_row("2024-01-01")
        with pytest.raises(AllocationError) as exc:
            allocate_manual(Decimal(amount), [jan], {jan["id"]: split_amount})
        assert exc.value.code == code

    def test_empty_split(self):
        with pytest.raises(AllocationError) as exc:
            allocate_manual(Decimal("100"), _open_months(), {})
        assert exc.value.code == "empty_split"

    def test_unknown_period(self):
        stray = period_row("2024-05-01")
        with pytest.raises(AllocationError) as exc:
            allocate_manual(Decimal("100"), _open_months(), {stray["id"]: "100"})
        assert exc.value.code == "unknown_period"


class TestReverseAllocation:
    def test_reversal_restores_partial(self):
        period = period_row("2024-01-01", paid="1000.00", status="paid")
        line = reverse_allocation(period, Decimal("400"))

        assert line.amount_paid == Decimal("600.00")
        assert line.amount_applied == Decimal("-400.00")
        assert line.status == PeriodStatus.PARTIAL

    def test_full_reversal_returns_to_unpaid(self):
        period = period_row("2024-01-01", paid="500.00", status="partial")
        line = reverse_allocation(period, Decimal("500"))
        assert line.amount_paid == 0
        assert line.status == PeriodStatus.UNPAID

    def test_never_goes_negative(self):
        period = period_row("2024-01-01", paid="100.00", status="partial")
        assert reverse_allocation(period, Decimal("300")).amount_paid == 0


def test_period_status_thresholds():
    rent = Decimal("1000.00")
    assert period_status(Decimal("0"), rent) == PeriodStatus.UNPAID
    assert period_status(Decimal("0.01"), rent) == PeriodStatus.PARTIAL
    assert period_status(Decimal("1000.00"), rent) == PeriodStatus.PAID
