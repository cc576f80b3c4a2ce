"""
Late fee assessment: grace period, elapsed-period counting, overrides and
display bands.
"""

from datetime import date
from decimal import Decimal

import pytest

from models.enums import SeverityBand
from policy.errors import RentEngineError
from policy.late_fee_policy import assess, fee_per_period, manual_override, severity_band

from helpers import period_row


class TestAssess:
    def test_monthly_nine_days_late(self):
        period = period_row("2024-01-01")
        decision = assess(period, as_of=date(2024, 1, 10))

        assert decision.days_late == 9
        assert decision.late_periods == 1
        assert decision.applied_fee == Decimal("45.00")
        assert decision.waived is False

    def test_within_grace_is_not_late(self):
        period = period_row("2024-01-01")
        decision = assess(period, as_of=date(2024, 1, 6))

        assert decision.applied_fee == 0
        assert not decision.is_late

    def test_first_day_after_grace(self):
        decision = assess(period_row("2024-01-01"), as_of=date(2024, 1, 7))
        assert decision.applied_fee == Decimal("45.00")

    def test_fee_grows_with_elapsed_periods(self):
        period = period_row("2024-01-05", cadence="weekly", rent="250")
        decision = assess(period, as_of=date(2024, 1, 20))

        assert decision.days_late == 15
        assert decision.late_periods == 3
        assert decision.applied_fee == Decimal("30.00")

    def test_biweekly_uses_fourteen_day_interval(self):
        period = period_row("2024-01-05", cadence="biweekly", rent="500")
        decision = assess(period, as_of=date(2024, 2, 5))

        assert decision.late_periods == 3
        assert decision.applied_fee == Decimal("60.00")

    def test_repeated_assessment_is_idempotent(self):
        period = period_row("2024-01-01")
        first = assess(period, as_of=date(2024, 3, 1))
        second = assess(period, as_of=date(2024, 3, 1))
        assert first == second
        assert first.applied_fee == Decimal("90.00")

    def test_paid_period_owes_nothing(self):
        period = period_row("2024-01-01")
        assert assess(period, as_of=date(2024, 1, 10)).applied_fee == Decimal("45.00")

        period["amount_paid"] = Decimal("1000.00")
        period["status"] = "paid"
        assert assess(period, as_of=date(2024, 1, 20)).applied_fee == 0

    def test_lease_override_replaces_cadence_default(self):
        decision = assess(
            period_row("2024-01-01"),
            as_of=date(2024, 1, 10),
            late_fee_override=Decimal("75"),
        )
        assert decision.applied_fee == Decimal("75.00")

    def test_zero_override_falls_back_to_default(self):
        assert fee_per_period("monthly", Decimal("0")) == Decimal("45.00")
        assert fee_per_period("weekly", None) == Decimal("10.00")

    def test_custom_grace(self):
        decision = assess(period_row("2024-01-01"), as_of=date(2024, 1, 3), grace_days=1)
        assert decision.applied_fee == Decimal("45.00")


class TestManualOverride:
    def test_zero_fee_marks_waived(self):
        decision = manual_override(Decimal("0"))
        assert decision.applied_fee == 0
        assert decision.waived is True

    def test_positive_fee_is_not_waived(self):
        decision = manual_override("25")
        assert decision.applied_fee == Decimal("25.00")
        assert decision.waived is False

    def test_negative_fee_rejected(self):
        with pytest.raises(RentEngineError) as exc:
            manual_override(Decimal("-5"))
        assert exc.value.code == "invalid_late_fee"


class TestSeverityBand:
    @pytest.mark.parametrize(
        "total,band",
        [
            ("5000.01", SeverityBand.SEVERE),
            ("5000", SeverityBand.HIGH),
            ("2000.01", SeverityBand.HIGH),
            ("2000", SeverityBand.MODERATE),
            ("500.01", SeverityBand.MODERATE),
            ("500", SeverityBand.NONE),
            ("0", SeverityBand.NONE),
        ],
    )
    def test_bands(self, total, band):
        assert severity_band(Decimal(total)) == band
