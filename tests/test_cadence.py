"""
Cadence rules: normalisation of stored spellings, intervals, due days and
default late fees.
"""

from datetime import date
from decimal import Decimal

import pytest

from models.enums import LeaseStatus, RentCadence
from policy.cadence import (
    FRIDAY,
    default_late_fee,
    is_due_day_required,
    next_due_date,
    next_weekday_on_or_after,
    normalize_cadence,
    normalize_lease_status,
    parse_cadence,
    rule_for,
)
from policy.errors import InvalidLeaseError


class TestNormalizeCadence:
    @pytest.mark.parametrize(
        "raw",
        ["biweekly", "Bi-Weekly", "BI_WEEKLY", " bi weekly ", RentCadence.BIWEEKLY],
    )
    def test_biweekly_variants(self, raw):
        assert normalize_cadence(raw) == RentCadence.BIWEEKLY

    @pytest.mark.parametrize("raw", ["weekly", "WEEKLY", " Weekly"])
    def test_weekly_variants(self, raw):
        assert normalize_cadence(raw) == RentCadence.WEEKLY

    @pytest.mark.parametrize("raw", [None, "", "quarterly", "fortnightly", 12])
    def test_unknown_falls_back_to_monthly(self, raw, caplog):
        """Unrecognised values never raise; they are logged and treated as monthly."""
        with caplog.at_level("WARNING"):
            assert normalize_cadence(raw) == RentCadence.MONTHLY
        assert "falling back to monthly" in caplog.text

    def test_parse_cadence_is_strict(self):
        assert parse_cadence("Bi_Weekly") == RentCadence.BIWEEKLY
        with pytest.raises(InvalidLeaseError) as exc:
            parse_cadence("quarterly")
        assert exc.value.code == "invalid_cadence"


class TestCadenceRules:
    def test_weekly_rule(self):
        rule = rule_for("weekly")
        assert rule.interval_days == 7
        assert rule.due_weekday == FRIDAY
        assert rule.default_late_fee == Decimal("10")
        assert not rule.uses_due_day

    def test_biweekly_rule(self):
        rule = rule_for("bi-weekly")
        assert rule.interval_days == 14
        assert rule.due_weekday == FRIDAY
        assert rule.default_late_fee == Decimal("20")

    def test_monthly_rule(self):
        rule = rule_for("monthly")
        assert rule.interval_days == 30
        assert rule.allowed_due_days == (1, 15)
        assert rule.default_late_fee == Decimal("45")
        assert rule.uses_due_day
        assert is_due_day_required("monthly")
        assert not is_due_day_required("weekly")

    def test_default_late_fee_uses_normalised_cadence(self):
        assert default_late_fee("BI_WEEKLY") == Decimal("20")
        assert default_late_fee("nonsense") == Decimal("45")

    def test_monthly_fee_is_configurable(self, monkeypatch):
        from core.settings import settings

        monkeypatch.setattr(settings, "MONTHLY_LATE_FEE", Decimal("50"))
        assert default_late_fee("monthly") == Decimal("50")


class TestDueDates:
    def test_next_due_date_steps(self):
        assert next_due_date(date(2024, 1, 5), "weekly") == date(2024, 1, 12)
        assert next_due_date(date(2024, 1, 5), "biweekly") == date(2024, 1, 19)
        assert next_due_date(date(2024, 1, 31), "monthly") == date(2024, 2, 29)

    @pytest.mark.parametrize(
        "start,expected",
        [
            (date(2024, 1, 1), date(2024, 1, 5)),
            (date(2024, 1, 5), date(2024, 1, 5)),
            (date(2024, 1, 6), date(2024, 1, 12)),
        ],
    )
    def test_next_friday_on_or_after(self, start, expected):
        assert next_weekday_on_or_after(start) == expected


class TestLeaseStatus:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("expired", LeaseStatus.ENDED),
            ("Retired", LeaseStatus.ENDED),
            ("ended", LeaseStatus.ENDED),
            ("terminated", LeaseStatus.TERMINATED),
            ("active", LeaseStatus.ACTIVE),
            (None, LeaseStatus.ACTIVE),
        ],
    )
    def test_normalize_lease_status(self, raw, expected):
        assert normalize_lease_status(raw) == expected
