"""Tests for MOHRE proration arithmetic."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from hr_payroll.calculators.proration import ProrationEngine


class TestRates:
    """Test hourly and daily rates."""

    def test_round_to_cents(self):
        """Rounding is half-up to 2 decimal places."""
        assert ProrationEngine.round_to_cents(Decimal("10.125")) == Decimal("10.13")
        assert ProrationEngine.round_to_cents(Decimal("10.124")) == Decimal("10.12")
        assert ProrationEngine.round_to_cents(Decimal("7466.6666")) == Decimal("7466.67")

    def test_hourly_rate(self):
        """Hourly rate is base / 30 / 8."""
        assert ProrationEngine.hourly_rate(Decimal("9000")) == Decimal("37.5")

    def test_daily_rate_uses_thirty_days(self):
        """Daily rate divides by 30 regardless of month length."""
        assert ProrationEngine.daily_rate(Decimal("9000")) == Decimal("300.00")
        assert ProrationEngine.daily_rate(Decimal("14000")) == Decimal("466.67")

    def test_daily_rate_by_working_days(self):
        """Working-day divisor applies only when asked for and positive."""
        assert ProrationEngine.daily_rate(
            Decimal("9000"), use_calendar_days=False, working_days=22
        ) == Decimal("409.09")
        assert ProrationEngine.daily_rate(
            Decimal("9000"), use_calendar_days=False, working_days=0
        ) == Decimal("300.00")
        assert ProrationEngine.daily_rate(
            Decimal("9000"), use_calendar_days=True, working_days=22
        ) == Decimal("300.00")


class TestOvertimePay:
    """Test overtime pricing and caps."""

    def test_regular_overtime(self):
        """Regular overtime earns 1.25x the basic hourly rate."""
        # 37.5 * 2 * 1.25
        assert ProrationEngine.overtime_pay(Decimal("9000"), Decimal("2")) == Decimal("93.75")

    def test_daily_cap(self):
        """Hours above 2 per day are not paid."""
        capped = ProrationEngine.overtime_pay(Decimal("9000"), Decimal("2"))
        assert ProrationEngine.overtime_pay(Decimal("9000"), Decimal("5")) == capped
        assert ProrationEngine.overtime_pay(Decimal("9000"), Decimal("2.5")) == capped

    def test_rest_day_premium(self):
        """Rest-day or holiday overtime earns 1.5x."""
        pay = ProrationEngine.overtime_pay(
            Decimal("9000"), Decimal("2"), is_rest_day_or_holiday=True
        )
        assert pay == Decimal("112.50")

    def test_night_premium(self):
        """Night overtime earns 1.5x."""
        pay = ProrationEngine.overtime_pay(Decimal("9000"), Decimal("1"), is_night_work=True)
        assert pay == Decimal("56.25")

    def test_compensatory_day_pays_nothing(self):
        """Rest-day overtime taken as a day off is not paid."""
        pay = ProrationEngine.overtime_pay(
            Decimal("9000"),
            Decimal("2"),
            is_rest_day_or_holiday=True,
            use_compensatory_day=True,
        )
        assert pay == Decimal("0")

    def test_compensatory_day_ignored_on_working_days(self):
        """A compensatory day only applies to rest-day or holiday work."""
        pay = ProrationEngine.overtime_pay(
            Decimal("9000"), Decimal("2"), use_compensatory_day=True
        )
        assert pay == Decimal("93.75")

    def test_zero_hours(self):
        assert ProrationEngine.overtime_pay(Decimal("9000"), Decimal("0")) == Decimal("0")

    def test_validate_caps(self):
        """Cap violations are reported as warnings."""
        ok = ProrationEngine.validate_overtime_caps(Decimal("2"), Decimal("144"))
        assert ok.valid is True
        assert ok.warnings == []

        both = ProrationEngine.validate_overtime_caps(Decimal("3"), Decimal("150"))
        assert both.valid is False
        assert len(both.warnings) == 2
        assert "Daily overtime" in both.warnings[0]
        assert "Three-week overtime" in both.warnings[1]

    def test_is_night_hours(self):
        """Shifts starting or ending between 22:00 and 04:00 are night work."""
        assert ProrationEngine.is_night_hours(
            datetime(2024, 10, 1, 22, 30), datetime(2024, 10, 1, 23, 30)
        )
        assert ProrationEngine.is_night_hours(
            datetime(2024, 10, 1, 19, 0), datetime(2024, 10, 2, 1, 0)
        )
        assert not ProrationEngine.is_night_hours(
            datetime(2024, 10, 1, 9, 0), datetime(2024, 10, 1, 17, 0)
        )
        assert not ProrationEngine.is_night_hours(None, datetime(2024, 10, 1, 23, 0))


class TestSalaryArithmetic:
    """Test absence deductions, prorated salary and net pay."""

    def test_absence_deduction(self):
        assert ProrationEngine.absence_deduction(Decimal("9000"), Decimal("2")) == Decimal("600.00")
        assert ProrationEngine.absence_deduction(Decimal("9000"), Decimal("0")) == Decimal("0")

    def test_prorated_salary(self):
        """Salary for a number of calendar days at the /30 rate."""
        assert ProrationEngine.prorated_salary(Decimal("14000"), 16) == Decimal("7466.67")
        assert ProrationEngine.prorated_salary(Decimal("14000"), 0) == Decimal("0")

    def test_prorated_salary_never_negative(self):
        amount = ProrationEngine.prorated_salary(
            Decimal("14000"), 1, deductions=Decimal("100000")
        )
        assert amount == Decimal("0")

    def test_net_payroll(self):
        """Net pay adds overtime, reimbursements and bonuses, subtracts the rest."""
        net = ProrationEngine.net_payroll(
            Decimal("14000"),
            overtime=Decimal("93.75"),
            reimbursements=Decimal("200"),
            bonuses=Decimal("500"),
            deductions=Decimal("300"),
        )
        assert net == Decimal("14493.75")

    @pytest.mark.parametrize(
        "deductions,tax",
        [
            (Decimal("5000"), Decimal("0")),
            (Decimal("0"), Decimal("1000000")),
            (Decimal("999999.99"), Decimal("999999.99")),
        ],
    )
    def test_net_payroll_never_negative(self, deductions, tax):
        """Net pay is floored at zero however large the deductions."""
        net = ProrationEngine.net_payroll(
            Decimal("1000"), deductions=deductions, tax_deduction=tax
        )
        assert net == Decimal("0")

    def test_totals(self):
        assert ProrationEngine.total_adjustments(
            Decimal("93.75"), Decimal("200"), Decimal("500")
        ) == Decimal("793.75")
        assert ProrationEngine.total_deductions(Decimal("300"), Decimal("0")) == Decimal("300.00")


class TestCalendarHelpers:
    """Test weekend, working-day and calendar-day counts."""

    def test_is_weekend(self):
        # 2024-10-05 is a Saturday
        assert ProrationEngine.is_weekend(date(2024, 10, 5))
        assert not ProrationEngine.is_weekend(date(2024, 10, 7))
        assert ProrationEngine.is_weekend(date(2024, 10, 4), weekend_days={5, 6})

    def test_working_days_in_range(self):
        """October 2024 has 23 weekdays."""
        start, end = date(2024, 10, 1), date(2024, 10, 31)
        assert ProrationEngine.working_days_in_range(start, end) == 23
        assert ProrationEngine.working_days_in_range(start, end, holidays=[date(2024, 10, 1)]) == 22
        # Holidays on a weekend don't count twice
        assert ProrationEngine.working_days_in_range(start, end, holidays=[date(2024, 10, 5)]) == 23
        assert ProrationEngine.working_days_in_range(start, end, weekend_days={5, 6}) == 23

    def test_working_days_empty_range(self):
        assert ProrationEngine.working_days_in_range(date(2024, 10, 2), date(2024, 10, 1)) == 0

    def test_calendar_days(self):
        assert ProrationEngine.calendar_days(date(2024, 10, 16), date(2024, 10, 31)) == 16
        assert ProrationEngine.calendar_days(date(2024, 10, 1), date(2024, 10, 1)) == 1
        assert ProrationEngine.calendar_days(date(2024, 10, 2), date(2024, 10, 1)) == 0
