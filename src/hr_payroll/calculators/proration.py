"""MOHRE salary proration, overtime and net pay arithmetic.

Every rule here is a pure function of its inputs. Money is Decimal and is
rounded half-up to cents on output; intermediate values keep full precision.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")

# ISO weekday numbers (Monday=1 ... Sunday=7)
DEFAULT_WEEKEND_DAYS: frozenset[int] = frozenset({6, 7})


@dataclass
class OvertimeCapCheck:
    """Result of checking overtime hours against the statutory caps."""

    valid: bool
    warnings: list[str] = field(default_factory=list)


class ProrationEngine:
    """Salary proration rules.

    Conventions:
    - Daily rate is monthly amount / 30 regardless of month length
    - Hourly rate is basic salary / 30 / 8
    - Overtime is priced on basic salary only, at most 2 hours per day
    - Net pay is never negative
    """

    MOHRE_DAYS_PER_MONTH = Decimal("30")
    HOURS_PER_DAY = Decimal("8")
    MAX_DAILY_OVERTIME_HOURS = Decimal("2")
    MAX_THREE_WEEK_OVERTIME_HOURS = Decimal("144")
    REGULAR_OVERTIME_MULTIPLIER = Decimal("1.25")
    PREMIUM_OVERTIME_MULTIPLIER = Decimal("1.5")
    NIGHT_HOURS = frozenset({22, 23, 0, 1, 2, 3})

    PRECISION = Decimal("0.0001")
    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(ProrationEngine.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_ratio(value: Decimal) -> Decimal:
        return value.quantize(ProrationEngine.PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def hourly_rate(base_salary: Decimal) -> Decimal:
        """Basic hourly rate: base / 30 / 8 (unrounded)."""
        return base_salary / ProrationEngine.MOHRE_DAYS_PER_MONTH / ProrationEngine.HOURS_PER_DAY

    @staticmethod
    def daily_rate(
        monthly_amount: Decimal,
        use_calendar_days: bool = True,
        working_days: int | None = None,
    ) -> Decimal:
        """Daily rate for a monthly component, rounded to cents.

        The standard divisor is 30. With ``use_calendar_days=False`` the
        working-days count is used instead, falling back to 30 when it is
        missing or not positive.
        """
        divisor = ProrationEngine.MOHRE_DAYS_PER_MONTH
        if not use_calendar_days and working_days is not None and working_days > 0:
            divisor = Decimal(working_days)
        return ProrationEngine.round_to_cents(monthly_amount / divisor)

    @staticmethod
    def overtime_pay(
        base_salary: Decimal,
        hours: Decimal,
        is_rest_day_or_holiday: bool = False,
        is_night_work: bool = False,
        use_compensatory_day: bool = False,
    ) -> Decimal:
        """Price overtime hours worked on a single day.

        Hours above the daily cap are not paid. A rest day or holiday that is
        compensated with a day off earns no overtime pay. Rest-day, holiday
        and night work earn the premium multiplier.
        """
        hours = Decimal(hours)
        if hours <= ZERO:
            return ZERO
        if is_rest_day_or_holiday and use_compensatory_day:
            return ZERO

        capped = min(hours, ProrationEngine.MAX_DAILY_OVERTIME_HOURS)
        if is_rest_day_or_holiday or is_night_work:
            multiplier = ProrationEngine.PREMIUM_OVERTIME_MULTIPLIER
        else:
            multiplier = ProrationEngine.REGULAR_OVERTIME_MULTIPLIER

        pay = ProrationEngine.hourly_rate(base_salary) * capped * multiplier
        return ProrationEngine.round_to_cents(pay)

    @staticmethod
    def validate_overtime_caps(
        daily_hours: Decimal, three_week_hours: Decimal
    ) -> OvertimeCapCheck:
        warnings: list[str] = []
        if daily_hours > ProrationEngine.MAX_DAILY_OVERTIME_HOURS:
            warnings.append(
                f"Daily overtime exceeds MOHRE cap: {daily_hours}h > "
                f"{ProrationEngine.MAX_DAILY_OVERTIME_HOURS}h limit"
            )
        if three_week_hours > ProrationEngine.MAX_THREE_WEEK_OVERTIME_HOURS:
            warnings.append(
                f"Three-week overtime exceeds MOHRE cap: {three_week_hours}h > "
                f"{ProrationEngine.MAX_THREE_WEEK_OVERTIME_HOURS}h limit"
            )
        return OvertimeCapCheck(valid=not warnings, warnings=warnings)

    @staticmethod
    def is_night_hours(start: datetime | None, end: datetime | None) -> bool:
        """True when the shift starts or ends inside 22:00-04:00."""
        if start is None or end is None:
            return False
        night = ProrationEngine.NIGHT_HOURS
        return start.hour in night or end.hour in night

    @staticmethod
    def absence_deduction(monthly_amount: Decimal, days: Decimal) -> Decimal:
        """Deduction for ``days`` of absence at the /30 daily rate."""
        days = Decimal(days)
        if days <= ZERO:
            return ZERO
        return ProrationEngine.round_to_cents(ProrationEngine.daily_rate(monthly_amount) * days)

    @staticmethod
    def prorated_salary(
        monthly_amount: Decimal,
        calendar_days_worked: int,
        overtime: Decimal = ZERO,
        reimbursements: Decimal = ZERO,
        bonuses: Decimal = ZERO,
        deductions: Decimal = ZERO,
        tax_deduction: Decimal = ZERO,
    ) -> Decimal:
        """Salary for ``calendar_days_worked`` days plus adjustments, floored at 0."""
        if calendar_days_worked <= 0:
            return ZERO
        earned = monthly_amount / ProrationEngine.MOHRE_DAYS_PER_MONTH * calendar_days_worked
        net = earned + overtime + reimbursements + bonuses - deductions - tax_deduction
        return ProrationEngine.round_to_cents(max(ZERO, net))

    @staticmethod
    def total_adjustments(
        overtime: Decimal = ZERO,
        reimbursements: Decimal = ZERO,
        bonuses: Decimal = ZERO,
    ) -> Decimal:
        return ProrationEngine.round_to_cents(overtime + reimbursements + bonuses)

    @staticmethod
    def total_deductions(deductions: Decimal = ZERO, tax_deduction: Decimal = ZERO) -> Decimal:
        return ProrationEngine.round_to_cents(deductions + tax_deduction)

    @staticmethod
    def net_payroll(
        total_salary: Decimal,
        overtime: Decimal = ZERO,
        reimbursements: Decimal = ZERO,
        bonuses: Decimal = ZERO,
        deductions: Decimal = ZERO,
        tax_deduction: Decimal = ZERO,
    ) -> Decimal:
        """Net pay: salary plus additions minus deductions and tax, never negative."""
        net = total_salary + overtime + reimbursements + bonuses - deductions - tax_deduction
        return ProrationEngine.round_to_cents(max(ZERO, net))

    # Calendar helpers

    @staticmethod
    def is_weekend(day: date, weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS) -> bool:
        return day.isoweekday() in set(weekend_days)

    @staticmethod
    def working_days_in_range(
        start: date,
        end: date,
        holidays: Iterable[date] = (),
        weekend_days: Iterable[int] = DEFAULT_WEEKEND_DAYS,
    ) -> int:
        """Count non-weekend, non-holiday days in ``[start, end]``."""
        if end < start:
            return 0
        holiday_set = set(holidays)
        weekend = set(weekend_days)
        count = 0
        current = start
        while current <= end:
            if current.isoweekday() not in weekend and current not in holiday_set:
                count += 1
            current += timedelta(days=1)
        return count

    @staticmethod
    def calendar_days(start: date, end: date) -> int:
        """Inclusive calendar day count, 0 for an empty range."""
        if end < start:
            return 0
        return (end - start).days + 1
