"""Type definitions for the payroll calculation pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class SalarySnapshot:
    """Base and total monthly salary in effect at some point in time."""

    base_salary: Decimal
    total_salary: Decimal


@dataclass(frozen=True)
class SalaryChangeRecord:
    """Approved salary change as read by the calculator."""

    effective_date: date
    new_base_salary: Decimal
    new_total_salary: Decimal
    old_base_salary: Decimal | None = None
    old_total_salary: Decimal | None = None

    @property
    def new_salary(self) -> SalarySnapshot:
        return SalarySnapshot(self.new_base_salary, self.new_total_salary)

    @property
    def old_salary(self) -> SalarySnapshot | None:
        if self.old_base_salary is None or self.old_total_salary is None:
            return None
        return SalarySnapshot(self.old_base_salary, self.old_total_salary)


@dataclass(frozen=True)
class UnpaidLeaveRecord:
    """Approved leave that is not paid (unpaid type or unpaid emergency leave)."""

    leave_request_id: UUID | None
    leave_type: str
    start_date: date
    end_date: date
    number_of_days: Decimal
    is_half_day: bool = False


@dataclass(frozen=True)
class ActivePeriod:
    """The part of a calendar month during which the employee was employed."""

    start_date: date
    end_date: date
    is_full_month: bool
    joined_mid_month: bool
    terminated_mid_month: bool

    @property
    def is_empty(self) -> bool:
        return self.end_date < self.start_date

    @property
    def calendar_days(self) -> int:
        if self.is_empty:
            return 0
        return (self.end_date - self.start_date).days + 1


@dataclass
class SalaryPeriod:
    """Contiguous run of days paid at one salary."""

    from_date: date
    to_date: date
    base_salary: Decimal
    total_salary: Decimal
    calendar_days: int
    working_days: int


@dataclass
class UnpaidLeaveDetail:
    """Unpaid days one leave request contributes to the month."""

    leave_request_id: UUID | None
    leave_type: str
    start_date: date
    end_date: date
    days: Decimal


@dataclass
class CalculationBreakdown:
    """Flags explaining why a month was prorated."""

    is_full_month: bool = False
    joined_mid_month: bool = False
    terminated_mid_month: bool = False
    salary_changed_mid_month: bool = False
    has_unpaid_leave: bool = False
    uses_mohre_standard: bool = True


@dataclass
class PayrollCalculation:
    """Result of calculating one employee's salary for one month."""

    employee_id: UUID
    year: int
    month: int

    # Salary in effect at the start of the month
    base_salary: Decimal
    total_salary: Decimal
    prorated_base_salary: Decimal
    prorated_total_salary: Decimal

    calendar_days_in_month: int
    calendar_days_worked: int
    # Reference only; pay never depends on working days
    working_days_in_month: int
    days_worked: int
    effective_working_days: Decimal

    unpaid_leave_days: Decimal
    unpaid_leave_deduction: Decimal
    prorata_factor: Decimal

    salary_periods: list[SalaryPeriod] = field(default_factory=list)
    unpaid_leave_details: list[UnpaidLeaveDetail] = field(default_factory=list)
    breakdown: CalculationBreakdown = field(default_factory=CalculationBreakdown)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ProrationDetails:
    """Human-readable explanation of a calculation."""

    is_prorated: bool
    reasons: list[str]
    summary: str
    percentage: Decimal
    original_total_salary: Decimal
    prorated_total_salary: Decimal
    prorata_factor: Decimal
    calendar_days_in_month: int
    calendar_days_worked: int

    @classmethod
    def from_calculation(cls, calculation: PayrollCalculation) -> ProrationDetails:
        """Derive proration reasons and a summary line from a calculation."""
        breakdown = calculation.breakdown
        reasons: list[str] = []
        if breakdown.joined_mid_month:
            reasons.append("Joined mid-month")
        if breakdown.terminated_mid_month:
            reasons.append("Terminated mid-month")
        if breakdown.salary_changed_mid_month:
            reasons.append("Salary changed within the month")
        if breakdown.has_unpaid_leave:
            reasons.append("Unpaid leave taken during the month")

        original = calculation.total_salary
        prorated = calculation.prorated_total_salary
        cents = Decimal("0.01")
        is_prorated = original.quantize(cents, rounding=ROUND_HALF_UP) != prorated.quantize(
            cents, rounding=ROUND_HALF_UP
        )
        if is_prorated and not reasons:
            reasons.append("Worked partial month based on calendar days")

        if original > 0:
            percentage = (prorated / original * 100).quantize(cents, rounding=ROUND_HALF_UP)
        else:
            percentage = Decimal("100.00")

        portion = (
            f"{calculation.calendar_days_worked}/{calculation.calendar_days_in_month} "
            "calendar days"
        )
        if is_prorated:
            summary = f"Prorated to {percentage}% of original salary ({portion})"
        elif reasons:
            summary = f"Prorated using multiple salary periods ({portion})"
        else:
            summary = "Full month salary"

        return cls(
            is_prorated=is_prorated,
            reasons=reasons,
            summary=summary,
            percentage=percentage,
            original_total_salary=original,
            prorated_total_salary=prorated,
            prorata_factor=calculation.prorata_factor,
            calendar_days_in_month=calculation.calendar_days_in_month,
            calendar_days_worked=calculation.calendar_days_worked,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
