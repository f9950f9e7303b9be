"""Payroll calculator - prorates one employee's salary over a calendar month."""

from __future__ import annotations

import calendar
import logging
from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from hr_payroll.calculators.data_source import PayrollDataSource
from hr_payroll.calculators.proration import ZERO, ProrationEngine
from hr_payroll.calculators.types import (
    ActivePeriod,
    CalculationBreakdown,
    PayrollCalculation,
    SalaryChangeRecord,
    SalaryPeriod,
    SalarySnapshot,
    UnpaidLeaveDetail,
)
from hr_payroll.config import get_settings
from hr_payroll.errors import CalculationDependencyError, ValidationError

if TYPE_CHECKING:
    from hr_payroll.models import Employee

logger = logging.getLogger(__name__)

HALF_DAY = Decimal("0.5")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}", {"month": month})
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def active_period(
    join_date: date,
    termination_date: date | None,
    year: int,
    month: int,
) -> ActivePeriod:
    """Clip the employment window to the month (inclusive on both ends).

    The result is empty (end before start) when the employee joined after
    the month or left before it.
    """
    month_start, month_end = month_bounds(year, month)
    start = max(join_date, month_start)
    end = month_end
    if termination_date is not None:
        end = min(termination_date, month_end)

    return ActivePeriod(
        start_date=start,
        end_date=end,
        is_full_month=start == month_start and end == month_end,
        joined_mid_month=join_date > month_start,
        terminated_mid_month=termination_date is not None and termination_date < month_end,
    )


class PayrollCalculator:
    """Calculates a month of salary for one employee.

    Pipeline:
    1) Resolve the active window inside the month
    2) Resolve the salary in effect on the first of the month
    3) Split the window into salary periods at approved salary changes
    4) Pay a flat month, or /30 per calendar day of each period
    5) Subtract unpaid leave at the weighted /30 daily rate
    6) Clamp at zero and round to cents
    """

    def __init__(
        self,
        data_source: PayrollDataSource,
        weekend_days: Iterable[int] | None = None,
    ):
        self.data_source = data_source
        if weekend_days is None:
            weekend_days = get_settings().weekend_days
        self.weekend_days = frozenset(weekend_days)

    async def calculate(self, employee: Employee, year: int, month: int) -> PayrollCalculation:
        """Calculate prorated base and total salary for ``employee`` in ``year``/``month``.

        Raises:
            ValidationError: If the employee has no join date or the month is invalid
        """
        if employee.join_date is None:
            raise ValidationError(
                f"Employee {employee.employee_id} has no join date",
                {"employee_id": str(employee.employee_id)},
            )

        month_start, month_end = month_bounds(year, month)
        days_in_month = (month_end - month_start).days + 1
        warnings: list[str] = []

        holidays = await self._load_holidays(month_start, month_end, warnings)
        working_days_in_month = ProrationEngine.working_days_in_range(
            month_start, month_end, holidays, self.weekend_days
        )

        active = active_period(employee.join_date, employee.termination_date, year, month)
        changes = await self.data_source.list_approved_salary_changes(
            employee.employee_id, month_start, month_end
        )
        opening = await self._opening_salary(employee, month_start, changes, warnings)

        if active.is_empty:
            logger.debug(
                "Employee %s not active in %d-%02d", employee.employee_id, year, month
            )
            return self._empty_result(
                employee, year, month, opening, active, days_in_month, working_days_in_month
            )

        periods = self._salary_periods(active, opening, changes, holidays)
        unpaid_days, leave_details = await self._unpaid_leave(
            employee, month_start, month_end, warnings
        )

        if active.is_full_month and len(periods) == 1 and unpaid_days == ZERO:
            prorated_base = periods[0].base_salary
            prorated_total = periods[0].total_salary
        else:
            prorated_base = sum(
                (p.base_salary / ProrationEngine.MOHRE_DAYS_PER_MONTH * p.calendar_days
                 for p in periods),
                ZERO,
            )
            prorated_total = sum(
                (p.total_salary / ProrationEngine.MOHRE_DAYS_PER_MONTH * p.calendar_days
                 for p in periods),
                ZERO,
            )

        unpaid_deduction = ZERO
        if unpaid_days > ZERO:
            # Weighted against the whole month, not the active window
            weighted_total = sum(
                (p.total_salary * p.calendar_days / days_in_month for p in periods), ZERO
            )
            daily = weighted_total / ProrationEngine.MOHRE_DAYS_PER_MONTH
            unpaid_deduction = daily * unpaid_days
            ratio = prorated_base / prorated_total if prorated_total > ZERO else Decimal("1")
            prorated_total -= unpaid_deduction
            prorated_base -= unpaid_deduction * ratio

        days_worked = ProrationEngine.working_days_in_range(
            active.start_date, active.end_date, holidays, self.weekend_days
        )
        calendar_days_worked = active.calendar_days

        return PayrollCalculation(
            employee_id=employee.employee_id,
            year=year,
            month=month,
            base_salary=opening.base_salary,
            total_salary=opening.total_salary,
            prorated_base_salary=ProrationEngine.round_to_cents(max(ZERO, prorated_base)),
            prorated_total_salary=ProrationEngine.round_to_cents(max(ZERO, prorated_total)),
            calendar_days_in_month=days_in_month,
            calendar_days_worked=calendar_days_worked,
            working_days_in_month=working_days_in_month,
            days_worked=days_worked,
            effective_working_days=max(ZERO, Decimal(days_worked) - unpaid_days),
            unpaid_leave_days=unpaid_days,
            unpaid_leave_deduction=ProrationEngine.round_to_cents(unpaid_deduction),
            prorata_factor=ProrationEngine.round_ratio(
                Decimal(calendar_days_worked) / Decimal(days_in_month)
            ),
            salary_periods=periods,
            unpaid_leave_details=leave_details,
            breakdown=CalculationBreakdown(
                is_full_month=active.is_full_month and unpaid_days == ZERO,
                joined_mid_month=active.joined_mid_month,
                terminated_mid_month=active.terminated_mid_month,
                salary_changed_mid_month=len(periods) > 1,
                has_unpaid_leave=unpaid_days > ZERO,
            ),
            warnings=warnings,
        )

    async def _load_holidays(
        self, start: date, end: date, warnings: list[str]
    ) -> list[date]:
        try:
            return await self.data_source.list_holidays(start, end)
        except CalculationDependencyError as e:
            logger.warning("Holiday lookup failed, assuming no holidays: %s", e)
            warnings.append(e.message)
            return []

    async def _opening_salary(
        self,
        employee: Employee,
        month_start: date,
        changes: list[SalaryChangeRecord],
        warnings: list[str],
    ) -> SalarySnapshot:
        """Salary in effect on the first day of the month."""
        try:
            previous = await self.data_source.get_salary_before(employee.employee_id, month_start)
        except CalculationDependencyError as e:
            logger.warning("Salary history lookup failed, using current salary: %s", e)
            warnings.append(e.message)
            previous = None

        if previous is not None:
            return previous
        if changes and changes[0].old_salary is not None:
            return changes[0].old_salary
        return SalarySnapshot(employee.base_salary, employee.total_salary)

    def _salary_periods(
        self,
        active: ActivePeriod,
        opening: SalarySnapshot,
        changes: list[SalaryChangeRecord],
        holidays: list[date],
    ) -> list[SalaryPeriod]:
        """Partition the active window at each approved salary change."""
        bounds: list[tuple[date, date, SalarySnapshot]] = []
        current_start = active.start_date
        current = opening

        for change in changes:
            if change.effective_date > active.end_date:
                break
            if change.effective_date > current_start:
                bounds.append((current_start, change.effective_date - timedelta(days=1), current))
                current_start = change.effective_date
            current = change.new_salary

        bounds.append((current_start, active.end_date, current))

        return [
            SalaryPeriod(
                from_date=start,
                to_date=end,
                base_salary=salary.base_salary,
                total_salary=salary.total_salary,
                calendar_days=ProrationEngine.calendar_days(start, end),
                working_days=ProrationEngine.working_days_in_range(
                    start, end, holidays, self.weekend_days
                ),
            )
            for start, end, salary in bounds
        ]

    async def _unpaid_leave(
        self,
        employee: Employee,
        month_start: date,
        month_end: date,
        warnings: list[str],
    ) -> tuple[Decimal, list[UnpaidLeaveDetail]]:
        try:
            leaves = await self.data_source.list_approved_unpaid_leave(
                employee.employee_id, month_start, month_end
            )
        except CalculationDependencyError as e:
            logger.warning("Leave lookup failed, assuming no unpaid leave: %s", e)
            warnings.append(e.message)
            return ZERO, []

        total = ZERO
        details: list[UnpaidLeaveDetail] = []
        for leave in leaves:
            overlap = ProrationEngine.calendar_days(
                max(leave.start_date, month_start), min(leave.end_date, month_end)
            )
            if overlap <= 0:
                continue
            if leave.is_half_day:
                days = HALF_DAY
            else:
                days = min(Decimal(leave.number_of_days), Decimal(overlap))
            if days <= ZERO:
                continue
            total += days
            details.append(
                UnpaidLeaveDetail(
                    leave_request_id=leave.leave_request_id,
                    leave_type=leave.leave_type,
                    start_date=leave.start_date,
                    end_date=leave.end_date,
                    days=days,
                )
            )
        return total, details

    def _empty_result(
        self,
        employee: Employee,
        year: int,
        month: int,
        opening: SalarySnapshot,
        active: ActivePeriod,
        days_in_month: int,
        working_days_in_month: int,
    ) -> PayrollCalculation:
        return PayrollCalculation(
            employee_id=employee.employee_id,
            year=year,
            month=month,
            base_salary=opening.base_salary,
            total_salary=opening.total_salary,
            prorated_base_salary=ZERO,
            prorated_total_salary=ZERO,
            calendar_days_in_month=days_in_month,
            calendar_days_worked=0,
            working_days_in_month=working_days_in_month,
            days_worked=0,
            effective_working_days=ZERO,
            unpaid_leave_days=ZERO,
            unpaid_leave_deduction=ZERO,
            prorata_factor=ZERO,
            breakdown=CalculationBreakdown(
                joined_mid_month=active.joined_mid_month,
                terminated_mid_month=active.terminated_mid_month,
            ),
        )
