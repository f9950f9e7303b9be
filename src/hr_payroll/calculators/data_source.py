"""Read-only lookups the payroll calculator depends on."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.types import SalaryChangeRecord, SalarySnapshot, UnpaidLeaveRecord
from hr_payroll.errors import CalculationDependencyError
from hr_payroll.models import (
    Holiday,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
    SalaryChange,
    SalaryChangeStatus,
)

logger = logging.getLogger(__name__)

UNPAID_COMPENSATION_METHOD = "unpaid"


class PayrollDataSource(Protocol):
    """Lookups needed to calculate one month of salary."""

    async def get_salary_before(self, employee_id: UUID, day: date) -> SalarySnapshot | None:
        """Salary set by the latest approved change effective before ``day``."""
        ...

    async def list_approved_salary_changes(
        self, employee_id: UUID, start: date, end: date
    ) -> list[SalaryChangeRecord]:
        """Approved changes effective within ``[start, end]``, oldest first."""
        ...

    async def list_approved_unpaid_leave(
        self, employee_id: UUID, start: date, end: date
    ) -> list[UnpaidLeaveRecord]:
        """Approved unpaid leave overlapping ``[start, end]``."""
        ...

    async def list_holidays(self, start: date, end: date) -> list[date]:
        """Every holiday day inside ``[start, end]``."""
        ...


class SqlPayrollDataSource:
    """PayrollDataSource backed by the ORM models.

    Query failures are raised as CalculationDependencyError so the
    calculator can decide which lookups it can do without.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch(self, dependency: str, stmt: Select[Any]) -> list[Any]:
        """Run a lookup inside a savepoint.

        A failed statement aborts the whole transaction on PostgreSQL, so
        each lookup only rolls back its own savepoint and the calculation
        can carry on without it.
        """
        try:
            async with self.session.begin_nested():
                result = await self.session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise CalculationDependencyError(dependency, cause=e) from e

    async def get_salary_before(self, employee_id: UUID, day: date) -> SalarySnapshot | None:
        stmt = (
            select(SalaryChange)
            .where(
                SalaryChange.employee_id == employee_id,
                SalaryChange.status == SalaryChangeStatus.APPROVED.value,
                SalaryChange.effective_date < day,
            )
            .order_by(SalaryChange.effective_date.desc())
            .limit(1)
        )
        rows = await self._fetch("salary_history", stmt)
        if not rows:
            return None
        return SalarySnapshot(rows[0].new_base_salary, rows[0].new_total_salary)

    async def list_approved_salary_changes(
        self, employee_id: UUID, start: date, end: date
    ) -> list[SalaryChangeRecord]:
        stmt = (
            select(SalaryChange)
            .where(
                SalaryChange.employee_id == employee_id,
                SalaryChange.status == SalaryChangeStatus.APPROVED.value,
                SalaryChange.effective_date >= start,
                SalaryChange.effective_date <= end,
            )
            .order_by(SalaryChange.effective_date, SalaryChange.created_at)
        )
        changes = await self._fetch("salary_changes", stmt)

        return [
            SalaryChangeRecord(
                effective_date=c.effective_date,
                new_base_salary=c.new_base_salary,
                new_total_salary=c.new_total_salary,
                old_base_salary=c.old_base_salary,
                old_total_salary=c.old_total_salary,
            )
            for c in changes
        ]

    async def list_approved_unpaid_leave(
        self, employee_id: UUID, start: date, end: date
    ) -> list[UnpaidLeaveRecord]:
        unpaid = or_(
            LeaveRequest.leave_type == LeaveType.UNPAID.value,
            and_(
                LeaveRequest.leave_type == LeaveType.EMERGENCY.value,
                func.lower(LeaveRequest.compensation_method) == UNPAID_COMPENSATION_METHOD,
            ),
        )
        stmt = (
            select(LeaveRequest)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
                unpaid,
            )
            .order_by(LeaveRequest.start_date)
        )
        leaves = await self._fetch("leave_requests", stmt)

        return [
            UnpaidLeaveRecord(
                leave_request_id=leave.leave_request_id,
                leave_type=leave.leave_type,
                start_date=leave.start_date,
                end_date=leave.end_date,
                number_of_days=leave.number_of_days,
                is_half_day=leave.is_half_day,
            )
            for leave in leaves
        ]

    async def list_holidays(self, start: date, end: date) -> list[date]:
        stmt = select(Holiday).where(Holiday.start_date <= end, Holiday.end_date >= start)
        holidays = await self._fetch("holidays", stmt)

        days: set[date] = set()
        for holiday in holidays:
            current = max(holiday.start_date, start)
            last = min(holiday.end_date, end)
            while current <= last:
                days.add(current)
                current += timedelta(days=1)
        logger.debug("Found %d holiday days between %s and %s", len(days), start, end)
        return sorted(days)
