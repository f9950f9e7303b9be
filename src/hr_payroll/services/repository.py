"""Payroll persistence and approved-total lookups."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.models import Bonus, Deduction, Employee, Overtime, Payroll, Reimbursement
from hr_payroll.models.base import utcnow
from hr_payroll.services.state_machine import (
    BONUS_WORKFLOW,
    DEDUCTION_WORKFLOW,
    OVERTIME_WORKFLOW,
    REIMBURSEMENT_WORKFLOW,
)

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

PAYROLL_NATURAL_KEY = ["employee_id", "month", "year"]


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class PayrollRepository:
    """Natural-key access to Payroll rows plus monthly sums of approved adjustments."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_employee(self, employee_id: UUID) -> Employee | None:
        return await self.session.get(Employee, employee_id)

    async def get_payroll(self, payroll_id: UUID) -> Payroll | None:
        return await self.session.get(Payroll, payroll_id)

    async def find_payroll(self, employee_id: UUID, year: int, month: int) -> Payroll | None:
        result = await self.session.execute(
            select(Payroll)
            .where(
                Payroll.employee_id == employee_id,
                Payroll.year == year,
                Payroll.month == month,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert_payroll(
        self,
        employee_id: UUID,
        year: int,
        month: int,
        values: dict[str, Any],
    ) -> Payroll:
        """Insert or update the row for (employee, month, year) atomically.

        Concurrent upserts for the same key resolve to a single row.
        """
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise NotImplementedError(f"Payroll upsert is not supported on {dialect}")

        stmt = insert(Payroll).values(
            employee_id=employee_id, year=year, month=month, **values
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=PAYROLL_NATURAL_KEY,
            set_={**values, "updated_at": utcnow()},
        )
        await self.session.execute(stmt)

        payroll = await self.find_payroll(employee_id, year, month)
        if payroll is None:
            raise RuntimeError(f"Payroll upsert for {employee_id} {year}-{month:02d} lost its row")
        return payroll

    async def delete_payroll(self, employee_id: UUID, year: int, month: int) -> bool:
        """Delete the row for (employee, month, year). Returns True if a row was removed."""
        result = await self.session.execute(
            delete(Payroll).where(
                Payroll.employee_id == employee_id,
                Payroll.year == year,
                Payroll.month == month,
            )
        )
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info("Deleted payroll for %s %d-%02d", employee_id, year, month)
        return deleted

    async def sum_approved_overtime(self, employee_id: UUID, start: date, end: date) -> Decimal:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Overtime.amount), 0)).where(
                Overtime.employee_id == employee_id,
                Overtime.status.in_(OVERTIME_WORKFLOW.affecting),
                Overtime.work_date >= start,
                Overtime.work_date <= end,
            )
        )
        return _as_decimal(result.scalar_one())

    async def sum_approved_bonuses(self, employee_id: UUID, start: date, end: date) -> Decimal:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Bonus.amount), 0)).where(
                Bonus.employee_id == employee_id,
                Bonus.status.in_(BONUS_WORKFLOW.affecting),
                Bonus.bonus_date >= start,
                Bonus.bonus_date <= end,
            )
        )
        return _as_decimal(result.scalar_one())

    async def sum_approved_deductions(self, employee_id: UUID, start: date, end: date) -> Decimal:
        result = await self.session.execute(
            select(func.coalesce(func.sum(Deduction.amount), 0)).where(
                Deduction.employee_id == employee_id,
                Deduction.status.in_(DEDUCTION_WORKFLOW.affecting),
                Deduction.deduction_date >= start,
                Deduction.deduction_date <= end,
            )
        )
        return _as_decimal(result.scalar_one())

    async def sum_approved_reimbursements(
        self, employee_id: UUID, start: date, end: date
    ) -> Decimal:
        """Reimbursements count in the month they were submitted."""
        window_start = datetime.combine(start, time.min, tzinfo=timezone.utc)
        window_end = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc)
        result = await self.session.execute(
            select(func.coalesce(func.sum(Reimbursement.amount), 0)).where(
                Reimbursement.employee_id == employee_id,
                Reimbursement.status.in_(REIMBURSEMENT_WORKFLOW.affecting),
                Reimbursement.created_at >= window_start,
                Reimbursement.created_at < window_end,
            )
        )
        return _as_decimal(result.scalar_one())

    async def list_employees_active_in(
        self,
        start: date,
        end: date,
        employee_ids: list[UUID] | None = None,
    ) -> list[Employee]:
        """Employees whose employment overlaps ``[start, end]``.

        Employees without a join date are included so the calculation
        reports them instead of leaving them out of the month.
        """
        stmt = select(Employee).where(
            or_(Employee.join_date.is_(None), Employee.join_date <= end),
            or_(Employee.termination_date.is_(None), Employee.termination_date >= start),
        )
        if employee_ids:
            stmt = stmt.where(Employee.employee_id.in_(employee_ids))
        result = await self.session.execute(stmt.order_by(Employee.employee_number))
        return list(result.scalars().all())
