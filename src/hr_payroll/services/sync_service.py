"""Payroll sync service - keeps monthly payroll rows in step with approvals."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_payroll.calculators.data_source import SqlPayrollDataSource
from hr_payroll.calculators.engine import PayrollCalculator, month_bounds
from hr_payroll.calculators.proration import ZERO, ProrationEngine
from hr_payroll.calculators.types import PayrollCalculation, ProrationDetails
from hr_payroll.config import get_settings
from hr_payroll.errors import (
    CalculationDependencyError,
    EmployeeNotFound,
    LockedRecordError,
    ValidationError,
)
from hr_payroll.events.notifier import LoggingNotifier, PayrollNotifier
from hr_payroll.events.types import EventMetadata, PayrollUpdated
from hr_payroll.models import Payroll, PayrollStatus
from hr_payroll.services.repository import PayrollRepository
from hr_payroll.services.scheduler import (
    DebounceScheduler,
    SyncKey,
    SyncOptions,
    SyncTrigger,
)
from hr_payroll.services.state_machine import PAYROLL_RESET_FIELDS, PAYROLL_WORKFLOW, RecordKind

logger = logging.getLogger(__name__)

# Cleared whenever a recompute resets the row to PENDING
_RECOMPUTE_CLEARED_FIELDS = PAYROLL_RESET_FIELDS + (
    "rejected_at",
    "rejected_by",
    "rejection_reason",
    "rejected_at_stage",
)


class SyncStatus(str, Enum):
    """Outcome of one recompute."""

    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    """Why a recompute left the payroll row alone."""

    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    EMPLOYEE_NOT_ACTIVE = "EMPLOYEE_NOT_ACTIVE"
    PAYROLL_LOCKED = "PAYROLL_LOCKED"
    CREATION_DISABLED = "CREATION_DISABLED"
    CALCULATION_FAILED = "CALCULATION_FAILED"


@dataclass
class SyncResult:
    """Result of recomputing one employee's payroll for one month."""

    status: SyncStatus
    employee_id: UUID
    year: int
    month: int
    reason: SkipReason | None = None
    payroll: Payroll | None = None
    calculation: PayrollCalculation | None = None
    triggers: list[SyncTrigger] = field(default_factory=list)
    message: str | None = None

    @property
    def skipped(self) -> bool:
        return self.status is SyncStatus.SKIPPED

    @classmethod
    def skip(
        cls,
        reason: SkipReason,
        employee_id: UUID,
        year: int,
        month: int,
        triggers: list[SyncTrigger] | None = None,
        payroll: Payroll | None = None,
        message: str | None = None,
    ) -> SyncResult:
        return cls(
            status=SyncStatus.SKIPPED,
            employee_id=employee_id,
            year=year,
            month=month,
            reason=reason,
            payroll=payroll,
            triggers=list(triggers or []),
            message=message,
        )


@dataclass
class GenerationSummary:
    """Result of generating payroll for a whole month."""

    year: int
    month: int
    created: list[SyncResult] = field(default_factory=list)
    updated: list[SyncResult] = field(default_factory=list)
    skipped: list[SyncResult] = field(default_factory=list)

    def add(self, result: SyncResult) -> None:
        if result.status is SyncStatus.CREATED:
            self.created.append(result)
        elif result.status is SyncStatus.UPDATED:
            self.updated.append(result)
        else:
            self.skipped.append(result)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.updated) + len(self.skipped)


def _record_payroll_date(kind: RecordKind, record: Any) -> date | None:
    """The date that places an adjustment in a payroll month."""
    if kind is RecordKind.BONUS:
        return record.bonus_date
    if kind is RecordKind.DEDUCTION:
        return record.deduction_date
    if kind is RecordKind.OVERTIME:
        return record.work_date
    if kind is RecordKind.REIMBURSEMENT:
        created: datetime | None = record.created_at
        return created.date() if created is not None else None
    return None


class PayrollSyncService:
    """Recomputes payroll rows when the records feeding them change.

    Operations:
    - schedule / schedule_for_record: debounced recompute per employee-month
    - run: recompute now and upsert the row
    - generate_for_month: batch creation for every active employee
    - regenerate: delete and recreate one unlocked row
    - calculate: read-only preview of the salary calculation
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: PayrollNotifier | None = None,
        delay_seconds: float | None = None,
        weekend_days: Iterable[int] | None = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.notifier = notifier or LoggingNotifier()
        self.weekend_days = frozenset(
            weekend_days if weekend_days is not None else settings.weekend_days
        )
        if delay_seconds is None:
            delay_seconds = settings.sync_delay_seconds
        self.scheduler = DebounceScheduler(self._run_scheduled, delay_seconds)

    # Scheduling

    def schedule(
        self,
        employee_id: UUID,
        year: int,
        month: int,
        trigger: SyncTrigger | None = None,
        allow_create: bool = True,
        force_regenerate: bool = False,
        emit_event: bool = True,
    ) -> SyncKey:
        """Request a recompute after the debounce window. Returns immediately."""
        month_bounds(year, month)
        key: SyncKey = (employee_id, year, month)
        self.scheduler.schedule(
            key,
            trigger,
            SyncOptions(
                allow_create=allow_create,
                force_regenerate=force_regenerate,
                emit_event=emit_event,
            ),
        )
        return key

    def schedule_for_record(
        self,
        kind: RecordKind | str,
        record: Any,
        record_id: Any = None,
        action: str | None = None,
    ) -> SyncKey | None:
        """Schedule a recompute for the month an adjustment record falls in."""
        kind = RecordKind(kind)
        if kind is RecordKind.PAYROLL:
            return None
        payroll_date = _record_payroll_date(kind, record)
        if payroll_date is None:
            logger.warning("Cannot place %s %s in a payroll month", kind.value, record_id)
            return None

        trigger = SyncTrigger(
            type=kind.value,
            record_id=str(record_id) if record_id is not None else None,
            action=action,
            status=record.status,
        )
        return self.schedule(record.employee_id, payroll_date.year, payroll_date.month, trigger)

    async def _run_scheduled(
        self, key: SyncKey, triggers: list[SyncTrigger], options: SyncOptions
    ) -> SyncResult:
        employee_id, year, month = key
        result = await self.run(employee_id, year, month, triggers=triggers, options=options)
        if result.skipped:
            logger.info(
                "Payroll sync %s:%d:%d skipped: %s",
                employee_id,
                year,
                month,
                result.reason.value if result.reason else "unknown",
            )
        return result

    # Recompute

    async def run(
        self,
        employee_id: UUID,
        year: int,
        month: int,
        triggers: list[SyncTrigger] | None = None,
        options: SyncOptions | None = None,
    ) -> SyncResult:
        """Recompute and upsert the payroll row for one employee-month."""
        options = options or SyncOptions()
        triggers = list(triggers or [])

        async with self.session_factory() as session:
            try:
                result = await self._recompute(session, employee_id, year, month, triggers, options)
                await session.commit()
            except (ValidationError, CalculationDependencyError, SQLAlchemyError) as e:
                await session.rollback()
                logger.warning(
                    "Payroll sync %s:%d:%d failed: %s", employee_id, year, month, e
                )
                return SyncResult.skip(
                    SkipReason.CALCULATION_FAILED,
                    employee_id,
                    year,
                    month,
                    triggers,
                    message=str(e),
                )

        if not result.skipped and options.emit_event:
            await self._notify(result)
        return result

    async def _recompute(
        self,
        session: AsyncSession,
        employee_id: UUID,
        year: int,
        month: int,
        triggers: list[SyncTrigger],
        options: SyncOptions,
    ) -> SyncResult:
        repo = PayrollRepository(session)

        employee = await repo.get_employee(employee_id)
        if employee is None:
            return SyncResult.skip(
                SkipReason.EMPLOYEE_NOT_FOUND, employee_id, year, month, triggers
            )

        existing = await repo.find_payroll(employee_id, year, month)
        if existing is not None and existing.status in PAYROLL_WORKFLOW.recompute_locked:
            return SyncResult.skip(
                SkipReason.PAYROLL_LOCKED,
                employee_id,
                year,
                month,
                triggers,
                payroll=existing,
                message=f"Payroll is {existing.status}",
            )

        if existing is not None and options.force_regenerate:
            await repo.delete_payroll(employee_id, year, month)
            existing = None

        if existing is None and not options.allow_create:
            return SyncResult.skip(
                SkipReason.CREATION_DISABLED, employee_id, year, month, triggers
            )

        calculator = PayrollCalculator(SqlPayrollDataSource(session), self.weekend_days)
        calculation = await calculator.calculate(employee, year, month)

        start, end = month_bounds(year, month)
        overtime = await repo.sum_approved_overtime(employee_id, start, end)
        reimbursements = await repo.sum_approved_reimbursements(employee_id, start, end)
        bonuses = await repo.sum_approved_bonuses(employee_id, start, end)
        deductions = await repo.sum_approved_deductions(employee_id, start, end)
        tax = ZERO

        values: dict[str, Any] = dict.fromkeys(_RECOMPUTE_CLEARED_FIELDS)
        values.update(
            base_salary=calculation.prorated_base_salary,
            total_salary=calculation.prorated_total_salary,
            allowances=ProrationEngine.total_adjustments(overtime, reimbursements, bonuses),
            deductions=ProrationEngine.total_deductions(deductions, tax),
            tax_deduction=tax,
            net_salary=ProrationEngine.net_payroll(
                calculation.prorated_total_salary,
                overtime,
                reimbursements,
                bonuses,
                deductions,
                tax,
            ),
            status=PayrollStatus.PENDING.value,
            on_hold_history=[],
        )
        payroll = await repo.upsert_payroll(employee_id, year, month, values)

        status = SyncStatus.CREATED if existing is None else SyncStatus.UPDATED
        logger.info(
            "Payroll %s for %s %d-%02d: net=%s (%d trigger(s))",
            status.value,
            employee_id,
            year,
            month,
            payroll.net_salary,
            len(triggers),
        )
        return SyncResult(
            status=status,
            employee_id=employee_id,
            year=year,
            month=month,
            payroll=payroll,
            calculation=calculation,
            triggers=triggers,
        )

    async def _notify(self, result: SyncResult) -> None:
        payroll = result.payroll
        if payroll is None:
            return
        calculation = result.calculation
        event = PayrollUpdated(
            metadata=EventMetadata.create(
                actor_type="scheduler" if result.triggers else "system",
            ),
            payroll_id=payroll.payroll_id,
            employee_id=payroll.employee_id,
            year=payroll.year,
            month=payroll.month,
            status=payroll.status,
            sync_status=result.status.value,
            payroll=payroll.to_dict(),
            calculation=calculation.to_dict() if calculation else None,
            proration=(
                ProrationDetails.from_calculation(calculation).to_dict() if calculation else None
            ),
            triggers=[t.to_dict() for t in result.triggers],
        )
        try:
            await self.notifier.payroll_updated(event)
        except Exception:
            logger.exception("Notifier failed for payroll %s", payroll.payroll_id)

    # Batch and manual operations

    async def generate_for_month(
        self,
        year: int,
        month: int,
        employee_ids: list[UUID] | None = None,
        force_regenerate: bool = False,
    ) -> GenerationSummary:
        """Create or refresh payroll rows for every employee active in the month.

        One employee's failure is reported as skipped and never stops the batch.
        """
        start, end = month_bounds(year, month)
        summary = GenerationSummary(year=year, month=month)

        async with self.session_factory() as session:
            employees = await PayrollRepository(session).list_employees_active_in(
                start, end, employee_ids
            )
        active_ids = [e.employee_id for e in employees]

        for missing in [i for i in employee_ids or [] if i not in set(active_ids)]:
            summary.add(
                SyncResult.skip(
                    SkipReason.EMPLOYEE_NOT_ACTIVE,
                    missing,
                    year,
                    month,
                    message="Employee not found or not active in the period",
                )
            )

        trigger = SyncTrigger(type="generation", action="generate")
        options = SyncOptions(allow_create=True, force_regenerate=force_regenerate)
        for employee_id in active_ids:
            try:
                result = await self.run(employee_id, year, month, [trigger], options)
            except Exception as e:
                logger.exception("Payroll generation failed for %s", employee_id)
                result = SyncResult.skip(
                    SkipReason.CALCULATION_FAILED,
                    employee_id,
                    year,
                    month,
                    [trigger],
                    message=str(e),
                )
            summary.add(result)

        logger.info(
            "Generated payroll %d-%02d: %d created, %d updated, %d skipped",
            year,
            month,
            len(summary.created),
            len(summary.updated),
            len(summary.skipped),
        )
        return summary

    async def regenerate(
        self,
        employee_id: UUID,
        year: int,
        month: int,
        actor_id: str | None = None,
    ) -> SyncResult:
        """Delete and recreate an unlocked payroll row.

        Raises:
            EmployeeNotFound: Unknown employee
            LockedRecordError: The row is uploaded to the bank or paid
        """
        month_bounds(year, month)
        async with self.session_factory() as session:
            repo = PayrollRepository(session)
            if await repo.get_employee(employee_id) is None:
                raise EmployeeNotFound(employee_id)
            existing = await repo.find_payroll(employee_id, year, month)
            if existing is not None and existing.status in PAYROLL_WORKFLOW.recompute_locked:
                raise LockedRecordError(
                    RecordKind.PAYROLL.value,
                    existing.status,
                    transition="regenerate",
                    record_id=existing.payroll_id,
                )

        logger.info(
            "Regenerating payroll for %s %d-%02d (requested by %s)",
            employee_id,
            year,
            month,
            actor_id or "system",
        )
        trigger = SyncTrigger(type="manual", action="regenerate")
        return await self.run(
            employee_id,
            year,
            month,
            [trigger],
            SyncOptions(allow_create=True, force_regenerate=True),
        )

    async def calculate(
        self, employee_id: UUID, year: int, month: int
    ) -> tuple[PayrollCalculation, ProrationDetails]:
        """Calculate without writing anything."""
        async with self.session_factory() as session:
            employee = await PayrollRepository(session).get_employee(employee_id)
            if employee is None:
                raise EmployeeNotFound(employee_id)
            calculator = PayrollCalculator(SqlPayrollDataSource(session), self.weekend_days)
            calculation = await calculator.calculate(employee, year, month)
        return calculation, ProrationDetails.from_calculation(calculation)

    async def wait_idle(self) -> None:
        await self.scheduler.wait_idle()

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
