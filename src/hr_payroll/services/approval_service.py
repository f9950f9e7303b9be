"""Approval service - applies workflow transitions to financial records."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from hr_payroll.calculators.proration import ProrationEngine
from hr_payroll.errors import (
    EmployeeNotFound,
    InvalidStateTransition,
    NotFoundError,
    ValidationError,
)
from hr_payroll.models import Bonus, Deduction, Employee, Overtime, Payroll, Reimbursement
from hr_payroll.models.base import Base
from hr_payroll.services.state_machine import ApprovalStateMachine, RecordKind

if TYPE_CHECKING:
    from hr_payroll.services.scheduler import SyncKey
    from hr_payroll.services.sync_service import PayrollSyncService

logger = logging.getLogger(__name__)

MODELS: dict[RecordKind, type[Base]] = {
    RecordKind.PAYROLL: Payroll,
    RecordKind.BONUS: Bonus,
    RecordKind.DEDUCTION: Deduction,
    RecordKind.REIMBURSEMENT: Reimbursement,
    RecordKind.OVERTIME: Overtime,
}


def _primary_key(model: type[Base]) -> Any:
    return model.__mapper__.primary_key[0]


def parse_kind(kind: RecordKind | str) -> RecordKind:
    try:
        return RecordKind(kind)
    except ValueError:
        raise ValidationError(
            f"Unknown record kind '{kind}'",
            {"kind": str(kind), "allowed": [k.value for k in RecordKind]},
        ) from None


@dataclass
class TransitionResult:
    """Outcome of a successful transition."""

    kind: RecordKind
    record_id: UUID
    transition: str
    previous_status: str
    status: str
    record: Any
    sync_key: SyncKey | None = None


class ApprovalService:
    """Moves payroll, bonus, deduction, reimbursement and overtime records
    through their approval workflows.

    Each transition:
    1) Loads the record
    2) Validates the request against the kind's workflow
    3) Writes the new status with a conditional update on the status it read
    4) Schedules a payroll recompute for adjustment kinds
    """

    def __init__(
        self,
        session: AsyncSession,
        sync_service: PayrollSyncService | None = None,
    ):
        self.session = session
        self.sync_service = sync_service

    async def get_record(self, kind: RecordKind | str, record_id: UUID) -> Any:
        kind = parse_kind(kind)
        record = await self.session.get(MODELS[kind], record_id)
        if record is None:
            raise NotFoundError(kind.value.capitalize(), record_id)
        return record

    async def transition(
        self,
        kind: RecordKind | str,
        record_id: UUID,
        transition: str,
        actor_id: str,
        reason: str | None = None,
        reference: str | None = None,
    ) -> TransitionResult:
        """Apply ``transition`` to a record.

        Raises:
            ValidationError: Unknown kind or transition, blank actor, missing reason
            NotFoundError: Unknown record
            LockedRecordError: The record is in a locked status
            InvalidStateTransition: Not allowed from the current status, or the
                status changed while the transition was being applied
        """
        kind = parse_kind(kind)
        model = MODELS[kind]
        machine = ApprovalStateMachine.for_kind(kind)
        machine.check_request(transition, actor_id, reason)

        record = await self.get_record(kind, record_id)
        seen = record.status
        values = machine.plan(record, transition, actor_id, reason, reference, record_id=record_id)

        if kind is RecordKind.OVERTIME and transition == "approve" and record.amount is None:
            values["amount"] = await self._price_overtime(record)

        result = await self.session.execute(
            update(model)
            .where(_primary_key(model) == record_id, model.status == seen)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.refresh(record)
            raise InvalidStateTransition(
                kind.value,
                transition,
                record.status,
                expected=[seen],
                record_id=record_id,
                reason="status changed concurrently",
            )

        await self.session.commit()
        await self.session.refresh(record)
        logger.info(
            "%s %s: %s -> %s by %s",
            kind.value,
            record_id,
            seen,
            record.status,
            actor_id.strip(),
        )

        sync_key = self._after_transition(kind, record, record_id, transition)
        return TransitionResult(
            kind=kind,
            record_id=record_id,
            transition=transition,
            previous_status=seen,
            status=record.status,
            record=record,
            sync_key=sync_key,
        )

    async def finance_approve(
        self, kind: RecordKind | str, record_id: UUID, actor_id: str
    ) -> TransitionResult:
        return await self.transition(kind, record_id, "finance_approve", actor_id)

    async def management_approve(
        self, kind: RecordKind | str, record_id: UUID, actor_id: str
    ) -> TransitionResult:
        return await self.transition(kind, record_id, "management_approve", actor_id)

    async def hold(
        self, kind: RecordKind | str, record_id: UUID, actor_id: str, reason: str
    ) -> TransitionResult:
        return await self.transition(kind, record_id, "hold", actor_id, reason=reason)

    async def reject(
        self, kind: RecordKind | str, record_id: UUID, actor_id: str, reason: str
    ) -> TransitionResult:
        return await self.transition(kind, record_id, "reject", actor_id, reason=reason)

    async def _price_overtime(self, overtime: Overtime) -> Any:
        employee = await self.session.get(Employee, overtime.employee_id)
        if employee is None:
            raise EmployeeNotFound(overtime.employee_id)
        return ProrationEngine.overtime_pay(
            employee.base_salary,
            overtime.hours,
            is_rest_day_or_holiday=overtime.is_rest_day_or_holiday,
            is_night_work=overtime.is_night_work,
            use_compensatory_day=overtime.use_compensatory_day,
        )

    def _after_transition(
        self, kind: RecordKind, record: Any, record_id: UUID, transition: str
    ) -> SyncKey | None:
        """Payroll-affecting records schedule a recompute of their month."""
        if kind is RecordKind.PAYROLL:
            return None
        if self.sync_service is None:
            logger.debug("No sync service configured, %s %s not synced", kind.value, record_id)
            return None
        return self.sync_service.schedule_for_record(kind, record, record_id, action=transition)
