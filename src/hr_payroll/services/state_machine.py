"""Approval workflow state machine with per-kind transition tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from hr_payroll.errors import InvalidStateTransition, LockedRecordError, ValidationError
from hr_payroll.models.base import utcnow
from hr_payroll.models.enums import (
    BonusStatus,
    DeductionStatus,
    OvertimeStatus,
    PayrollStatus,
    ReimbursementStatus,
)


class RecordKind(str, Enum):
    """Kinds of records that move through an approval workflow."""

    PAYROLL = "payroll"
    BONUS = "bonus"
    REIMBURSEMENT = "reimbursement"
    DEDUCTION = "deduction"
    OVERTIME = "overtime"


class TransitionEffect(str, Enum):
    """What a transition does besides changing status."""

    FORWARD = "forward"
    HOLD = "hold"
    REJECT = "reject"
    # Payroll only: rejection sends the record back to the start
    RESET = "reset"


@dataclass(frozen=True)
class Transition:
    """A named edge in a workflow graph."""

    name: str
    sources: frozenset[str]
    target: str
    effect: TransitionEffect = TransitionEffect.FORWARD
    # Column prefix stamped with <stamp>_at / <stamp>_by
    stamp: str | None = None
    reference_field: str | None = None

    @property
    def requires_reason(self) -> bool:
        return self.effect is not TransitionEffect.FORWARD


@dataclass(frozen=True)
class WorkflowDefinition:
    """Status graph for one record kind."""

    kind: RecordKind
    initial: str
    transitions: dict[str, Transition]
    # Terminal statuses that reject every transition
    locked: frozenset[str]
    # Statuses whose amounts count toward the monthly payroll
    affecting: frozenset[str] = frozenset()
    supports_hold: bool = True
    # Payroll only: fields cleared when a rejection resets the workflow
    reset_fields: tuple[str, ...] = ()
    keeps_hold_history: bool = False
    # Payroll only: statuses a recompute may not touch
    recompute_locked: frozenset[str] = field(default_factory=frozenset)

    def get(self, name: str) -> Transition:
        try:
            return self.transitions[name]
        except KeyError:
            raise ValidationError(
                f"Unknown transition '{name}' for {self.kind.value}",
                {"transition": name, "allowed": sorted(self.transitions)},
            ) from None


HOLD_FIELDS = ("on_hold_at", "on_hold_by", "on_hold_reason")

PAYROLL_RESET_FIELDS = (
    "finance_approved_at",
    "finance_approved_by",
    "management_approved_at",
    "management_approved_by",
    "uploaded_to_bank_at",
    "uploaded_to_bank_by",
    "bank_upload_reference",
    "bank_payment_approved_at",
    "bank_payment_approved_by",
    "bank_payment_reference",
) + HOLD_FIELDS


def _adjustment_workflow(
    kind: RecordKind,
    statuses: type[Enum],
    third: tuple[str, str, str | None],
    fourth: tuple[str, str, str | None],
    affecting: frozenset[str],
) -> WorkflowDefinition:
    """Build the PENDING -> FINANCE -> MANAGEMENT -> third -> fourth workflow."""
    pending = statuses.PENDING.value
    finance = statuses.FINANCE_APPROVED.value
    management = statuses.MANAGEMENT_APPROVED.value
    on_hold = statuses.ON_HOLD.value
    rejected = statuses.REJECTED.value
    third_name, third_status, third_ref = third
    fourth_name, fourth_status, fourth_ref = fourth

    open_statuses = frozenset({pending, finance, management, third_status, on_hold})
    third_stamp = {
        "ready_for_payroll": "ready_for_payroll",
        "upload_to_bank": "uploaded_to_bank",
    }[third_name]
    fourth_stamp = {
        "apply_to_payroll": "applied_to_payroll",
        "mark_paid": "paid",
    }[fourth_name]

    transitions = [
        Transition(
            "finance_approve", frozenset({pending, on_hold}), finance, stamp="finance_approved"
        ),
        Transition(
            "management_approve", frozenset({finance}), management, stamp="management_approved"
        ),
        Transition(
            third_name,
            frozenset({management}),
            third_status,
            stamp=third_stamp,
            reference_field=third_ref,
        ),
        Transition(
            fourth_name,
            frozenset({third_status}),
            fourth_status,
            stamp=fourth_stamp,
            reference_field=fourth_ref,
        ),
        Transition("hold", open_statuses, on_hold, effect=TransitionEffect.HOLD),
        Transition("reject", open_statuses, rejected, effect=TransitionEffect.REJECT),
    ]
    return WorkflowDefinition(
        kind=kind,
        initial=pending,
        transitions={t.name: t for t in transitions},
        locked=frozenset({fourth_status}),
        affecting=affecting,
    )


BONUS_WORKFLOW = _adjustment_workflow(
    RecordKind.BONUS,
    BonusStatus,
    ("ready_for_payroll", BonusStatus.READY_FOR_PAYROLL.value, "payroll_reference"),
    ("apply_to_payroll", BonusStatus.APPLIED_TO_PAYROLL.value, "payroll_reference"),
    frozenset(
        {
            BonusStatus.MANAGEMENT_APPROVED.value,
            BonusStatus.READY_FOR_PAYROLL.value,
            BonusStatus.APPLIED_TO_PAYROLL.value,
        }
    ),
)

DEDUCTION_WORKFLOW = _adjustment_workflow(
    RecordKind.DEDUCTION,
    DeductionStatus,
    ("ready_for_payroll", DeductionStatus.READY_FOR_PAYROLL.value, "payroll_reference"),
    ("apply_to_payroll", DeductionStatus.APPLIED_TO_PAYROLL.value, "payroll_reference"),
    frozenset(
        {
            DeductionStatus.MANAGEMENT_APPROVED.value,
            DeductionStatus.READY_FOR_PAYROLL.value,
            DeductionStatus.APPLIED_TO_PAYROLL.value,
        }
    ),
)

REIMBURSEMENT_WORKFLOW = _adjustment_workflow(
    RecordKind.REIMBURSEMENT,
    ReimbursementStatus,
    ("upload_to_bank", ReimbursementStatus.UPLOADED_TO_BANK.value, "bank_upload_reference"),
    ("mark_paid", ReimbursementStatus.PAID.value, "bank_payment_reference"),
    frozenset(
        {
            ReimbursementStatus.MANAGEMENT_APPROVED.value,
            ReimbursementStatus.UPLOADED_TO_BANK.value,
            ReimbursementStatus.PAID.value,
        }
    ),
)

PAYROLL_WORKFLOW = WorkflowDefinition(
    kind=RecordKind.PAYROLL,
    initial=PayrollStatus.PENDING.value,
    transitions={
        t.name: t
        for t in [
            Transition(
                "finance_approve",
                frozenset({PayrollStatus.PENDING.value, PayrollStatus.ON_HOLD.value}),
                PayrollStatus.FINANCE_APPROVED.value,
                stamp="finance_approved",
            ),
            Transition(
                "management_approve",
                frozenset({PayrollStatus.FINANCE_APPROVED.value}),
                PayrollStatus.MANAGEMENT_APPROVED.value,
                stamp="management_approved",
            ),
            Transition(
                "upload_to_bank",
                frozenset({PayrollStatus.MANAGEMENT_APPROVED.value}),
                PayrollStatus.UPLOADED_TO_BANK.value,
                stamp="uploaded_to_bank",
                reference_field="bank_upload_reference",
            ),
            Transition(
                "approve_bank_payment",
                frozenset({PayrollStatus.UPLOADED_TO_BANK.value}),
                PayrollStatus.BANK_PAYMENT_APPROVED.value,
                stamp="bank_payment_approved",
                reference_field="bank_payment_reference",
            ),
            Transition(
                "hold",
                frozenset(
                    {
                        PayrollStatus.PENDING.value,
                        PayrollStatus.FINANCE_APPROVED.value,
                        PayrollStatus.MANAGEMENT_APPROVED.value,
                        PayrollStatus.ON_HOLD.value,
                    }
                ),
                PayrollStatus.ON_HOLD.value,
                effect=TransitionEffect.HOLD,
            ),
            Transition(
                "reject",
                frozenset(
                    {
                        PayrollStatus.FINANCE_APPROVED.value,
                        PayrollStatus.MANAGEMENT_APPROVED.value,
                        PayrollStatus.UPLOADED_TO_BANK.value,
                    }
                ),
                PayrollStatus.PENDING.value,
                effect=TransitionEffect.RESET,
            ),
        ]
    },
    locked=frozenset({PayrollStatus.BANK_PAYMENT_APPROVED.value}),
    reset_fields=PAYROLL_RESET_FIELDS,
    keeps_hold_history=True,
    recompute_locked=frozenset(
        {PayrollStatus.UPLOADED_TO_BANK.value, PayrollStatus.BANK_PAYMENT_APPROVED.value}
    ),
)

OVERTIME_WORKFLOW = WorkflowDefinition(
    kind=RecordKind.OVERTIME,
    initial=OvertimeStatus.PENDING.value,
    transitions={
        "approve": Transition(
            "approve",
            frozenset({OvertimeStatus.PENDING.value}),
            OvertimeStatus.APPROVED.value,
            stamp="approved",
        ),
        "reject": Transition(
            "reject",
            frozenset({OvertimeStatus.PENDING.value}),
            OvertimeStatus.REJECTED.value,
            effect=TransitionEffect.REJECT,
        ),
    },
    locked=frozenset({OvertimeStatus.APPROVED.value}),
    affecting=frozenset({OvertimeStatus.APPROVED.value}),
    supports_hold=False,
)

WORKFLOWS: dict[RecordKind, WorkflowDefinition] = {
    RecordKind.PAYROLL: PAYROLL_WORKFLOW,
    RecordKind.BONUS: BONUS_WORKFLOW,
    RecordKind.DEDUCTION: DEDUCTION_WORKFLOW,
    RecordKind.REIMBURSEMENT: REIMBURSEMENT_WORKFLOW,
    RecordKind.OVERTIME: OVERTIME_WORKFLOW,
}


class ApprovalStateMachine:
    """Validates transitions and computes the column changes they make.

    Every kind shares the same rules:
    - The actor is mandatory, and so is a reason for hold and reject
    - Locked statuses accept no transition at all
    - A transition is only valid from its source statuses
    - Forward progress clears the current hold
    """

    def __init__(self, definition: WorkflowDefinition):
        self.definition = definition

    @classmethod
    def for_kind(cls, kind: RecordKind | str) -> ApprovalStateMachine:
        return cls(WORKFLOWS[RecordKind(kind)])

    @property
    def kind(self) -> RecordKind:
        return self.definition.kind

    def is_locked(self, status: str) -> bool:
        return status in self.definition.locked

    def can_transition(self, status: str, transition: str) -> bool:
        """Check if ``transition`` is allowed from ``status``."""
        t = self.definition.transitions.get(transition)
        if t is None or self.is_locked(status):
            return False
        return status in t.sources

    def get_next_transitions(self, status: str) -> list[str]:
        """Names of the transitions allowed from ``status``."""
        return [name for name in self.definition.transitions if self.can_transition(status, name)]

    def counts_toward_payroll(self, status: str) -> bool:
        return status in self.definition.affecting

    def check_request(
        self, transition: str, actor_id: str | None, reason: str | None = None
    ) -> Transition:
        """Checks that don't depend on the record: known transition, actor, reason.

        Raises:
            ValidationError: Unknown transition, blank actor or missing reason
        """
        t = self.definition.get(transition)

        if not actor_id or not actor_id.strip():
            raise ValidationError("actor_id is required", {"field": "actor_id"})
        if t.requires_reason and (not reason or not reason.strip()):
            raise ValidationError(
                f"A reason is required to {transition} a {self.kind.value}",
                {"field": "reason"},
            )
        return t

    def validate(
        self,
        status: str,
        transition: str,
        actor_id: str | None,
        reason: str | None = None,
        record_id: Any = None,
    ) -> Transition:
        """Validate a transition request, returning the matching Transition.

        Raises:
            ValidationError: Unknown transition, blank actor or missing reason
            LockedRecordError: The record is in a locked status
            InvalidStateTransition: ``status`` is not a source of the transition
        """
        t = self.check_request(transition, actor_id, reason)

        if self.is_locked(status):
            raise LockedRecordError(
                self.kind.value, status, transition=transition, record_id=record_id
            )
        if status not in t.sources:
            raise InvalidStateTransition(
                self.kind.value,
                transition,
                status,
                expected=t.sources,
                record_id=record_id,
            )
        return t

    def plan(
        self,
        record: Any,
        transition: str,
        actor_id: str,
        reason: str | None = None,
        reference: str | None = None,
        now: datetime | None = None,
        record_id: Any = None,
    ) -> dict[str, Any]:
        """Validate and return the column values the transition writes."""
        current = record.status
        t = self.validate(current, transition, actor_id, reason, record_id)
        now = now or utcnow()
        actor = actor_id.strip()
        reason = reason.strip() if reason else None

        values: dict[str, Any] = {"status": t.target}

        if t.effect is TransitionEffect.FORWARD:
            if t.stamp:
                values[f"{t.stamp}_at"] = now
                values[f"{t.stamp}_by"] = actor
            if t.reference_field and reference:
                values[t.reference_field] = reference.strip()
            if self.definition.supports_hold:
                values.update(dict.fromkeys(HOLD_FIELDS))

        elif t.effect is TransitionEffect.HOLD:
            values.update(on_hold_at=now, on_hold_by=actor, on_hold_reason=reason)
            if self.definition.keeps_hold_history:
                entry = {
                    "at": now.isoformat(),
                    "by": actor,
                    "reason": reason,
                    "from_status": current,
                }
                values["on_hold_history"] = list(record.on_hold_history or []) + [entry]

        elif t.effect is TransitionEffect.REJECT:
            values.update(rejected_at=now, rejected_by=actor, rejection_reason=reason)

        elif t.effect is TransitionEffect.RESET:
            values.update(dict.fromkeys(self.definition.reset_fields))
            values.update(
                rejected_at=now,
                rejected_by=actor,
                rejection_reason=reason,
                rejected_at_stage=current,
            )

        return values
