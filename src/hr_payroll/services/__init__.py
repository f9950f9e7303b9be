"""Payroll workflow and sync services."""

from hr_payroll.services.approval_service import ApprovalService, TransitionResult
from hr_payroll.services.repository import PayrollRepository
from hr_payroll.services.scheduler import DebounceScheduler, SyncOptions, SyncTrigger
from hr_payroll.services.state_machine import (
    ApprovalStateMachine,
    RecordKind,
    Transition,
    WorkflowDefinition,
)
from hr_payroll.services.sync_service import (
    GenerationSummary,
    PayrollSyncService,
    SkipReason,
    SyncResult,
    SyncStatus,
)

__all__ = [
    "ApprovalService",
    "TransitionResult",
    "ApprovalStateMachine",
    "RecordKind",
    "Transition",
    "WorkflowDefinition",
    "DebounceScheduler",
    "SyncOptions",
    "SyncTrigger",
    "PayrollRepository",
    "PayrollSyncService",
    "SyncResult",
    "SyncStatus",
    "SkipReason",
    "GenerationSummary",
]
