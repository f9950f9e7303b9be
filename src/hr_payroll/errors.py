"""Error taxonomy for payroll calculation, approvals and sync."""

from __future__ import annotations

from typing import Any, Iterable


class PayrollError(Exception):
    """Base class for all payroll subsystem errors."""

    code = "PAYROLL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(PayrollError):
    """Raised for missing actors, missing reasons and bad inputs."""

    code = "VALIDATION_ERROR"


class NotFoundError(PayrollError):
    """Raised when a record id does not resolve."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, record_id: Any):
        self.entity = entity
        self.record_id = record_id
        super().__init__(
            f"{entity} {record_id} not found",
            {"entity": entity, "record_id": str(record_id)},
        )


class EmployeeNotFound(NotFoundError):
    """Raised when an employee id does not resolve."""

    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: Any):
        super().__init__("Employee", employee_id)


class InvalidStateTransition(PayrollError):
    """Raised when a transition is attempted from a status outside its source set."""

    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        kind: str,
        transition: str,
        current_status: str,
        expected: Iterable[str] = (),
        record_id: Any = None,
        reason: str | None = None,
    ):
        self.kind = kind
        self.transition = transition
        self.current_status = current_status
        self.expected = sorted(expected)
        self.record_id = record_id
        msg = f"Cannot {transition} {kind} in status '{current_status}'"
        if self.expected:
            msg += f". Expected status: {' or '.join(self.expected)}"
        if reason:
            msg += f": {reason}"
        super().__init__(
            msg,
            {
                "kind": kind,
                "transition": transition,
                "current_status": current_status,
                "expected_statuses": self.expected,
                "record_id": str(record_id) if record_id is not None else None,
            },
        )


class LockedRecordError(InvalidStateTransition):
    """Raised on any attempt to change a record in a locked status."""

    code = "RECORD_LOCKED"

    def __init__(
        self,
        kind: str,
        current_status: str,
        transition: str = "modify",
        record_id: Any = None,
    ):
        super().__init__(
            kind,
            transition,
            current_status,
            record_id=record_id,
            reason="record is locked",
        )


class CalculationDependencyError(PayrollError):
    """Raised when a holiday or leave lookup fails during calculation."""

    code = "CALCULATION_DEPENDENCY_ERROR"

    def __init__(self, dependency: str, cause: Exception | None = None):
        self.dependency = dependency
        self.cause = cause
        msg = f"Failed to load {dependency}"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg, {"dependency": dependency})
