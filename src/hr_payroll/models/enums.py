"""Status and type enumerations shared by models and workflows."""

from __future__ import annotations

from enum import Enum


class PayrollStatus(str, Enum):
    """Payroll workflow status values."""

    PENDING = "PENDING"
    FINANCE_APPROVED = "FINANCE_APPROVED"
    MANAGEMENT_APPROVED = "MANAGEMENT_APPROVED"
    UPLOADED_TO_BANK = "UPLOADED_TO_BANK"
    BANK_PAYMENT_APPROVED = "BANK_PAYMENT_APPROVED"
    ON_HOLD = "ON_HOLD"
    REJECTED = "REJECTED"


class BonusStatus(str, Enum):
    """Bonus workflow status values."""

    PENDING = "PENDING"
    FINANCE_APPROVED = "FINANCE_APPROVED"
    MANAGEMENT_APPROVED = "MANAGEMENT_APPROVED"
    READY_FOR_PAYROLL = "READY_FOR_PAYROLL"
    APPLIED_TO_PAYROLL = "APPLIED_TO_PAYROLL"
    ON_HOLD = "ON_HOLD"
    REJECTED = "REJECTED"


class DeductionStatus(str, Enum):
    """Deduction workflow status values."""

    PENDING = "PENDING"
    FINANCE_APPROVED = "FINANCE_APPROVED"
    MANAGEMENT_APPROVED = "MANAGEMENT_APPROVED"
    READY_FOR_PAYROLL = "READY_FOR_PAYROLL"
    APPLIED_TO_PAYROLL = "APPLIED_TO_PAYROLL"
    ON_HOLD = "ON_HOLD"
    REJECTED = "REJECTED"


class ReimbursementStatus(str, Enum):
    """Reimbursement workflow status values."""

    PENDING = "PENDING"
    FINANCE_APPROVED = "FINANCE_APPROVED"
    MANAGEMENT_APPROVED = "MANAGEMENT_APPROVED"
    UPLOADED_TO_BANK = "UPLOADED_TO_BANK"
    PAID = "PAID"
    ON_HOLD = "ON_HOLD"
    REJECTED = "REJECTED"


class OvertimeStatus(str, Enum):
    """Overtime request status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SalaryChangeStatus(str, Enum):
    """Salary change status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LeaveStatus(str, Enum):
    """Leave request status values."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveType(str, Enum):
    """Leave types known to the payroll calculator."""

    ANNUAL = "ANNUAL"
    SICK = "SICK"
    EMERGENCY = "EMERGENCY"
    MATERNITY = "MATERNITY"
    UNPAID = "UNPAID"


def _check(column: str, enum_cls: type[Enum]) -> str:
    """Build a CHECK constraint expression for an enum column."""
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


def status_check(enum_cls: type[Enum]) -> str:
    return _check("status", enum_cls)
