"""ORM models for payroll, employees and payroll-affecting records."""

from hr_payroll.models.adjustments import Bonus, Deduction, Overtime, Reimbursement
from hr_payroll.models.base import Base, utcnow
from hr_payroll.models.employee import Employee, Holiday, LeaveRequest, SalaryChange
from hr_payroll.models.enums import (
    BonusStatus,
    DeductionStatus,
    LeaveStatus,
    LeaveType,
    OvertimeStatus,
    PayrollStatus,
    ReimbursementStatus,
    SalaryChangeStatus,
)
from hr_payroll.models.payroll import Payroll

__all__ = [
    "Base",
    "utcnow",
    "Employee",
    "SalaryChange",
    "LeaveRequest",
    "Holiday",
    "Payroll",
    "Bonus",
    "Deduction",
    "Reimbursement",
    "Overtime",
    "PayrollStatus",
    "BonusStatus",
    "DeductionStatus",
    "ReimbursementStatus",
    "OvertimeStatus",
    "SalaryChangeStatus",
    "LeaveStatus",
    "LeaveType",
]
