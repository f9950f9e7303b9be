"""Payroll proration and calculation."""

from hr_payroll.calculators.data_source import PayrollDataSource, SqlPayrollDataSource
from hr_payroll.calculators.engine import PayrollCalculator, active_period, month_bounds
from hr_payroll.calculators.proration import OvertimeCapCheck, ProrationEngine
from hr_payroll.calculators.types import (
    CalculationBreakdown,
    PayrollCalculation,
    ProrationDetails,
    SalaryPeriod,
)

__all__ = [
    "PayrollCalculator",
    "PayrollCalculation",
    "ProrationDetails",
    "ProrationEngine",
    "OvertimeCapCheck",
    "PayrollDataSource",
    "SqlPayrollDataSource",
    "CalculationBreakdown",
    "SalaryPeriod",
    "active_period",
    "month_bounds",
]
