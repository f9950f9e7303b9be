"""Record builders shared by the test suite."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from hr_payroll.events.types import PayrollUpdated
from hr_payroll.models import Employee

BASE_SALARY = Decimal("9000.00")
TOTAL_SALARY = Decimal("14000.00")


def make_employee(**overrides: Any) -> Employee:
    """Build an employee on 9,000 base / 14,000 total, employed since 2020."""
    number = overrides.pop("employee_number", f"EMP{uuid4().hex[:8].upper()}")
    values: dict[str, Any] = {
        "employee_id": uuid4(),
        "employee_number": number,
        "first_name": "Aisha",
        "last_name": "Rahman",
        "status": "ACTIVE",
        "base_salary": BASE_SALARY,
        "housing_allowance": Decimal("3000.00"),
        "transportation_allowance": Decimal("1500.00"),
        "telephone_allowance": Decimal("500.00"),
        "other_allowance": Decimal("0.00"),
        "total_salary": TOTAL_SALARY,
        "join_date": date(2020, 1, 1),
        "termination_date": None,
    }
    values.update(overrides)
    return Employee(**values)


class RecordingNotifier:
    """Notifier that keeps every PayrollUpdated event it receives."""

    def __init__(self) -> None:
        self.events: list[PayrollUpdated] = []

    async def payroll_updated(self, event: PayrollUpdated) -> None:
        self.events.append(event)
