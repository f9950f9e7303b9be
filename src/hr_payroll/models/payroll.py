"""Monthly payroll record."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_payroll.models.base import (
    Base,
    HoldMixin,
    JSONType,
    RejectionMixin,
    StageApprovalMixin,
    TimestampMixin,
    UpdatedAtMixin,
)
from hr_payroll.models.employee import MONEY, Employee
from hr_payroll.models.enums import PayrollStatus, status_check


class Payroll(
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    StageApprovalMixin,
    HoldMixin,
    RejectionMixin,
):
    """One payroll row per employee and calendar month."""

    __tablename__ = "payroll"

    payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Prorated salary for the month
    base_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    allowances: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    tax_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    net_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(
        String, nullable=False, default=PayrollStatus.PENDING.value
    )

    uploaded_to_bank_at: Mapped[datetime | None] = mapped_column(nullable=True)
    uploaded_to_bank_by: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_upload_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_payment_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    bank_payment_approved_by: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_payment_reference: Mapped[str | None] = mapped_column(String, nullable=True)

    rejected_at_stage: Mapped[str | None] = mapped_column(String, nullable=True)
    on_hold_history: Mapped[list[dict[str, Any]] | None] = mapped_column(JSONType, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "month", "year", name="payroll_employee_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_month_check"),
        CheckConstraint(status_check(PayrollStatus), name="payroll_status_check"),
        CheckConstraint("net_salary >= 0", name="payroll_net_non_negative"),
    )

    employee: Mapped[Employee] = relationship()
