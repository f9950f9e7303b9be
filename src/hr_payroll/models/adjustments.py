"""Bonus, reimbursement, deduction and overtime adjustment records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_payroll.models.base import (
    Base,
    HoldMixin,
    RejectionMixin,
    StageApprovalMixin,
    TimestampMixin,
    UpdatedAtMixin,
)
from hr_payroll.models.employee import MONEY, Employee
from hr_payroll.models.enums import (
    BonusStatus,
    DeductionStatus,
    OvertimeStatus,
    ReimbursementStatus,
    status_check,
)


class PayrollStageMixin:
    """Ready-for-payroll and applied-to-payroll stamps (bonus and deduction)."""

    ready_for_payroll_at: Mapped[datetime | None] = mapped_column(nullable=True)
    ready_for_payroll_by: Mapped[str | None] = mapped_column(String, nullable=True)
    applied_to_payroll_at: Mapped[datetime | None] = mapped_column(nullable=True)
    applied_to_payroll_by: Mapped[str | None] = mapped_column(String, nullable=True)
    payroll_reference: Mapped[str | None] = mapped_column(String, nullable=True)


class Bonus(
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    StageApprovalMixin,
    PayrollStageMixin,
    HoldMixin,
    RejectionMixin,
):
    """One-off bonus paid through payroll."""

    __tablename__ = "bonus"

    bonus_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    bonus_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default=BonusStatus.PENDING.value)

    __table_args__ = (
        CheckConstraint(status_check(BonusStatus), name="bonus_status_check"),
        CheckConstraint("amount >= 0", name="bonus_amount_check"),
        Index("ix_bonus_employee_date", "employee_id", "bonus_date"),
    )

    employee: Mapped[Employee] = relationship()


class Deduction(
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    StageApprovalMixin,
    PayrollStageMixin,
    HoldMixin,
    RejectionMixin,
):
    """Deduction taken from a month's payroll."""

    __tablename__ = "deduction"

    deduction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    deduction_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=DeductionStatus.PENDING.value
    )

    __table_args__ = (
        CheckConstraint(status_check(DeductionStatus), name="deduction_status_check"),
        CheckConstraint("amount >= 0", name="deduction_amount_check"),
        Index("ix_deduction_employee_date", "employee_id", "deduction_date"),
    )

    employee: Mapped[Employee] = relationship()


class Reimbursement(
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    StageApprovalMixin,
    HoldMixin,
    RejectionMixin,
):
    """Expense reimbursement; its payroll month is the submission month."""

    __tablename__ = "reimbursement"

    reimbursement_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ReimbursementStatus.PENDING.value
    )

    uploaded_to_bank_at: Mapped[datetime | None] = mapped_column(nullable=True)
    uploaded_to_bank_by: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_upload_reference: Mapped[str | None] = mapped_column(String, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String, nullable=True)
    bank_payment_reference: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(status_check(ReimbursementStatus), name="reimbursement_status_check"),
        CheckConstraint("amount >= 0", name="reimbursement_amount_check"),
        Index("ix_reimbursement_employee_created", "employee_id", "created_at"),
    )

    employee: Mapped[Employee] = relationship()


class Overtime(Base, TimestampMixin, UpdatedAtMixin, RejectionMixin):
    """Overtime worked on a single day."""

    __tablename__ = "overtime"

    overtime_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    is_rest_day_or_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_night_work: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    use_compensatory_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=OvertimeStatus.PENDING.value
    )
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(status_check(OvertimeStatus), name="overtime_status_check"),
        CheckConstraint("hours >= 0", name="overtime_hours_check"),
        Index("ix_overtime_employee_date", "employee_id", "work_date"),
    )

    employee: Mapped[Employee] = relationship()
