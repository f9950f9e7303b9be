"""Employee, salary change, leave and holiday read models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin
from hr_payroll.models.enums import LeaveStatus, SalaryChangeStatus, status_check

MONEY = Numeric(12, 2)


class Employee(Base, TimestampMixin, UpdatedAtMixin):
    """Employee record with the salary components payroll reads."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="ACTIVE")

    base_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    housing_allowance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    transportation_allowance: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    telephone_allowance: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    other_allowance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    join_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    termination_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'TERMINATED', 'EXPIRED', 'INACTIVE')",
            name="employee_status_check",
        ),
        CheckConstraint(
            "termination_date IS NULL OR join_date IS NULL OR termination_date >= join_date",
            name="employee_dates_check",
        ),
    )

    salary_changes: Mapped[list[SalaryChange]] = relationship(back_populates="employee")

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def allowances_total(self) -> Decimal:
        return (
            self.housing_allowance
            + self.transportation_allowance
            + self.telephone_allowance
            + self.other_allowance
        )


class SalaryChange(Base, TimestampMixin):
    """Effective-dated salary revision."""

    __tablename__ = "salary_change"

    salary_change_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    old_base_salary: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    old_total_salary: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)
    new_base_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    new_total_salary: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=SalaryChangeStatus.PENDING.value
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(status_check(SalaryChangeStatus), name="salary_change_status_check"),
        Index("ix_salary_change_employee_effective", "employee_id", "effective_date"),
    )

    employee: Mapped[Employee] = relationship(back_populates="salary_changes")


class LeaveRequest(Base, TimestampMixin):
    """Approved leave is read to detect unpaid days."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    compensation_method: Mapped[str | None] = mapped_column(String, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_days: Mapped[Decimal] = mapped_column(Numeric(6, 1), nullable=False)
    is_half_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default=LeaveStatus.PENDING.value)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(status_check(LeaveStatus), name="leave_request_status_check"),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )


class Holiday(Base, TimestampMixin):
    """Public holiday, possibly spanning several days."""

    __tablename__ = "holiday"

    holiday_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (CheckConstraint("end_date >= start_date", name="holiday_dates_check"),)
