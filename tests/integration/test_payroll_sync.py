"""Payroll sync integration tests.

Tests recompute, locking, debouncing and batch generation against a real
database.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import event, func, select

from hr_payroll.errors import EmployeeNotFound, LockedRecordError
from hr_payroll.models import (
    Bonus,
    Deduction,
    Holiday,
    LeaveRequest,
    Overtime,
    Payroll,
    Reimbursement,
    SalaryChange,
)
from hr_payroll.services.approval_service import ApprovalService
from hr_payroll.services.scheduler import SyncOptions, SyncTrigger
from hr_payroll.services.sync_service import SkipReason, SyncStatus

from tests.factories import make_employee

pytestmark = pytest.mark.asyncio


def october_adjustments(employee_id):
    """Approved October adjustments plus records that must not count."""
    return [
        Bonus(
            employee_id=employee_id,
            amount=Decimal("500.00"),
            bonus_date=date(2024, 10, 10),
            status="MANAGEMENT_APPROVED",
        ),
        Deduction(
            employee_id=employee_id,
            amount=Decimal("300.00"),
            deduction_date=date(2024, 10, 12),
            status="READY_FOR_PAYROLL",
        ),
        Overtime(
            employee_id=employee_id,
            work_date=date(2024, 10, 7),
            hours=Decimal("2.00"),
            amount=Decimal("93.75"),
            status="APPROVED",
        ),
        Reimbursement(
            employee_id=employee_id,
            amount=Decimal("200.00"),
            status="MANAGEMENT_APPROVED",
            created_at=datetime(2024, 10, 20, 9, 0, tzinfo=timezone.utc),
        ),
        # Not approved far enough
        Bonus(
            employee_id=employee_id,
            amount=Decimal("1000.00"),
            bonus_date=date(2024, 10, 15),
            status="FINANCE_APPROVED",
        ),
        # Different month
        Deduction(
            employee_id=employee_id,
            amount=Decimal("750.00"),
            deduction_date=date(2024, 11, 1),
            status="MANAGEMENT_APPROVED",
        ),
        # Rejected
        Reimbursement(
            employee_id=employee_id,
            amount=Decimal("99.00"),
            status="REJECTED",
            created_at=datetime(2024, 10, 21, 9, 0, tzinfo=timezone.utc),
        ),
    ]


class TestRecompute:
    """Test recomputing one employee-month."""

    async def test_creates_payroll_with_approved_totals(self, seed, sync_service, notifier):
        """Only approved adjustments in the month are totalled."""
        employee = make_employee()
        await seed(employee, *october_adjustments(employee.employee_id))

        result = await sync_service.run(employee.employee_id, 2024, 10)

        assert result.status == SyncStatus.CREATED
        payroll = result.payroll
        assert payroll.status == "PENDING"
        assert payroll.base_salary == Decimal("9000.00")
        assert payroll.total_salary == Decimal("14000.00")
        # overtime + reimbursement + bonus
        assert payroll.allowances == Decimal("793.75")
        assert payroll.deductions == Decimal("300.00")
        assert payroll.tax_deduction == Decimal("0")
        assert payroll.net_salary == Decimal("14493.75")

        assert len(notifier.events) == 1
        updated = notifier.events[0]
        assert updated.sync_status == "created"
        assert updated.payroll_id == payroll.payroll_id
        assert updated.proration["summary"] == "Full month salary"

    async def test_recompute_is_idempotent(self, seed, sync_service, session_factory):
        """Running twice without changes gives the same row and amounts."""
        employee = make_employee()
        await seed(employee, *october_adjustments(employee.employee_id))

        first = await sync_service.run(employee.employee_id, 2024, 10)
        second = await sync_service.run(employee.employee_id, 2024, 10)

        assert first.status == SyncStatus.CREATED
        assert second.status == SyncStatus.UPDATED
        assert second.payroll.payroll_id == first.payroll.payroll_id
        assert second.payroll.allowances == first.payroll.allowances
        assert second.payroll.deductions == first.payroll.deductions
        assert second.payroll.net_salary == first.payroll.net_salary

        async with session_factory() as s:
            count = await s.scalar(
                select(func.count()).select_from(Payroll).where(
                    Payroll.employee_id == employee.employee_id
                )
            )
        assert count == 1

    async def test_recompute_returns_row_to_pending(self, seed, sync_service):
        """A recompute of an unlocked row restarts its approval."""
        employee = make_employee()
        await seed(
            employee,
            Payroll(
                employee_id=employee.employee_id,
                year=2024,
                month=10,
                status="FINANCE_APPROVED",
                finance_approved_at=datetime(2024, 10, 25, tzinfo=timezone.utc),
                finance_approved_by="fin-1",
                on_hold_history=[{"by": "fin-1", "reason": "Check"}],
            ),
        )

        result = await sync_service.run(employee.employee_id, 2024, 10)

        assert result.status == SyncStatus.UPDATED
        assert result.payroll.status == "PENDING"
        assert result.payroll.finance_approved_by is None
        assert result.payroll.finance_approved_at is None
        assert result.payroll.on_hold_history == []

    async def test_uploaded_payroll_is_locked(self, seed, sync_service, notifier, fetch_payroll):
        employee = make_employee()
        await seed(
            employee,
            Payroll(
                employee_id=employee.employee_id,
                year=2024,
                month=10,
                total_salary=Decimal("14000.00"),
                net_salary=Decimal("14000.00"),
                status="UPLOADED_TO_BANK",
            ),
            *october_adjustments(employee.employee_id),
        )

        result = await sync_service.run(employee.employee_id, 2024, 10)

        assert result.status == SyncStatus.SKIPPED
        assert result.reason == SkipReason.PAYROLL_LOCKED
        assert result.payroll is not None
        payroll = await fetch_payroll(employee.employee_id, 2024, 10)
        assert payroll.net_salary == Decimal("14000.00")
        assert payroll.allowances == Decimal("0")
        assert notifier.events == []

    async def test_creation_disabled(self, seed, sync_service, fetch_payroll):
        employee = make_employee()
        await seed(employee)

        result = await sync_service.run(
            employee.employee_id, 2024, 10, options=SyncOptions(allow_create=False)
        )

        assert result.reason == SkipReason.CREATION_DISABLED
        assert await fetch_payroll(employee.employee_id, 2024, 10) is None

    async def test_unknown_employee(self, sync_service, notifier):
        result = await sync_service.run(uuid4(), 2024, 10)

        assert result.skipped
        assert result.reason == SkipReason.EMPLOYEE_NOT_FOUND
        assert notifier.events == []

    async def test_calculation_failure_is_skipped(self, seed, sync_service):
        """Input errors are reported as skipped, not raised."""
        employee = make_employee(join_date=None)
        await seed(employee)

        result = await sync_service.run(employee.employee_id, 2024, 10)

        assert result.reason == SkipReason.CALCULATION_FAILED
        assert "no join date" in result.message

    async def test_events_can_be_suppressed(self, seed, sync_service, notifier):
        employee = make_employee()
        await seed(employee)

        result = await sync_service.run(
            employee.employee_id, 2024, 10, options=SyncOptions(emit_event=False)
        )

        assert result.status == SyncStatus.CREATED
        assert notifier.events == []


class TestDebouncedSync:
    """Test recomputes scheduled by approval transitions."""

    async def test_two_approvals_one_recompute(
        self, seed, session_factory, sync_service, notifier, fetch_payroll
    ):
        """Finance then management approval inside the window recompute once."""
        employee = make_employee()
        bonus = Bonus(
            employee_id=employee.employee_id,
            amount=Decimal("500.00"),
            bonus_date=date(2024, 10, 10),
        )
        await seed(employee, bonus)

        async with session_factory() as s:
            await ApprovalService(s, sync_service).finance_approve("bonus", bonus.bonus_id, "fin-1")
        async with session_factory() as s:
            await ApprovalService(s, sync_service).management_approve(
                "bonus", bonus.bonus_id, "mgr-1"
            )
        await sync_service.wait_idle()

        assert len(notifier.events) == 1
        triggers = notifier.events[0].triggers
        assert [t["action"] for t in triggers] == ["finance_approve", "management_approve"]
        assert [t["status"] for t in triggers] == ["FINANCE_APPROVED", "MANAGEMENT_APPROVED"]
        assert all(t["record_id"] == str(bonus.bonus_id) for t in triggers)

        payroll = await fetch_payroll(employee.employee_id, 2024, 10)
        assert payroll.allowances == Decimal("500.00")
        assert payroll.net_salary == Decimal("14500.00")

    async def test_approval_after_upload_leaves_payroll_alone(
        self, seed, session_factory, sync_service, notifier, fetch_payroll
    ):
        """A bonus approved after the bank upload doesn't touch the payroll."""
        employee = make_employee()
        bonus = Bonus(
            employee_id=employee.employee_id,
            amount=Decimal("500.00"),
            bonus_date=date(2024, 10, 10),
            status="FINANCE_APPROVED",
        )
        await seed(
            employee,
            bonus,
            Payroll(
                employee_id=employee.employee_id,
                year=2024,
                month=10,
                total_salary=Decimal("14000.00"),
                net_salary=Decimal("14000.00"),
                status="UPLOADED_TO_BANK",
                bank_upload_reference="WPS-OCT",
            ),
        )

        async with session_factory() as s:
            result = await ApprovalService(s, sync_service).management_approve(
                "bonus", bonus.bonus_id, "mgr-1"
            )
        assert result.sync_key == (employee.employee_id, 2024, 10)
        await sync_service.wait_idle()

        assert notifier.events == []
        payroll = await fetch_payroll(employee.employee_id, 2024, 10)
        assert payroll.status == "UPLOADED_TO_BANK"
        assert payroll.net_salary == Decimal("14000.00")
        assert payroll.bank_upload_reference == "WPS-OCT"

    async def test_reimbursement_month_is_submission_month(self, seed, sync_service):
        employee = make_employee()
        reimbursement = Reimbursement(
            employee_id=employee.employee_id,
            amount=Decimal("120.00"),
            status="FINANCE_APPROVED",
            created_at=datetime(2024, 9, 28, 15, 0, tzinfo=timezone.utc),
        )
        await seed(employee, reimbursement)

        key = sync_service.schedule_for_record(
            "reimbursement", reimbursement, reimbursement.reimbursement_id, action="finance_approve"
        )

        assert key == (employee.employee_id, 2024, 9)
        assert sync_service.scheduler.is_pending(key)

    async def test_payroll_records_never_schedule(self, sync_service):
        payroll = Payroll(employee_id=uuid4(), year=2024, month=10, status="FINANCE_APPROVED")

        assert sync_service.schedule_for_record("payroll", payroll) is None
        assert sync_service.scheduler.pending_count == 0

    async def test_manual_schedule(self, seed, sync_service, notifier):
        employee = make_employee()
        await seed(employee)

        sync_service.schedule(
            employee.employee_id, 2024, 10, SyncTrigger(type="manual", action="refresh")
        )
        await sync_service.wait_idle()

        assert len(notifier.events) == 1
        assert notifier.events[0].triggers[0]["type"] == "manual"


class TestRegenerate:
    """Test forced delete-and-recreate."""

    async def test_regenerate_replaces_row(self, seed, sync_service):
        employee = make_employee()
        old = Payroll(
            employee_id=employee.employee_id,
            year=2024,
            month=10,
            status="MANAGEMENT_APPROVED",
            notes="Entered by hand",
        )
        await seed(employee, old)

        result = await sync_service.regenerate(employee.employee_id, 2024, 10, actor_id="hr-1")

        assert result.status == SyncStatus.CREATED
        assert result.payroll.payroll_id != old.payroll_id
        assert result.payroll.notes is None
        assert result.payroll.status == "PENDING"
        assert result.payroll.total_salary == Decimal("14000.00")

    @pytest.mark.parametrize("status", ["UPLOADED_TO_BANK", "BANK_PAYMENT_APPROVED"])
    async def test_regenerate_locked_fails(self, seed, sync_service, status):
        employee = make_employee()
        await seed(
            employee,
            Payroll(employee_id=employee.employee_id, year=2024, month=10, status=status),
        )

        with pytest.raises(LockedRecordError) as exc_info:
            await sync_service.regenerate(employee.employee_id, 2024, 10)

        assert exc_info.value.transition == "regenerate"
        assert exc_info.value.current_status == status

    async def test_regenerate_unknown_employee(self, sync_service):
        with pytest.raises(EmployeeNotFound):
            await sync_service.regenerate(uuid4(), 2024, 10)


class TestGeneration:
    """Test batch generation for a month."""

    async def test_generates_for_active_employees(self, seed, sync_service, fetch_payroll):
        full = make_employee(employee_number="E001")
        joiner = make_employee(employee_number="E002", join_date=date(2024, 10, 16))
        leaver = make_employee(
            employee_number="E003",
            join_date=date(2021, 5, 1),
            termination_date=date(2024, 9, 30),
        )
        await seed(full, joiner, leaver)

        summary = await sync_service.generate_for_month(2024, 10)

        created = {r.employee_id for r in summary.created}
        assert created == {full.employee_id, joiner.employee_id}
        assert summary.skipped == []
        assert summary.total == 2

        payroll = await fetch_payroll(joiner.employee_id, 2024, 10)
        assert payroll.total_salary == Decimal("7466.67")
        assert await fetch_payroll(leaver.employee_id, 2024, 10) is None

    async def test_requested_employees(self, seed, sync_service):
        """Requested employees who aren't active are reported as skipped."""
        active = make_employee(employee_number="E001")
        leaver = make_employee(
            employee_number="E002",
            join_date=date(2021, 5, 1),
            termination_date=date(2024, 9, 30),
        )
        await seed(active, leaver)
        await sync_service.run(active.employee_id, 2024, 10)

        missing = uuid4()
        summary = await sync_service.generate_for_month(
            2024, 10, employee_ids=[active.employee_id, leaver.employee_id, missing]
        )

        assert [r.employee_id for r in summary.updated] == [active.employee_id]
        skipped = {r.employee_id: r.reason for r in summary.skipped}
        assert skipped == {
            leaver.employee_id: SkipReason.EMPLOYEE_NOT_ACTIVE,
            missing: SkipReason.EMPLOYEE_NOT_ACTIVE,
        }

    async def test_missing_join_date_is_reported(self, seed, sync_service, fetch_payroll):
        """An employee without a join date fails the calculation and is listed as skipped."""
        complete = make_employee(employee_number="E001")
        incomplete = make_employee(employee_number="E002", join_date=None)
        await seed(complete, incomplete)

        summary = await sync_service.generate_for_month(2024, 10)

        assert [r.employee_id for r in summary.created] == [complete.employee_id]
        assert len(summary.skipped) == 1
        skipped = summary.skipped[0]
        assert skipped.employee_id == incomplete.employee_id
        assert skipped.reason is SkipReason.CALCULATION_FAILED
        assert "no join date" in skipped.message
        assert await fetch_payroll(incomplete.employee_id, 2024, 10) is None

        requested = await sync_service.generate_for_month(
            2024, 10, employee_ids=[incomplete.employee_id]
        )
        assert [r.reason for r in requested.skipped] == [SkipReason.CALCULATION_FAILED]

    async def test_one_failure_does_not_stop_batch(self, seed, sync_service):
        """A locked payroll is skipped while the rest are generated."""
        locked = make_employee(employee_number="E001")
        other = make_employee(employee_number="E002")
        await seed(
            locked,
            other,
            Payroll(
                employee_id=locked.employee_id,
                year=2024,
                month=10,
                status="BANK_PAYMENT_APPROVED",
            ),
        )

        summary = await sync_service.generate_for_month(2024, 10)

        assert [r.employee_id for r in summary.created] == [other.employee_id]
        assert [r.reason for r in summary.skipped] == [SkipReason.PAYROLL_LOCKED]


class TestDatabaseLookups:
    """Test the calculator against salary, leave and holiday records."""

    async def test_preview_uses_approved_records(self, seed, sync_service, fetch_payroll):
        employee = make_employee()
        eid = employee.employee_id
        await seed(
            employee,
            # Sets the opening salary for October
            SalaryChange(
                employee_id=eid,
                effective_date=date(2024, 9, 1),
                old_base_salary=Decimal("8000.00"),
                old_total_salary=Decimal("12000.00"),
                new_base_salary=Decimal("9000.00"),
                new_total_salary=Decimal("14000.00"),
                status="APPROVED",
            ),
            SalaryChange(
                employee_id=eid,
                effective_date=date(2024, 10, 11),
                old_base_salary=Decimal("9000.00"),
                old_total_salary=Decimal("14000.00"),
                new_base_salary=Decimal("12000.00"),
                new_total_salary=Decimal("18000.00"),
                status="APPROVED",
            ),
            # Not approved
            SalaryChange(
                employee_id=eid,
                effective_date=date(2024, 10, 20),
                new_base_salary=Decimal("20000.00"),
                new_total_salary=Decimal("30000.00"),
                status="PENDING",
            ),
            LeaveRequest(
                employee_id=eid,
                leave_type="EMERGENCY",
                compensation_method="Unpaid",
                start_date=date(2024, 10, 21),
                end_date=date(2024, 10, 22),
                number_of_days=Decimal("2"),
                status="APPROVED",
            ),
            # Paid leave
            LeaveRequest(
                employee_id=eid,
                leave_type="ANNUAL",
                start_date=date(2024, 10, 14),
                end_date=date(2024, 10, 15),
                number_of_days=Decimal("2"),
                status="APPROVED",
            ),
            # Not approved
            LeaveRequest(
                employee_id=eid,
                leave_type="UNPAID",
                start_date=date(2024, 10, 28),
                end_date=date(2024, 10, 28),
                number_of_days=Decimal("1"),
                status="PENDING",
            ),
            Holiday(name="Autumn break", start_date=date(2024, 9, 30), end_date=date(2024, 10, 2)),
        )

        calculation, proration = await sync_service.calculate(eid, 2024, 10)

        assert calculation.total_salary == Decimal("14000.00")
        assert [p.calendar_days for p in calculation.salary_periods] == [10, 21]
        assert calculation.unpaid_leave_days == Decimal("2")
        # Oct 1-2 are holidays
        assert calculation.working_days_in_month == 21
        # 14000/30*10 + 18000/30*21 - (518000/31)/30*2
        assert calculation.unpaid_leave_deduction == Decimal("1113.98")
        assert calculation.prorated_total_salary == Decimal("16152.69")
        assert proration.reasons == [
            "Salary changed within the month",
            "Unpaid leave taken during the month",
        ]
        # Preview writes nothing
        assert await fetch_payroll(eid, 2024, 10) is None

    async def test_preview_unknown_employee(self, sync_service):
        with pytest.raises(EmployeeNotFound):
            await sync_service.calculate(uuid4(), 2024, 10)

    async def test_failed_holiday_lookup_is_rolled_back_alone(
        self, engine, seed, sync_service, fetch_payroll
    ):
        """A failed lookup only rolls back its savepoint; the sync still completes."""
        employee = make_employee()
        await seed(employee)
        async with engine.begin() as conn:
            await conn.run_sync(Holiday.__table__.drop)

        statements: list[str] = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(engine.sync_engine, "before_cursor_execute", record)
        try:
            result = await sync_service.run(employee.employee_id, 2024, 10)
        finally:
            event.remove(engine.sync_engine, "before_cursor_execute", record)

        assert result.status is SyncStatus.CREATED
        assert any("Failed to load holidays" in w for w in result.calculation.warnings)
        assert any(s.startswith("ROLLBACK TO SAVEPOINT") for s in statements)

        payroll = await fetch_payroll(employee.employee_id, 2024, 10)
        assert payroll.net_salary == Decimal("14000.00")
