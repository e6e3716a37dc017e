import pytest
from datetime import date
from decimal import Decimal

from attendance_engine.core import civil_day
from attendance_engine.core.exceptions import AlreadyProcessed, OfficeNotFound
from attendance_engine.models import (
    Attendance, AttendanceOrigin, AttendanceStatus, EmployeeStatus, Holiday, Leave, LeaveStatus, LeaveType,
    Office, PayType, Transaction,
)
from attendance_engine.services.attendance_service import AttendanceService
from attendance_engine.services.reconciliation_service import ReconciliationService, decide_disposition

TODAY = date(2026, 10, 19)


@pytest.fixture
def evening(clock):
    clock.set_local(2026, 10, 19, 20, 0)
    return clock


def _service(db_session, clock):
    return ReconciliationService(db_session, clock)


def _approved_leave(db_session, clock, employee, from_day, to_day):
    db_session.add(Leave(
        employee_id=employee.id, reason="Family", from_date=from_day, to_date=to_day,
        total_days=(to_day - from_day).days + 1, type=LeaveType.PAID.value,
        status=LeaveStatus.APPROVED.value, apply_date=civil_day.to_storage(clock.now()),
    ))
    db_session.commit()


def _rows_for_today(db_session):
    return db_session.query(Attendance).filter(Attendance.date == civil_day.day_marker(TODAY)).all()


def test_absent_employee_is_marked_and_charged(db_session, evening, employee):
    result = _service(db_session, evening).run()

    row = db_session.query(Attendance).one()
    assert row.status == AttendanceStatus.ABSENT.value
    assert row.origin == AttendanceOrigin.RECONCILIATION.value
    assert row.check_in_time is None

    deduction = db_session.query(Transaction).one()
    assert deduction.pay_type == PayType.DEDUCTION.value
    assert deduction.amount == Decimal("1000.00")
    assert deduction.description == "Absence deduction for 2026-10-19"

    assert result["date"] == "2026-10-19"
    assert result["processed_count"] == 1
    assert result["summary"]["absent"] == 1
    assert result["summary"]["deductions_total"] == Decimal("1000.00")


def test_unsalaried_absentee_gets_no_zero_deduction(db_session, evening, make_employee):
    make_employee(name="Volunteer", base_salary="0.00")

    result = _service(db_session, evening).run()

    assert db_session.query(Attendance).one().status == AttendanceStatus.ABSENT.value
    assert db_session.query(Transaction).count() == 0
    assert result["summary"]["absent"] == 1
    assert result["summary"]["deductions_total"] == Decimal("0.00")


def test_employee_on_approved_leave_is_marked_leave(db_session, evening, employee):
    _approved_leave(db_session, evening, employee, date(2026, 10, 18), date(2026, 10, 20))

    result = _service(db_session, evening).run()

    assert db_session.query(Attendance).one().status == AttendanceStatus.LEAVE.value
    assert db_session.query(Transaction).count() == 0
    assert result["summary"]["leave"] == 1


def test_pending_leave_does_not_excuse_absence(db_session, evening, employee):
    db_session.add(Leave(
        employee_id=employee.id, reason="Trip", from_date=TODAY, to_date=TODAY, total_days=1,
        type=LeaveType.PAID.value, status=LeaveStatus.PENDING.value,
        apply_date=civil_day.to_storage(evening.now()),
    ))
    db_session.commit()

    _service(db_session, evening).run()

    assert db_session.query(Attendance).one().status == AttendanceStatus.ABSENT.value


def test_holiday_marks_everyone_without_deduction(db_session, evening, make_employee):
    first = make_employee(name="First")
    second = make_employee(name="Second")
    _approved_leave(db_session, evening, second, TODAY, TODAY)
    db_session.add(Holiday(date=TODAY, description="Diwali"))
    db_session.commit()

    result = _service(db_session, evening).run()

    assert {r.employee_id: r.status for r in _rows_for_today(db_session)} == {
        first.id: AttendanceStatus.HOLIDAY.value,
        second.id: AttendanceStatus.HOLIDAY.value,
    }
    assert db_session.query(Transaction).count() == 0
    assert result["summary"]["holiday"] == 2


def test_checked_in_employees_are_left_alone(db_session, clock, make_employee):
    present = make_employee(name="Present")
    absent = make_employee(name="Absent")
    AttendanceService(db_session, clock).check_in(present.id)
    clock.set_local(2026, 10, 19, 20, 0)

    result = _service(db_session, clock).run()

    statuses = {r.employee_id: r.status for r in _rows_for_today(db_session)}
    assert statuses == {present.id: AttendanceStatus.PRESENT.value, absent.id: AttendanceStatus.ABSENT.value}
    assert result["processed_count"] == 1
    assert result["summary"]["already_recorded"] == 1


def test_second_run_same_day_is_rejected(db_session, evening, employee):
    service = _service(db_session, evening)
    service.run()

    evening.set_local(2026, 10, 19, 23, 0)
    with pytest.raises(AlreadyProcessed):
        service.run()

    assert len(_rows_for_today(db_session)) == 1
    assert db_session.query(Transaction).count() == 1


def test_run_on_next_day_processes_again(db_session, evening, employee):
    service = _service(db_session, evening)
    service.run()
    evening.set_local(2026, 10, 20, 20, 0)
    service.run()
    assert db_session.query(Attendance).count() == 2


def test_inactive_employees_are_excluded(db_session, evening, make_employee):
    make_employee(name="Former", status=EmployeeStatus.INACTIVE)
    result = _service(db_session, evening).run()
    assert result["processed_count"] == 0
    assert db_session.query(Attendance).count() == 0


def test_office_scope(db_session, evening, make_employee, office):
    branch = Office(name="Branch", checkin=office.checkin, checkout=office.checkout, break_time=30)
    db_session.add(branch)
    db_session.commit()
    head = make_employee(name="Head")
    remote = make_employee(name="Remote", office_id=branch.id)

    service = _service(db_session, evening)
    service.run(office_id=branch.id)

    assert [r.employee_id for r in _rows_for_today(db_session)] == [remote.id]

    # the other office has not been processed yet today
    service.run(office_id=office.id)
    assert {r.employee_id for r in _rows_for_today(db_session)} == {head.id, remote.id}

    with pytest.raises(AlreadyProcessed):
        service.run()


def test_unknown_office(db_session, evening, employee):
    with pytest.raises(OfficeNotFound):
        _service(db_session, evening).run(office_id=999)


def test_concurrent_insert_skips_only_that_employee(db_session, clock, make_employee, monkeypatch):
    raced = make_employee(name="Raced")
    absent = make_employee(name="Absent")
    AttendanceService(db_session, clock).check_in(raced.id)
    clock.set_local(2026, 10, 19, 20, 0)

    # the check-in is invisible when the batch reads existing rows
    monkeypatch.setattr(ReconciliationService, "_recorded_employee_ids", lambda self, marker, ids: set())

    result = _service(db_session, clock).run()

    assert result["summary"]["skipped"] == [{"employee_id": raced.id, "reason": "attendance already recorded"}]
    assert result["summary"]["absent"] == 1
    statuses = {r.employee_id: r.status for r in _rows_for_today(db_session)}
    assert statuses == {raced.id: AttendanceStatus.PRESENT.value, absent.id: AttendanceStatus.ABSENT.value}
    deductions = db_session.query(Transaction).all()
    assert [t.employee_id for t in deductions] == [absent.id]


def test_storage_fault_rolls_back_the_batch(db_session, evening, make_employee, monkeypatch):
    make_employee(name="First")
    make_employee(name="Second")

    def broken(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr("attendance_engine.services.reconciliation_service.daily_rate", broken)
    with pytest.raises(RuntimeError):
        _service(db_session, evening).run()

    assert db_session.query(Attendance).count() == 0
    assert db_session.query(Transaction).count() == 0


def test_disposition_precedence():
    assert decide_disposition(True, True) == AttendanceStatus.HOLIDAY
    assert decide_disposition(False, True) == AttendanceStatus.LEAVE
    assert decide_disposition(False, False) == AttendanceStatus.ABSENT
