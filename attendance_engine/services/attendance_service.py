"""
Attendance Service

Per employee and civil day, attendance moves NONE -> CHECKED_IN -> CHECKED_OUT.
ABSENT, LEAVE and HOLIDAY rows are terminal and only created by the
reconciliation job or the holiday flow.

Lateness and overtime are decided on local time-of-day deltas within one
civil day, never on elapsed time across dates.
"""

import calendar
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from tenacity import retry, stop_after_attempt, retry_if_exception_type

from attendance_engine.core import civil_day
from attendance_engine.core.config import settings
from attendance_engine.core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    ConsistencyFault,
    CrossDayCheckout,
    InactiveEmployee,
    NoCheckIn,
    ValidationError,
)
from attendance_engine.core.money import to_money
from attendance_engine.database import atomic
from attendance_engine.models.attendance import Attendance, AttendanceOrigin, AttendanceStatus
from attendance_engine.models.employee import Employee, EmployeeStatus
from attendance_engine.models.leave import Leave, LeaveStatus
from attendance_engine.models.office import Office
from attendance_engine.services.base import BaseService, scoped_to_employee
from attendance_engine.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


# --- pure decisions ---

def classify_check_in(now: datetime, office_checkin_today: datetime, grace_minutes: int) -> AttendanceStatus:
    """PRESENT up to and including office check-in + grace, LATE afterwards."""
    threshold = office_checkin_today + timedelta(minutes=grace_minutes)
    return AttendanceStatus.PRESENT if civil_day.as_utc(now) <= threshold else AttendanceStatus.LATE


def office_minutes(office: Office) -> int:
    return civil_day.minutes_of_day(office.checkout) - civil_day.minutes_of_day(office.checkin)


def compute_overtime_minutes(check_in: datetime, check_out: datetime, office_span_minutes: int) -> int:
    worked = civil_day.minutes_of_day(check_out) - civil_day.minutes_of_day(check_in)
    return max(0, worked - office_span_minutes)


def overtime_pay(minutes: int, overtime_rate: Any) -> Decimal:
    return to_money(Decimal(minutes) / 60 * Decimal(str(overtime_rate)))


def _attendance_to_dict(row: Attendance) -> Dict[str, Any]:
    return {
        "id": row.id,
        "employee_id": row.employee_id,
        "date": civil_day.civil_day_of(row.date).isoformat(),
        "check_in_time": civil_day.as_utc(row.check_in_time).isoformat() if row.check_in_time else None,
        "check_out_time": civil_day.as_utc(row.check_out_time).isoformat() if row.check_out_time else None,
        "overtime_minutes": row.overtime_minutes,
        "status": row.status,
        "origin": row.origin,
    }


class AttendanceService(BaseService):

    def _find_row(self, employee_id: int, day) -> Optional[Attendance]:
        return self.db.query(Attendance).filter(
            Attendance.employee_id == employee_id,
            Attendance.date == civil_day.day_marker(day),
        ).first()

    @scoped_to_employee
    @retry(
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type(ConsistencyFault),
        reraise=True
    )
    def check_in(self, employee_id: int) -> Dict[str, Any]:
        """
        Record today's check-in.

        Raises AlreadyCheckedIn if any attendance row exists for the civil day.
        A unique-constraint race is retried once, which then reports the conflict.
        """
        now = self.now()
        day = civil_day.civil_day_of(now)
        try:
            with atomic(self.db):
                employee = self.get_employee(employee_id, lock=True)
                if not employee.is_active:
                    raise InactiveEmployee(employee.id)
                office = self.get_office(employee.office_id)

                if self._find_row(employee.id, day):
                    self.log_warning(f"Duplicate check-in for employee {employee.id} on {day}")
                    raise AlreadyCheckedIn(employee.id, day)

                status = classify_check_in(
                    now,
                    civil_day.office_time_today(office.checkin, now),
                    settings.late_grace_minutes,
                )
                attendance = Attendance(
                    employee_id=employee.id,
                    date=civil_day.day_marker(day),
                    check_in_time=civil_day.to_storage(now),
                    overtime_minutes=0,
                    status=status.value,
                    origin=AttendanceOrigin.CHECK_IN.value,
                )
                self.db.add(attendance)
                self.db.flush()
        except IntegrityError as e:
            logger.warning(f"Check-in race for employee {employee_id} on {day}")
            raise ConsistencyFault(
                "Attendance row was created concurrently",
                details={"employee_id": employee_id, "date": day.isoformat()}
            ) from e

        logger.info(f"Employee {employee_id} checked in {status.value} on {day}")
        return {
            "attendance_id": attendance.id,
            "status": status.value,
            "timestamp": now.isoformat(),
        }

    @scoped_to_employee
    def check_out(self, employee_id: int) -> Dict[str, Any]:
        """
        Close today's check-in, computing overtime against the office span.

        Overtime is paid through an OVERTIME ledger row written in the same
        database transaction as the attendance update.
        """
        now = self.now()
        day = civil_day.civil_day_of(now)
        pay: Optional[Decimal] = None

        with atomic(self.db):
            employee = self.get_employee(employee_id, lock=True)
            office = self.get_office(employee.office_id)

            row = self._find_row(employee.id, day)
            if row is None or row.origin != AttendanceOrigin.CHECK_IN.value:
                previous = self._find_row(employee.id, day - timedelta(days=1))
                if (
                    previous is not None
                    and previous.origin == AttendanceOrigin.CHECK_IN.value
                    and not previous.is_checked_out
                ):
                    self.log_warning(f"Cross-day check-out for employee {employee.id}")
                    raise CrossDayCheckout(employee.id, day - timedelta(days=1), day)
                raise NoCheckIn(employee.id, day)

            if row.is_checked_out:
                raise AlreadyCheckedOut(employee.id, day)

            check_in_time = civil_day.as_utc(row.check_in_time)
            if now < check_in_time:
                raise ValidationError(
                    "Check-out cannot precede check-in",
                    error_code="CHECKOUT_BEFORE_CHECKIN",
                    details={"employee_id": employee.id}
                )

            span = office_minutes(office)
            if span <= 0:
                raise ValidationError(
                    f"Office {office.id} checkout must be after checkin",
                    error_code="INVALID_OFFICE_HOURS",
                    details={"office_id": office.id}
                )

            overtime = compute_overtime_minutes(check_in_time, now, span)
            row.check_out_time = civil_day.to_storage(now)
            row.overtime_minutes = overtime

            if overtime > 0:
                pay = overtime_pay(overtime, employee.overtime_rate)
                LedgerService(self.db, self.clock).record_overtime(employee, overtime, pay, now)

        logger.info(f"Employee {employee_id} checked out on {day} with {row.overtime_minutes} overtime minute(s)")
        return {
            "attendance_id": row.id,
            "status": row.status,
            "timestamp": now.isoformat(),
            "overtime_minutes": row.overtime_minutes,
            "overtime_pay": pay,
        }

    @scoped_to_employee
    def get_month_attendance(self, employee_id: int, month: int, year: int) -> Dict[str, Any]:
        employee = self.get_employee(employee_id)
        window = civil_day.month_bounds(year, month, self.now())
        upper = (
            Attendance.date <= civil_day.to_storage(window.end)
            if window.clamped
            else Attendance.date < civil_day.to_storage(window.end)
        )
        rows = self.db.query(Attendance).filter(
            Attendance.employee_id == employee.id,
            Attendance.date >= civil_day.to_storage(window.start),
            upper,
        ).order_by(Attendance.date.asc()).all()
        return {
            "month": calendar.month_name[month],
            "year": year,
            "records": [_attendance_to_dict(r) for r in rows],
        }

    def get_today_dashboard(self, office_id: Optional[int] = None) -> Dict[str, Any]:
        """Today's totals per status, the absentee list and the latest pending leaves."""
        now = self.now()
        day = civil_day.civil_day_of(now)
        marker = civil_day.day_marker(day)

        employees = self.db.query(Employee).filter(Employee.status == EmployeeStatus.ACTIVE.value)
        if office_id is not None:
            self.get_office(office_id)
            employees = employees.filter(Employee.office_id == office_id)
        employee_ids = [e.id for e in employees.all()]

        counts = dict(
            self.db.query(Attendance.status, func.count(Attendance.id))
            .filter(Attendance.date == marker, Attendance.employee_id.in_(employee_ids))
            .group_by(Attendance.status)
            .all()
        )
        absentees = self.db.query(Employee.id, Employee.name).join(
            Attendance, Attendance.employee_id == Employee.id
        ).filter(
            Attendance.date == marker,
            Attendance.status == AttendanceStatus.ABSENT.value,
            Employee.id.in_(employee_ids),
        ).all()
        pending = self.db.query(Leave).filter(
            Leave.status == LeaveStatus.PENDING.value,
            Leave.employee_id.in_(employee_ids),
        ).order_by(Leave.apply_date.desc(), Leave.id.desc()).limit(settings.dashboard_pending_limit).all()

        return {
            "date": day.isoformat(),
            "total_employees": len(employee_ids),
            "totals": {s.value: counts.get(s.value, 0) for s in AttendanceStatus},
            "absent": [{"id": a.id, "name": a.name} for a in absentees],
            "pending_leaves": [
                {
                    "id": leave.id,
                    "employee_id": leave.employee_id,
                    "from_date": leave.from_date.isoformat(),
                    "to_date": leave.to_date.isoformat(),
                    "type": leave.type,
                    "total_days": leave.total_days,
                }
                for leave in pending
            ],
        }
