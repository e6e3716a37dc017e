"""
Bulk Reconciliation Service

End-of-day sweep: every active employee in scope without an attendance row
for today is marked HOLIDAY, LEAVE or ABSENT. Absences are charged one
day's salary through a DEDUCTION ledger row.

The whole batch is one database transaction. Each employee is written in its
own SAVEPOINT so that a row inserted concurrently by another process only
skips that employee.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import IntegrityError

from attendance_engine.core import civil_day
from attendance_engine.core.exceptions import AlreadyProcessed
from attendance_engine.core.logging import employee_context
from attendance_engine.core.money import daily_rate, to_money
from attendance_engine.models.attendance import Attendance, AttendanceOrigin, AttendanceStatus
from attendance_engine.models.employee import Employee, EmployeeStatus
from attendance_engine.models.holiday import Holiday
from attendance_engine.models.leave import Leave, LeaveStatus
from attendance_engine.services.base import BaseService
from attendance_engine.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


def decide_disposition(is_holiday: bool, on_approved_leave: bool) -> AttendanceStatus:
    if is_holiday:
        return AttendanceStatus.HOLIDAY
    if on_approved_leave:
        return AttendanceStatus.LEAVE
    return AttendanceStatus.ABSENT


class ReconciliationService(BaseService):

    def _target_employees(self, office_id: Optional[int]) -> List[Employee]:
        query = self.db.query(Employee).filter(Employee.status == EmployeeStatus.ACTIVE.value)
        if office_id is not None:
            self.get_office(office_id)
            query = query.filter(Employee.office_id == office_id)
        return query.order_by(Employee.id.asc()).all()

    def _recorded_employee_ids(self, marker, employee_ids: List[int]) -> Set[int]:
        """Employees that already have any attendance row for the day."""
        return {
            row.employee_id
            for row in self.db.query(Attendance.employee_id).filter(
                Attendance.date == marker,
                Attendance.employee_id.in_(employee_ids),
            ).all()
        }

    def run(self, office_id: Optional[int] = None) -> Dict[str, Any]:
        """
        Reconcile today's attendance for one office, or all offices when `office_id` is None.

        Raises AlreadyProcessed if the job already created rows today for the
        same employees.
        """
        now = self.now()
        day = civil_day.civil_day_of(now)
        marker = civil_day.day_marker(day)

        targets = self._target_employees(office_id)
        target_ids = [e.id for e in targets]

        already = self.db.query(Attendance.id).filter(
            Attendance.date == marker,
            Attendance.origin == AttendanceOrigin.RECONCILIATION.value,
            Attendance.employee_id.in_(target_ids),
        ).first()
        if already:
            self.log_warning(f"Reconciliation for {day} already processed (office={office_id})")
            raise AlreadyProcessed(day, office_id)

        recorded = self._recorded_employee_ids(marker, target_ids)
        is_holiday = self.db.query(Holiday.id).filter(Holiday.date == day).first() is not None
        on_leave = {
            row.employee_id
            for row in self.db.query(Leave.employee_id).filter(
                Leave.status == LeaveStatus.APPROVED.value,
                Leave.from_date <= day,
                Leave.to_date >= day,
                Leave.employee_id.in_(target_ids),
            ).all()
        }

        ledger = LedgerService(self.db, self.clock)
        counts = {status.value: 0 for status in (
            AttendanceStatus.ABSENT, AttendanceStatus.LEAVE, AttendanceStatus.HOLIDAY
        )}
        skipped: List[Dict[str, Any]] = []
        deductions_total = Decimal(0)

        try:
            for employee in targets:
                if employee.id in recorded:
                    continue
                status = decide_disposition(is_holiday, employee.id in on_leave)
                amount = None
                try:
                    with employee_context(employee.id), self.db.begin_nested():
                        self.db.add(Attendance(
                            employee_id=employee.id,
                            date=marker,
                            check_in_time=None,
                            check_out_time=None,
                            overtime_minutes=0,
                            status=status.value,
                            origin=AttendanceOrigin.RECONCILIATION.value,
                        ))
                        if status == AttendanceStatus.ABSENT:
                            amount = daily_rate(employee.base_salary, day.year, day.month)
                            # an unsalaried employee has nothing to charge
                            if amount > 0:
                                ledger.record_deduction(employee, amount, day, "Absence")
                        self.db.flush()
                except IntegrityError:
                    logger.warning(f"Employee {employee.id} got an attendance row for {day} mid-batch; skipped")
                    skipped.append({"employee_id": employee.id, "reason": "attendance already recorded"})
                    continue

                counts[status.value] += 1
                if amount is not None:
                    deductions_total += amount

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Reconciliation for {day} aborted")
            raise

        processed = sum(counts.values())
        logger.info(
            f"Reconciliation for {day} (office={office_id}): {processed} processed, "
            f"{counts['ABSENT']} absent, {counts['LEAVE']} on leave, "
            f"{counts['HOLIDAY']} holiday, {len(skipped)} skipped"
        )
        return {
            "date": day.isoformat(),
            "office_id": office_id,
            "processed_count": processed,
            "summary": {
                "absent": counts[AttendanceStatus.ABSENT.value],
                "leave": counts[AttendanceStatus.LEAVE.value],
                "holiday": counts[AttendanceStatus.HOLIDAY.value],
                "already_recorded": len(recorded),
                "skipped": skipped,
                "deductions_total": to_money(deductions_total),
            },
        }
