"""
Leave Service

Splits a requested range into PAID / UNPAID segments against the employee's
balance, and applies the financial effects of an approval.

The balance is never touched when a leave is applied for; it moves only
when a PAID segment is approved.
"""

import logging
from datetime import date
from typing import Any, Dict, List, NamedTuple, Set, Union

from attendance_engine.core import civil_day
from attendance_engine.core.config import settings
from attendance_engine.core.exceptions import (
    HolidayBoundary,
    InactiveEmployee,
    InsufficientLeaveBalance,
    InvalidDateRange,
    LeaveAlreadyDecided,
    LeaveNotFound,
    NoWorkingDays,
    OverlappingLeave,
    ValidationError,
)
from attendance_engine.core.money import daily_rate
from attendance_engine.database import atomic
from attendance_engine.models.employee import Employee
from attendance_engine.models.holiday import Holiday
from attendance_engine.models.leave import Leave, LeaveStatus, LeaveType
from attendance_engine.services.base import BaseService, scoped_to_employee
from attendance_engine.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class LeaveSegment(NamedTuple):
    type: LeaveType
    from_date: date
    to_date: date
    total_days: int


def leaves_overlap(existing_from: date, existing_to: date, requested_from: date, requested_to: date) -> bool:
    return (
        existing_from <= requested_from <= existing_to
        or existing_from <= requested_to <= existing_to
        or (requested_from <= existing_from and existing_to <= requested_to)
        or (existing_from == requested_from and existing_to == requested_to)
    )


def working_days_between(from_day: date, to_day: date, holidays: Set[date]) -> List[date]:
    return [d for d in civil_day.iter_days(from_day, to_day) if d not in holidays]


def allocate_leave(working_days: List[date], balance: int) -> List[LeaveSegment]:
    """
    Split ordered working days into at most one PAID and one UNPAID segment.

    Segment boundaries are working days, so holidays inside the range are
    counted by neither segment.
    """
    if not working_days:
        return []
    count = len(working_days)
    if balance <= 0:
        return [LeaveSegment(LeaveType.UNPAID, working_days[0], working_days[-1], count)]
    if balance >= count:
        return [LeaveSegment(LeaveType.PAID, working_days[0], working_days[-1], count)]

    paid, unpaid = working_days[:balance], working_days[balance:]
    return [
        LeaveSegment(LeaveType.PAID, paid[0], paid[-1], len(paid)),
        LeaveSegment(LeaveType.UNPAID, unpaid[0], unpaid[-1], len(unpaid)),
    ]


def parse_decision(value: Union[str, LeaveStatus]) -> LeaveStatus:
    raw = value.value if isinstance(value, LeaveStatus) else str(value).upper()
    try:
        decision = LeaveStatus(raw)
    except ValueError:
        decision = None
    if decision not in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
        raise ValidationError(
            f"Invalid leave decision: {value}",
            error_code="INVALID_DECISION",
            details={"allowed": [LeaveStatus.APPROVED.value, LeaveStatus.REJECTED.value]}
        )
    return decision


def leave_to_dict(leave: Leave, employee_name: str = None) -> Dict[str, Any]:
    data = {
        "id": leave.id,
        "employee_id": leave.employee_id,
        "reason": leave.reason,
        "from_date": leave.from_date.isoformat(),
        "to_date": leave.to_date.isoformat(),
        "total_days": leave.total_days,
        "type": leave.type,
        "status": leave.status,
        "apply_date": civil_day.as_utc(leave.apply_date).isoformat(),
    }
    if employee_name is not None:
        data["employee_name"] = employee_name
    return data


class LeaveService(BaseService):

    def _holidays_between(self, from_day: date, to_day: date) -> Set[date]:
        rows = self.db.query(Holiday.date).filter(
            Holiday.date >= from_day,
            Holiday.date <= to_day,
        ).all()
        return {r.date for r in rows}

    def _ensure_no_overlap(self, employee_id: int, from_day: date, to_day: date):
        candidates = self.db.query(Leave).filter(
            Leave.employee_id == employee_id,
            Leave.status != LeaveStatus.REJECTED.value,
            Leave.from_date <= to_day,
            Leave.to_date >= from_day,
        ).all()
        for existing in candidates:
            if leaves_overlap(existing.from_date, existing.to_date, from_day, to_day):
                self.log_warning(f"Overlapping leave request for employee {employee_id}")
                raise OverlappingLeave(existing.id)

    @scoped_to_employee
    def apply_leave(
        self,
        employee_id: int,
        from_day: Union[str, date],
        to_day: Union[str, date],
        reason: str
    ) -> List[Leave]:
        """
        Create one or two PENDING leave rows covering the working days of the range.

        Order of checks: date order, overlap, holiday on a boundary, empty working-day set.
        """
        from_day = civil_day.parse_civil_date(from_day)
        to_day = civil_day.parse_civil_date(to_day)
        if not reason or not reason.strip():
            raise ValidationError("A reason is required", error_code="REASON_REQUIRED")
        if from_day > to_day:
            raise InvalidDateRange(from_day, to_day)

        now = self.now()
        with atomic(self.db):
            employee = self.get_employee(employee_id, lock=True)
            if not employee.is_active:
                raise InactiveEmployee(employee.id)

            self._ensure_no_overlap(employee.id, from_day, to_day)

            holidays = self._holidays_between(from_day, to_day)
            for boundary in (from_day, to_day):
                if boundary in holidays:
                    raise HolidayBoundary(boundary)

            working_days = working_days_between(from_day, to_day, holidays)
            if not working_days:
                raise NoWorkingDays()

            rows = [
                Leave(
                    employee_id=employee.id,
                    reason=reason.strip(),
                    from_date=segment.from_date,
                    to_date=segment.to_date,
                    total_days=segment.total_days,
                    type=segment.type.value,
                    status=LeaveStatus.PENDING.value,
                    apply_date=civil_day.to_storage(now),
                )
                for segment in allocate_leave(working_days, employee.leave_balance)
            ]
            self.db.add_all(rows)
            self.db.flush()

        logger.info(
            f"Leave applied for employee {employee_id}: "
            + ", ".join(f"{r.type} {r.from_date}..{r.to_date} ({r.total_days}d)" for r in rows)
        )
        return rows

    def approve_or_reject(self, leave_id: int, decision: Union[str, LeaveStatus]) -> Leave:
        """
        Decide a PENDING leave.

        APPROVED + PAID decrements the balance; an approval that would drive
        it negative is refused with InsufficientLeaveBalance. APPROVED + UNPAID
        appends one DEDUCTION per working day, each priced on its own month.
        Holidays inside the range are not charged, so the number of DEDUCTION
        rows equals the segment's `total_days`, never its calendar length.
        A zero daily rate writes no row.
        """
        decision = parse_decision(decision)

        with atomic(self.db):
            leave = self.db.get(Leave, leave_id)
            if not leave:
                raise LeaveNotFound(leave_id)
            employee = self.get_employee(leave.employee_id, lock=True)
            leave = self.db.query(Leave).filter(Leave.id == leave_id).with_for_update().first()

            if leave.status != LeaveStatus.PENDING.value:
                raise LeaveAlreadyDecided(leave.id, leave.status)

            if decision == LeaveStatus.APPROVED:
                if leave.type == LeaveType.PAID.value:
                    self._consume_balance(employee, leave)
                else:
                    self._charge_unpaid_days(employee, leave)

            leave.status = decision.value

        logger.info(f"Leave {leave_id} ({leave.type}) {decision.value.lower()} for employee {leave.employee_id}")
        return leave

    def reject(self, leave_id: int) -> Leave:
        return self.approve_or_reject(leave_id, LeaveStatus.REJECTED)

    def _consume_balance(self, employee: Employee, leave: Leave):
        if employee.leave_balance < leave.total_days:
            self.log_warning(f"Approval of leave {leave.id} exceeds balance of employee {employee.id}")
            raise InsufficientLeaveBalance(employee.id, employee.leave_balance, leave.total_days)
        employee.leave_balance -= leave.total_days

    def _charge_unpaid_days(self, employee: Employee, leave: Leave):
        ledger = LedgerService(self.db, self.clock)
        holidays = self._holidays_between(leave.from_date, leave.to_date)
        for day in working_days_between(leave.from_date, leave.to_date, holidays):
            amount = daily_rate(employee.base_salary, day.year, day.month)
            if amount > 0:
                ledger.record_deduction(employee, amount, day, "Unpaid leave")

    def get_leave_summary(self) -> Dict[str, List[Dict[str, Any]]]:
        """Latest approved and rejected leaves, plus every pending one."""

        def _fetch(status: LeaveStatus, limit: int = None):
            query = self.db.query(Leave, Employee.name).join(
                Employee, Employee.id == Leave.employee_id
            ).filter(Leave.status == status.value).order_by(Leave.apply_date.desc(), Leave.id.desc())
            if limit:
                query = query.limit(limit)
            return [leave_to_dict(leave, name) for leave, name in query.all()]

        return {
            "approved": _fetch(LeaveStatus.APPROVED, settings.leave_summary_limit),
            "rejected": _fetch(LeaveStatus.REJECTED, settings.leave_summary_limit),
            "pending": _fetch(LeaveStatus.PENDING),
        }
