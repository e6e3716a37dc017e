import calendar
import logging
from collections import OrderedDict
from datetime import date
from typing import Any, Dict, List, Union

from sqlalchemy.exc import IntegrityError
from tenacity import retry, stop_after_attempt, retry_if_exception_type

from attendance_engine.core import civil_day
from attendance_engine.core.exceptions import (
    ConsistencyFault,
    HolidayExists,
    HolidayNotFound,
    ValidationError,
)
from attendance_engine.database import atomic
from attendance_engine.models.attendance import Attendance, AttendanceOrigin, AttendanceStatus
from attendance_engine.models.employee import Employee, EmployeeStatus
from attendance_engine.models.holiday import Holiday
from attendance_engine.services.base import BaseService

logger = logging.getLogger(__name__)


class HolidayService(BaseService):
    """Attendance side effects of declaring and retracting holidays."""

    @retry(
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type(ConsistencyFault),
        reraise=True
    )
    def declare_holiday(self, day: Union[str, date], description: str) -> Dict[str, Any]:
        """
        Add a holiday. For today or an earlier day, employees without a row
        that day are marked HOLIDAY; later days are left to reconciliation.
        """
        day = civil_day.parse_civil_date(day)
        if not description or not description.strip():
            raise ValidationError("A description is required", error_code="DESCRIPTION_REQUIRED")
        today = civil_day.civil_day_of(self.now())
        marker = civil_day.day_marker(day)
        marked = 0

        try:
            with atomic(self.db):
                if self.db.query(Holiday.id).filter(Holiday.date == day).first():
                    raise HolidayExists(day)
                holiday = Holiday(date=day, description=description.strip())
                self.db.add(holiday)

                if day <= today:
                    recorded = {
                        row.employee_id
                        for row in self.db.query(Attendance.employee_id).filter(Attendance.date == marker).all()
                    }
                    employees = self.db.query(Employee).filter(
                        Employee.status == EmployeeStatus.ACTIVE.value
                    ).all()
                    for employee in employees:
                        if employee.id in recorded:
                            continue
                        self.db.add(Attendance(
                            employee_id=employee.id,
                            date=marker,
                            overtime_minutes=0,
                            status=AttendanceStatus.HOLIDAY.value,
                            origin=AttendanceOrigin.HOLIDAY.value,
                        ))
                        marked += 1
                self.db.flush()
        except IntegrityError as e:
            raise ConsistencyFault("Holiday or attendance row created concurrently", {"date": day.isoformat()}) from e

        logger.info(f"Holiday declared on {day}; {marked} employee(s) marked")
        return {
            "id": holiday.id,
            "date": holiday.date.isoformat(),
            "description": holiday.description,
            "marked_employees": marked,
        }

    def retract_holiday(self, holiday_id: int) -> Dict[str, Any]:
        """Delete a holiday together with the HOLIDAY attendance rows of its day."""
        with atomic(self.db):
            holiday = self.db.get(Holiday, holiday_id)
            if not holiday:
                raise HolidayNotFound(holiday_id)
            day = holiday.date
            removed = self.db.query(Attendance).filter(
                Attendance.date == civil_day.day_marker(day),
                Attendance.status == AttendanceStatus.HOLIDAY.value,
            ).delete(synchronize_session=False)
            self.db.delete(holiday)

        logger.info(f"Holiday {holiday_id} on {day} retracted; {removed} attendance row(s) removed")
        return {"id": holiday_id, "date": day.isoformat(), "removed_attendance": removed}

    def get_holidays_by_year(self, year: int) -> List[Dict[str, Any]]:
        rows = self.db.query(Holiday).filter(
            Holiday.date >= date(year, 1, 1),
            Holiday.date < date(year + 1, 1, 1),
        ).order_by(Holiday.date.asc()).all()

        grouped: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
        for h in rows:
            grouped.setdefault(calendar.month_name[h.date.month], []).append({
                "id": h.id,
                "date": h.date.isoformat(),
                "description": h.description,
            })
        return [{"month": month, "holidays": holidays} for month, holidays in grouped.items()]
