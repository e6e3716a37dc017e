import functools
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from attendance_engine.core.clock import Clock, system_clock
from attendance_engine.core.exceptions import EmployeeNotFound, OfficeNotFound
from attendance_engine.core.logging import employee_context
from attendance_engine.models.employee import Employee
from attendance_engine.models.office import Office


def scoped_to_employee(method):
    """Run a service method whose first argument is an employee id inside that employee's log context."""
    @functools.wraps(method)
    def wrapper(self, employee_id, *args, **kwargs):
        with employee_context(employee_id):
            return method(self, employee_id, *args, **kwargs)
    return wrapper


class BaseService:
    """
    Shared plumbing for the service layer: the session, the clock and
    the per-employee lookups every flow starts from.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or system_clock
        self._logger = logging.getLogger(self.__class__.__module__)

    def now(self) -> datetime:
        return self.clock.now()

    def log_warning(self, message: str, **extra):
        self._logger.warning(message, extra=extra or None)

    def get_employee(self, employee_id: int, lock: bool = False) -> Employee:
        """
        Load an employee. With `lock`, the row is selected FOR UPDATE so
        read-then-write flows for one employee run one at a time.
        """
        query = self.db.query(Employee).filter(Employee.id == employee_id)
        if lock:
            query = query.with_for_update()
        employee = query.first()
        if not employee:
            raise EmployeeNotFound(employee_id)
        return employee

    def get_office(self, office_id: Optional[int]) -> Office:
        office = self.db.get(Office, office_id) if office_id is not None else None
        if not office:
            raise OfficeNotFound(office_id)
        return office
