# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import office, employee, attendance, leave, holiday, transaction

# Explicit class exports for cleaner imports
from .office import Office
from .employee import Employee, EmployeeStatus
from .attendance import Attendance, AttendanceStatus, AttendanceOrigin
from .leave import Leave, LeaveType, LeaveStatus
from .holiday import Holiday
from .transaction import Transaction, PayType

__all__ = [
    "Office",
    "Employee",
    "EmployeeStatus",
    "Attendance",
    "AttendanceStatus",
    "AttendanceOrigin",
    "Leave",
    "LeaveType",
    "LeaveStatus",
    "Holiday",
    "Transaction",
    "PayType",
]
