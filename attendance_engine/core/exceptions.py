from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


# --- Validation (malformed or unacceptable input, recoverable by the caller) ---

class ValidationError(AppException):
    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=400, error_code=error_code, details=details)


class InvalidDateRange(ValidationError):
    def __init__(self, from_day, to_day):
        super().__init__(
            message=f"Start date {from_day} is after end date {to_day}",
            error_code="INVALID_DATE_RANGE",
            details={"from_date": str(from_day), "to_date": str(to_day)}
        )


class HolidayBoundary(ValidationError):
    def __init__(self, day):
        super().__init__(
            message=f"Leave cannot start or end on a holiday ({day})",
            error_code="HOLIDAY_BOUNDARY",
            details={"date": str(day)}
        )


class NoWorkingDays(ValidationError):
    def __init__(self):
        super().__init__(message="Requested range contains no working days", error_code="NO_WORKING_DAYS")


class InactiveEmployee(ValidationError):
    def __init__(self, employee_id: int):
        super().__init__(
            message=f"Employee {employee_id} is not active",
            error_code="INACTIVE_EMPLOYEE",
            details={"employee_id": employee_id}
        )


# --- Not found ---

class NotFoundError(AppException):
    def __init__(self, message: str, error_code: str = "NOT_FOUND", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=404, error_code=error_code, details=details)


class EmployeeNotFound(NotFoundError):
    def __init__(self, employee_id: int):
        super().__init__(f"Employee {employee_id} not found", "EMPLOYEE_NOT_FOUND", {"employee_id": employee_id})


class OfficeNotFound(NotFoundError):
    def __init__(self, office_id: Optional[int]):
        super().__init__(f"Office {office_id} not found", "OFFICE_NOT_FOUND", {"office_id": office_id})


class LeaveNotFound(NotFoundError):
    def __init__(self, leave_id: int):
        super().__init__(f"Leave {leave_id} not found", "LEAVE_NOT_FOUND", {"leave_id": leave_id})


class HolidayNotFound(NotFoundError):
    def __init__(self, holiday_id: int):
        super().__init__(f"Holiday {holiday_id} not found", "HOLIDAY_NOT_FOUND", {"holiday_id": holiday_id})


# --- Business-rule conflicts (never retried) ---

class ConflictError(AppException):
    def __init__(self, message: str, error_code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=409, error_code=error_code, details=details)


class AlreadyCheckedIn(ConflictError):
    def __init__(self, employee_id: int, day):
        super().__init__(
            f"Employee {employee_id} already has attendance for {day}",
            "ALREADY_CHECKED_IN",
            {"employee_id": employee_id, "date": str(day)}
        )


class AlreadyCheckedOut(ConflictError):
    def __init__(self, employee_id: int, day):
        super().__init__(
            f"Employee {employee_id} already checked out on {day}",
            "ALREADY_CHECKED_OUT",
            {"employee_id": employee_id, "date": str(day)}
        )


class NoCheckIn(ConflictError):
    def __init__(self, employee_id: int, day):
        super().__init__(
            f"No check-in found for employee {employee_id} on {day}",
            "NO_CHECK_IN",
            {"employee_id": employee_id, "date": str(day)}
        )


class CrossDayCheckout(ConflictError):
    def __init__(self, employee_id: int, check_in_day, checkout_day):
        super().__init__(
            f"Check-out on {checkout_day} cannot close the check-in of {check_in_day}",
            "CROSS_DAY_CHECKOUT",
            {"employee_id": employee_id, "check_in_date": str(check_in_day), "check_out_date": str(checkout_day)}
        )


class OverlappingLeave(ConflictError):
    def __init__(self, leave_id: int):
        super().__init__(
            "Requested dates overlap an existing leave",
            "OVERLAPPING_LEAVE",
            {"leave_id": leave_id}
        )


class LeaveAlreadyDecided(ConflictError):
    def __init__(self, leave_id: int, status: str):
        super().__init__(
            f"Leave {leave_id} is already {status}",
            "LEAVE_ALREADY_DECIDED",
            {"leave_id": leave_id, "status": status}
        )


class InsufficientLeaveBalance(ConflictError):
    def __init__(self, employee_id: int, balance: int, required: int):
        super().__init__(
            f"Leave balance {balance} is less than the {required} paid day(s) being approved",
            "INSUFFICIENT_LEAVE_BALANCE",
            {"employee_id": employee_id, "balance": balance, "required": required}
        )


class DuplicateSalary(ConflictError):
    def __init__(self, employee_id: int, month: int, year: int):
        super().__init__(
            "Salary transaction has already been done for this employee in the current month",
            "DUPLICATE_SALARY",
            {"employee_id": employee_id, "month": month, "year": year}
        )


class AlreadyProcessed(ConflictError):
    def __init__(self, day, office_id: Optional[int]):
        super().__init__(
            f"Reconciliation already ran for {day}",
            "ALREADY_PROCESSED",
            {"date": str(day), "office_id": office_id}
        )


class HolidayExists(ConflictError):
    def __init__(self, day):
        super().__init__(f"A holiday already exists on {day}", "HOLIDAY_EXISTS", {"date": str(day)})


# --- Invariant violated mid-transaction (retried once by the service) ---

class ConsistencyFault(AppException):
    def __init__(self, message: str = "Concurrent write detected", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=409, error_code="CONSISTENCY_FAULT", details=details)
