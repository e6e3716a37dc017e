"""
Request-scoped dependencies shared by the routers.

The clock is injected so that tests (and batch replays) can pin "now";
services receive the session and clock explicitly and never look them up.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from attendance_engine.core.clock import Clock, system_clock
from attendance_engine.database import get_db
from attendance_engine.services.attendance_service import AttendanceService
from attendance_engine.services.holiday_service import HolidayService
from attendance_engine.services.leave_service import LeaveService
from attendance_engine.services.ledger_service import LedgerService
from attendance_engine.services.reconciliation_service import ReconciliationService


def get_clock() -> Clock:
    return system_clock


def get_attendance_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> AttendanceService:
    return AttendanceService(db, clock)


def get_leave_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LeaveService:
    return LeaveService(db, clock)


def get_ledger_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LedgerService:
    return LedgerService(db, clock)


def get_reconciliation_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> ReconciliationService:
    return ReconciliationService(db, clock)


def get_holiday_service(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> HolidayService:
    return HolidayService(db, clock)


__all__ = [
    "get_db",
    "get_clock",
    "get_attendance_service",
    "get_leave_service",
    "get_ledger_service",
    "get_reconciliation_service",
    "get_holiday_service",
]
