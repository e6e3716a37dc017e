from typing import Optional
from fastapi import APIRouter, Depends, Query

from attendance_engine.dependencies import get_attendance_service
from attendance_engine.schemas.attendance import CheckInResponse, CheckOutResponse
from attendance_engine.services.attendance_service import AttendanceService

router = APIRouter(prefix="/attendance", tags=["attendance"])


@router.get("/dashboard")
def today_dashboard(
    office_id: Optional[int] = None,
    service: AttendanceService = Depends(get_attendance_service)
):
    """Today's attendance totals, absentees and latest pending leaves."""
    return service.get_today_dashboard(office_id)


@router.post("/{employee_id}/check-in", response_model=CheckInResponse)
def check_in(employee_id: int, service: AttendanceService = Depends(get_attendance_service)):
    return service.check_in(employee_id)


@router.post("/{employee_id}/check-out", response_model=CheckOutResponse)
def check_out(employee_id: int, service: AttendanceService = Depends(get_attendance_service)):
    return service.check_out(employee_id)


@router.get("/{employee_id}")
def month_attendance(
    employee_id: int,
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=1970),
    service: AttendanceService = Depends(get_attendance_service)
):
    return service.get_month_attendance(employee_id, month, year)
