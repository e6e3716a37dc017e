"""
Holiday Router

Declaring a holiday marks today's (or a past day's) attendance; retracting
one removes the HOLIDAY rows it produced. Both live in the holiday service.
"""
from fastapi import APIRouter, Depends, Query

from attendance_engine.dependencies import get_holiday_service
from attendance_engine.schemas.holiday import HolidayCreate, HolidayResponse, HolidayRetractResponse
from attendance_engine.services.holiday_service import HolidayService

router = APIRouter(prefix="/holidays", tags=["holidays"])


@router.post("", response_model=HolidayResponse)
def declare_holiday(request: HolidayCreate, service: HolidayService = Depends(get_holiday_service)):
    return service.declare_holiday(request.date, request.description)


@router.get("")
def holidays_by_year(
    year: int = Query(..., ge=1970),
    service: HolidayService = Depends(get_holiday_service)
):
    """Holidays of a year grouped by month name."""
    return service.get_holidays_by_year(year)


@router.delete("/{holiday_id}", response_model=HolidayRetractResponse)
def retract_holiday(holiday_id: int, service: HolidayService = Depends(get_holiday_service)):
    return service.retract_holiday(holiday_id)
