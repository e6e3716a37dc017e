from typing import List
from fastapi import APIRouter, Depends

from attendance_engine.dependencies import get_leave_service
from attendance_engine.schemas.leave import LeaveApplyRequest, LeaveDecisionRequest, LeaveSegmentResponse
from attendance_engine.services.leave_service import LeaveService

router = APIRouter(prefix="/leave", tags=["leave"])


@router.get("/summary")
def leave_summary(service: LeaveService = Depends(get_leave_service)):
    return service.get_leave_summary()


@router.post("/{employee_id}/apply", response_model=List[LeaveSegmentResponse])
def apply_leave(
    employee_id: int,
    request: LeaveApplyRequest,
    service: LeaveService = Depends(get_leave_service)
):
    """Returns one segment, or a PAID segment followed by an UNPAID remainder."""
    return service.apply_leave(employee_id, request.from_date, request.to_date, request.reason)


@router.post("/{leave_id}/decision", response_model=LeaveSegmentResponse)
def decide_leave(
    leave_id: int,
    request: LeaveDecisionRequest,
    service: LeaveService = Depends(get_leave_service)
):
    return service.approve_or_reject(leave_id, request.decision)


@router.post("/{leave_id}/reject", response_model=LeaveSegmentResponse)
def reject_leave(leave_id: int, service: LeaveService = Depends(get_leave_service)):
    return service.reject(leave_id)
