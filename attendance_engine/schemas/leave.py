from pydantic import BaseModel, ConfigDict, Field
from datetime import date, datetime


class LeaveApplyRequest(BaseModel):
    reason: str = Field(min_length=1)
    from_date: date
    to_date: date


class LeaveDecisionRequest(BaseModel):
    decision: str  # APPROVED or REJECTED


class LeaveSegmentResponse(BaseModel):
    id: int
    employee_id: int
    reason: str
    from_date: date
    to_date: date
    total_days: int
    type: str
    status: str
    apply_date: datetime

    model_config = ConfigDict(from_attributes=True)
