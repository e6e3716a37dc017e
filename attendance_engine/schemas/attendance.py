from pydantic import BaseModel
from decimal import Decimal
from typing import Optional


class CheckInResponse(BaseModel):
    attendance_id: int
    status: str
    timestamp: str


class CheckOutResponse(CheckInResponse):
    overtime_minutes: int
    overtime_pay: Optional[Decimal] = None
