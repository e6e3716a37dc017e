import datetime
from pydantic import BaseModel, Field


class HolidayCreate(BaseModel):
    date: datetime.date
    description: str = Field(min_length=1)


class HolidayResponse(BaseModel):
    id: int
    date: datetime.date
    description: str
    marked_employees: int


class HolidayRetractResponse(BaseModel):
    id: int
    date: datetime.date
    removed_attendance: int
