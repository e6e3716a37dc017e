from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from attendance_engine.database import Base
import enum


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"
    LEAVE = "LEAVE"
    HOLIDAY = "HOLIDAY"


class AttendanceOrigin(str, enum.Enum):
    """Which flow created the row."""
    CHECK_IN = "CHECK_IN"
    RECONCILIATION = "RECONCILIATION"
    HOLIDAY = "HOLIDAY"


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    # UTC instant of the local midnight that opens the civil day
    date = Column(DateTime, nullable=False, index=True)
    check_in_time = Column(DateTime, nullable=True)
    check_out_time = Column(DateTime, nullable=True)
    overtime_minutes = Column(Integer, default=0, nullable=False)
    status = Column(String, nullable=False)
    origin = Column(String, nullable=False, default=AttendanceOrigin.CHECK_IN.value)

    employee = relationship("Employee")

    @property
    def is_checked_out(self) -> bool:
        return self.check_out_time is not None
