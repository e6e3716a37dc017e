from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from attendance_engine.database import Base
import enum


class LeaveType(str, enum.Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Leave(Base):
    __tablename__ = "leaves"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    reason = Column(String, nullable=False)
    from_date = Column(Date, nullable=False)  # inclusive civil day
    to_date = Column(Date, nullable=False)  # inclusive civil day
    total_days = Column(Integer, nullable=False)  # working days only
    type = Column(String, nullable=False)
    status = Column(String, default=LeaveStatus.PENDING.value, nullable=False, index=True)
    apply_date = Column(DateTime, nullable=False)

    employee = relationship("Employee")
