from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from attendance_engine.database import Base


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    base_salary = Column(Numeric(12, 2), nullable=False, default=0)  # monthly
    overtime_rate = Column(Numeric(12, 2), nullable=False, default=0)  # per hour
    leave_balance = Column(Integer, nullable=False, default=0)  # days, never negative
    office_id = Column(Integer, ForeignKey("offices.id"), nullable=False, index=True)
    status = Column(String, default=EmployeeStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    office = relationship("Office", back_populates="employees")

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE.value

    def __repr__(self):
        return f"<Employee {self.id} {self.name}>"
