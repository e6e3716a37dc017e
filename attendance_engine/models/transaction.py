from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from attendance_engine.database import Base
import enum


class PayType(str, enum.Enum):
    SALARY = "SALARY"
    OVERTIME = "OVERTIME"
    DEDUCTION = "DEDUCTION"
    ADVANCE = "ADVANCE"

    @property
    def sign(self) -> int:
        """Direction of the amount when netting a ledger: credits +1, debits -1."""
        return 1 if self in (PayType.SALARY, PayType.OVERTIME) else -1


class Transaction(Base):
    """Append-only ledger row. Amounts are positive; pay_type carries the sign."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    pay_type = Column(String, nullable=False, index=True)
    date = Column(DateTime, nullable=False, index=True)  # UTC
    description = Column(String, nullable=True)

    employee = relationship("Employee")
