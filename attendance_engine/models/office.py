from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from attendance_engine.database import Base


class Office(Base):
    __tablename__ = "offices"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    # Stored as UTC instants; only the local wall-clock time-of-day is meaningful.
    checkin = Column(DateTime, nullable=False)
    checkout = Column(DateTime, nullable=False)
    break_time = Column(Integer, default=0)  # minutes, informational

    employees = relationship("Employee", back_populates="office")

    def __repr__(self):
        return f"<Office {self.id} {self.name}>"
