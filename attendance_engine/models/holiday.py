from sqlalchemy import Column, Integer, String, Date
from attendance_engine.database import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, unique=True, nullable=False, index=True)
    description = Column(String, nullable=False)
