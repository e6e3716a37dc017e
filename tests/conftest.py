import pytest
import os
from datetime import datetime, time, timezone
from decimal import Decimal
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

from attendance_engine.core.civil_day import BUSINESS_TZ, office_time_value
from attendance_engine.core.clock import Clock
from attendance_engine.database import Base, get_db, enable_sqlite_savepoints, init_db
from attendance_engine.dependencies import get_clock
from attendance_engine.main import app
from attendance_engine.models import Employee, EmployeeStatus, Office
from fastapi.testclient import TestClient


class FrozenClock(Clock):
    """Clock pinned to a moment, moved explicitly in local wall-clock terms."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def set_local(self, year, month, day, hour=0, minute=0, second=0):
        self.instant = datetime(year, month, day, hour, minute, second, tzinfo=BUSINESS_TZ).astimezone(timezone.utc)
        return self.instant


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test, savepoint-capable like the app engine."""
    test_engine = enable_sqlite_savepoints(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    init_db(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture(scope="function")
def clock():
    """Monday 2026-10-19, 08:55 local time."""
    frozen = FrozenClock(datetime.now(timezone.utc))
    frozen.set_local(2026, 10, 19, 8, 55)
    return frozen


@pytest.fixture(scope="function")
def office(db_session):
    """Office open 09:00-18:00 local time."""
    office = Office(
        name="Head Office",
        checkin=office_time_value(time(9, 0)),
        checkout=office_time_value(time(18, 0)),
        break_time=60,
    )
    db_session.add(office)
    db_session.commit()
    return office


@pytest.fixture(scope="function")
def make_employee(db_session, office):
    def _make_employee(name="Asha Rao", base_salary="31000.00", overtime_rate="100.00",
                       leave_balance=0, office_id=None, status=EmployeeStatus.ACTIVE):
        employee = Employee(
            name=name,
            phone="9800000000",
            base_salary=Decimal(base_salary),
            overtime_rate=Decimal(overtime_rate),
            leave_balance=leave_balance,
            office_id=office_id or office.id,
            status=status.value,
        )
        db_session.add(employee)
        db_session.commit()
        return employee
    return _make_employee


@pytest.fixture(scope="function")
def employee(make_employee):
    return make_employee()


@pytest.fixture(scope="function")
def client(db_session, clock):
    """Get a TestClient that uses the test database session and frozen clock via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
