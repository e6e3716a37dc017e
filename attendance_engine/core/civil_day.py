"""
Civil Day Calculator.

Every instant is stored as naive UTC, while every business rule (today's
attendance, lateness, this month's ledger) is phrased in the fixed local
civil calendar. This module is the only place that knows the offset between
the two; services call it instead of doing their own offset arithmetic.
"""
import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, NamedTuple, Optional, Tuple, Union

from attendance_engine.core.config import settings
from attendance_engine.core.exceptions import ValidationError

BUSINESS_TZ = timezone(timedelta(minutes=settings.business_utc_offset_minutes), "IST")

# Office time-of-day values are stored on this local date; only the time matters.
OFFICE_TIME_ANCHOR = date(1970, 1, 1)


class MonthWindow(NamedTuple):
    start: datetime
    end: datetime
    # True when `end` was pulled back to "now": the upper bound is then inclusive.
    clamped: bool


def as_utc(instant: datetime) -> datetime:
    """Normalise a stored (naive UTC) or aware datetime to aware UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_storage(instant: datetime) -> datetime:
    """Naive UTC, the representation written to DateTime columns."""
    return as_utc(instant).replace(tzinfo=None)


def to_local(instant: datetime) -> datetime:
    return as_utc(instant).astimezone(BUSINESS_TZ)


def civil_day_of(instant: datetime) -> date:
    return to_local(instant).date()


def local_midnight(day: date) -> datetime:
    """Aware UTC instant at which the civil day `day` begins."""
    return datetime.combine(day, time.min, tzinfo=BUSINESS_TZ).astimezone(timezone.utc)


def civil_day_bounds(value: Union[date, datetime]) -> Tuple[datetime, datetime]:
    """Return (start, end) in UTC bounding the civil day of `value`; end is exclusive."""
    day = civil_day_of(value) if isinstance(value, datetime) else value
    return local_midnight(day), local_midnight(day + timedelta(days=1))


def day_marker(day: date) -> datetime:
    """Stored value identifying a civil day on attendance rows."""
    return to_storage(local_midnight(day))


def minutes_of_day(instant: datetime) -> int:
    local = to_local(instant)
    return local.hour * 60 + local.minute


def office_time_value(wall_clock: time) -> datetime:
    """Build the stored value for an office time-of-day given as local wall-clock time."""
    return to_storage(datetime.combine(OFFICE_TIME_ANCHOR, wall_clock, tzinfo=BUSINESS_TZ))


def office_time_today(stored: datetime, now: datetime) -> datetime:
    """Map a stored office time-of-day onto the civil day of `now` (aware UTC)."""
    wall_clock = to_local(stored).time()
    return datetime.combine(civil_day_of(now), wall_clock, tzinfo=BUSINESS_TZ).astimezone(timezone.utc)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int, now: Optional[datetime] = None) -> MonthWindow:
    """
    UTC window covering a civil month.

    When `now` falls inside the requested month the end is clamped to `now`,
    so an in-progress month never reports future-dated rows.
    """
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}", details={"month": month})
    start = local_midnight(date(year, month, 1))
    next_first = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    end = local_midnight(next_first)
    if now is not None:
        current = as_utc(now)
        if start <= current < end:
            return MonthWindow(start, current, True)
    return MonthWindow(start, end, False)


def iter_days(from_day: date, to_day: date) -> Iterator[date]:
    """Every civil day in [from_day, to_day], inclusive."""
    day = from_day
    while day <= to_day:
        yield day
        day += timedelta(days=1)


def parse_civil_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return civil_day_of(value)
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid civil date '{value}', expected YYYY-MM-DD",
            error_code="INVALID_DATE",
            details={"value": str(value)}
        )
