from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from attendance_engine.core.config import settings
from attendance_engine.core.civil_day import days_in_month

Number = Union[Decimal, int, float, str]


def to_money(value: Number) -> Decimal:
    """Round half-up to currency precision."""
    quantum = Decimal(1).scaleb(-settings.currency_places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)


def daily_rate(base_salary: Number, year: int, month: int) -> Decimal:
    """One day of a monthly salary, priced on that month's own length."""
    return to_money(Decimal(str(base_salary)) / days_in_month(year, month))
