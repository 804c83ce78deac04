"""NZ fiscal-year bounds and calendar-month partitioning."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional

from .config import get_timezone
from .models import FiscalYearBounds, MonthlyPeriod

FISCAL_YEAR_START_MONTH = 4


def localize(now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Express ``now`` in the fiscal zone; naive values are wall-clock time there."""
    zone = tz or get_timezone()
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now.astimezone(zone)


def start_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz or get_timezone())


def end_of_day(day: date, tz: Optional[tzinfo] = None) -> datetime:
    return datetime.combine(day, time.max, tzinfo=tz or get_timezone())


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    """Shift a (year, month) pair, rolling the year over as needed."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def current_fiscal_year(now: datetime, tz: Optional[tzinfo] = None) -> FiscalYearBounds:
    """Return the fiscal year (1 April to 31 March) containing ``now``."""
    zone = tz or get_timezone()
    local_now = localize(now, zone)
    start_year = local_now.year if local_now.month >= FISCAL_YEAR_START_MONTH else local_now.year - 1
    return FiscalYearBounds(
        start=start_of_day(date(start_year, FISCAL_YEAR_START_MONTH, 1), zone),
        end=end_of_day(date(start_year + 1, FISCAL_YEAR_START_MONTH - 1, 31), zone),
    )


def monthly_periods(start: date, end: date) -> List[MonthlyPeriod]:
    """Split ``[start, end]`` into calendar months, clipping the outer chunks.

    ``datetime`` arguments are reduced to their date.
    """
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    if start > end:
        return []

    periods: List[MonthlyPeriod] = []
    year, month = start.year, start.month
    while date(year, month, 1) <= end:
        next_year, next_month = add_months(year, month, 1)
        month_end = date(next_year, next_month, 1) - timedelta(days=1)
        periods.append(MonthlyPeriod(
            start=max(date(year, month, 1), start),
            end=min(month_end, end),
            year=year,
            month=month,
        ))
        year, month = next_year, next_month
    return periods
