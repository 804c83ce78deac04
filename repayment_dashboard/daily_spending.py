"""Build and query the per-day planned spending map for a fiscal year.

Rules applied by :func:`build_daily_spending_map`:

1. Bills (``category.is_bill``) are spent in full on their own date.
2. Non-bills are prorated according to their repeat cadence
   (see :mod:`repayment_dashboard.proration`).
3. Transfers are ignored.
4. The credit card repayments category is always ignored.

The map is keyed by ISO date strings and always holds every day of the
fiscal year, in chronological order.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable

import pandas as pd

from .config import REPAYMENT_CATEGORY
from .models import BudgetEvent, EventDataError, FiscalYearBounds
from .proration import prorate

logger = logging.getLogger(__name__)

DailySpendingMap = Dict[str, float]


def _is_excluded(event: BudgetEvent, excluded_category: str) -> bool:
    return event.counts_as_transfer or event.category.title == excluded_category


def build_daily_spending_map(
    events: Iterable[BudgetEvent],
    fiscal_bounds: FiscalYearBounds,
    excluded_category: str = REPAYMENT_CATEGORY,
) -> DailySpendingMap:
    """Return planned spending per day of the fiscal year.

    Events with an unparseable date are skipped with a warning.
    """
    daily_spending: DailySpendingMap = {day.isoformat(): 0.0 for day in fiscal_bounds.iter_dates()}

    for event in events:
        if _is_excluded(event, excluded_category):
            continue

        try:
            event_date = event.parsed_date()
        except EventDataError as exc:
            logger.warning("Skipping event %s in daily map: %s", event.id, exc)
            continue

        if not fiscal_bounds.contains(event_date):
            continue

        amount = abs(event.amount)
        if event.is_bill:
            key = event_date.isoformat()
            daily_spending[key] = daily_spending.get(key, 0.0) + amount
            continue

        result = prorate(event, event_date, fiscal_bounds)
        if result is None:
            continue
        current = result.start_date
        while current <= result.end_date:
            key = current.isoformat()
            daily_spending[key] = daily_spending.get(key, 0.0) + result.daily_amount
            current += timedelta(days=1)

    return daily_spending


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def get_spending_for_date(daily_spending: DailySpendingMap, day: date) -> float:
    return daily_spending.get(_as_date(day).isoformat(), 0.0)


def get_spending_for_date_range(daily_spending: DailySpendingMap, start: date, end: date) -> float:
    """Total planned spending from ``start`` to ``end`` inclusive."""
    total = 0.0
    current = _as_date(start)
    last = _as_date(end)
    while current <= last:
        total += get_spending_for_date(daily_spending, current)
        current += timedelta(days=1)
    return total


def daily_spending_series(daily_spending: DailySpendingMap) -> pd.Series:
    """The map as a float Series indexed by ``Timestamp`` and named ``Spending``."""
    if not daily_spending:
        return pd.Series(dtype=float, name='Spending')
    series = pd.Series(daily_spending, dtype=float, name='Spending')
    series.index = pd.to_datetime(series.index)
    series.index.name = 'Date'
    return series.sort_index()


def get_spending_statistics(daily_spending: DailySpendingMap) -> Dict[str, Any]:
    series = daily_spending_series(daily_spending)
    if series.empty:
        return {'total': 0.0, 'average': None, 'max': None, 'min': None, 'days_count': 0}
    return {
        'total': float(series.sum()),
        'average': float(series.mean()),
        'max': float(series.max()),
        'min': float(series.min()),
        'days_count': int(series.size),
    }
