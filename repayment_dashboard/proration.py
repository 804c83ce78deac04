"""Spread non-bill event amounts evenly over the days they cover.

``monthly`` events cover the calendar month they fall in, extended to
``repeat_interval`` consecutive months.  ``yearly`` events cover the whole
fiscal year whatever their anchor date.  Any other repeat type is treated
as monthly.  Spans are clipped to the fiscal year before the amount is
divided over the remaining days.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional, Tuple

from .fiscal_calendar import add_months
from .models import MONTHLY, YEARLY, BudgetEvent, FiscalYearBounds, ProrationResult

logger = logging.getLogger(__name__)


def _monthly_span(anchor_date: date, repeat_interval: int) -> Tuple[date, date]:
    start = anchor_date.replace(day=1)
    end_year, end_month = add_months(start.year, start.month, repeat_interval)
    return start, date(end_year, end_month, 1) - timedelta(days=1)


def proration_span(event: BudgetEvent, anchor_date: date, fiscal_bounds: FiscalYearBounds,
                   log_level: int = logging.WARNING) -> Tuple[date, date]:
    """Return the unclipped span an event's amount is spread across.

    ``log_level`` is used for the unknown repeat type message.
    """
    if event.repeat_type == YEARLY:
        return fiscal_bounds.start_date, fiscal_bounds.end_date
    if event.repeat_type != MONTHLY:
        logger.log(log_level, "Unknown repeat_type: %s, assuming monthly", event.repeat_type)
    return _monthly_span(anchor_date, event.repeat_interval)


def prorate(event: BudgetEvent, anchor_date: date, fiscal_bounds: FiscalYearBounds,
            log_level: int = logging.WARNING) -> Optional[ProrationResult]:
    """Compute the clipped span and even daily rate for ``event``.

    Returns ``None`` when clipping leaves no day inside the fiscal year.
    Callers that prorate the same event repeatedly pass a lower
    ``log_level`` so an unknown repeat type is reported once.
    """
    start, end = proration_span(event, anchor_date, fiscal_bounds, log_level)
    start = max(start, fiscal_bounds.start_date)
    end = min(end, fiscal_bounds.end_date)
    if start > end:
        return None
    total_days = (end - start).days + 1
    return ProrationResult(
        start_date=start,
        end_date=end,
        daily_amount=abs(event.amount) / total_days,
    )


def overlap_days(result: ProrationResult, period_start: date, period_end: date) -> int:
    """Number of days (inclusive) shared by a proration span and a period."""
    start = max(result.start_date, period_start)
    end = min(result.end_date, period_end)
    if start > end:
        return 0
    return (end - start).days + 1
