"""Credit card billing periods, category breakdowns and headroom.

A billing period runs from the 3rd of one month to the 2nd of the next and
its total is repaid in the month after the period ends.  Period totals are
summed from the daily spending map while the category breakdown is
recomputed directly from the events, so the two only agree approximately.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .config import REPAYMENT_CATEGORY
from .daily_spending import DailySpendingMap, get_spending_for_date_range
from .fiscal_calendar import add_months, current_fiscal_year, end_of_day, localize, start_of_day
from .models import (
    BillBreakdown,
    BudgetEvent,
    CategoryBreakdown,
    CreditCardBillingPeriod,
    EventDataError,
)
from .proration import overlap_days, prorate

logger = logging.getLogger(__name__)

BILLING_START_DAY = 3
BILLING_END_DAY = 2


class InvalidHeadroomError(ValueError):
    """Raised for a headroom percentage outside 0-100."""


# ---------------------------------------------------------------------------
# Billing periods
# ---------------------------------------------------------------------------


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def generate_billing_periods(
    daily_spending: DailySpendingMap,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> List[CreditCardBillingPeriod]:
    """Return billing periods fully covered by ``daily_spending``.

    Only periods repaid in the current month or later are kept.  Totals and
    breakdowns are left empty.
    """
    if not daily_spending:
        return []
    available = sorted(date.fromisoformat(key) for key in daily_spending)
    earliest, latest = available[0], available[-1]

    local_now = localize(now, tz)
    current_month = (local_now.year, local_now.month)

    # A cycle starting on the 3rd of the earliest month would be incomplete
    year, month = earliest.year, earliest.month
    if earliest.day > BILLING_START_DAY:
        year, month = add_months(year, month, 1)

    periods: List[CreditCardBillingPeriod] = []
    while True:
        end_year, end_month = add_months(year, month, 1)
        start_day = date(year, month, BILLING_START_DAY)
        end_day = date(end_year, end_month, BILLING_END_DAY)
        if end_day > latest:
            break

        repayment = add_months(end_year, end_month, 1)
        if repayment >= current_month:
            periods.append(CreditCardBillingPeriod(
                repayment_month=f"{repayment[0]}-{repayment[1]:02d}",
                period_start=start_of_day(start_day, tz),
                period_end=end_of_day(end_day, tz),
            ))
        year, month = end_year, end_month
    return periods


def calculate_category_breakdown(
    events: Iterable[BudgetEvent],
    period_start: datetime,
    period_end: datetime,
    now: datetime,
    excluded_category: str = REPAYMENT_CATEGORY,
    tz: Optional[tzinfo] = None,
) -> List[CategoryBreakdown]:
    """Per-category spending within one billing period, largest first."""
    fiscal_bounds = current_fiscal_year(now, tz)
    first_day = _as_date(period_start)
    last_day = _as_date(period_end)

    bills: Dict[str, List[BillBreakdown]] = {}
    prorated: Dict[str, float] = {}

    for event in events:
        if event.counts_as_transfer or event.category.title == excluded_category:
            continue
        try:
            event_date = event.parsed_date()
        except EventDataError as exc:
            logger.warning("Skipping event %s in category breakdown: %s", event.id, exc)
            continue

        title = event.category.title
        if event.is_bill:
            if first_day <= event_date <= last_day:
                bills.setdefault(title, []).append(
                    BillBreakdown(event=event, amount=abs(event.amount), date=event_date)
                )
            continue

        # unknown repeat types are reported by the daily map
        result = prorate(event, event_date, fiscal_bounds, logging.DEBUG)
        if result is None:
            continue
        days = overlap_days(result, first_day, last_day)
        if days <= 0:
            continue
        prorated[title] = prorated.get(title, 0.0) + result.daily_amount * days

    breakdown: List[CategoryBreakdown] = []
    for title in list(dict.fromkeys([*bills, *prorated])):
        category_bills = tuple(bills.get(title, []))
        prorated_amount = prorated.get(title, 0.0)
        total = prorated_amount + sum(bill.amount for bill in category_bills)
        if total <= 0:
            continue
        breakdown.append(CategoryBreakdown(
            category_title=title,
            total_amount=total,
            bills=category_bills,
            prorated_amount=prorated_amount,
        ))
    return sorted(breakdown, key=lambda item: item.total_amount, reverse=True)


def calculate_credit_card_repayments(
    daily_spending: DailySpendingMap,
    events: Sequence[BudgetEvent],
    now: datetime,
    excluded_category: str = REPAYMENT_CATEGORY,
    tz: Optional[tzinfo] = None,
) -> List[CreditCardBillingPeriod]:
    """Generate billing periods with totals and category breakdowns."""
    periods = []
    for period in generate_billing_periods(daily_spending, now, tz):
        periods.append(replace(
            period,
            total_spending=get_spending_for_date_range(daily_spending, period.period_start, period.period_end),
            category_breakdown=tuple(calculate_category_breakdown(
                events, period.period_start, period.period_end, now, excluded_category, tz
            )),
        ))
    return periods


# ---------------------------------------------------------------------------
# Headroom
# ---------------------------------------------------------------------------


def validate_headroom(percentage) -> float:
    try:
        value = float(percentage)
    except (TypeError, ValueError) as exc:
        raise InvalidHeadroomError(f"Headroom must be a number, got {percentage!r}") from exc
    if not math.isfinite(value) or value < 0 or value > 100:
        raise InvalidHeadroomError(f"Headroom must be between 0 and 100, got {percentage!r}")
    return value


def parse_percentage(text: str) -> float:
    """Parse user input such as ``20`` or ``20%``."""
    cleaned = str(text).strip().replace('%', '').strip()
    if not cleaned:
        raise InvalidHeadroomError("Headroom percentage is empty")
    return validate_headroom(cleaned)


def _scale_breakdown(category: CategoryBreakdown, factor: float) -> CategoryBreakdown:
    return replace(
        category,
        total_amount=category.total_amount * factor,
        prorated_amount=category.prorated_amount * factor,
        bills=tuple(replace(bill, amount=bill.amount * factor) for bill in category.bills),
    )


def apply_headroom(periods: Sequence[CreditCardBillingPeriod], percentage: float) -> List[CreditCardBillingPeriod]:
    """Return copies of ``periods`` marked up by ``percentage`` percent.

    Category amounts are scaled by the same factor.  The input periods are
    not modified.
    """
    factor = 1 + validate_headroom(percentage) / 100
    return [
        replace(
            period,
            total_spending=period.total_spending * factor,
            category_breakdown=tuple(_scale_breakdown(item, factor) for item in period.category_breakdown),
        )
        for period in periods
    ]


# ---------------------------------------------------------------------------
# Tabular views
# ---------------------------------------------------------------------------


def schedule_frame(periods: Sequence[CreditCardBillingPeriod]) -> pd.DataFrame:
    columns = ['Repayment Month', 'Period Start', 'Period End', 'Total Spending', 'Categories']
    rows = [
        {
            'Repayment Month': period.repayment_month,
            'Period Start': _as_date(period.period_start),
            'Period End': _as_date(period.period_end),
            'Total Spending': period.total_spending,
            'Categories': len(period.category_breakdown),
        }
        for period in periods
    ]
    return pd.DataFrame(rows, columns=columns)


def category_breakdown_frame(period: CreditCardBillingPeriod) -> pd.DataFrame:
    columns = ['Category', 'Bills', 'Bill Amount', 'Prorated', 'Total']
    rows = [
        {
            'Category': item.category_title,
            'Bills': len(item.bills),
            'Bill Amount': sum(bill.amount for bill in item.bills),
            'Prorated': item.prorated_amount,
            'Total': item.total_amount,
        }
        for item in period.category_breakdown
    ]
    return pd.DataFrame(rows, columns=columns)


def headroom_comparison(
    original: Sequence[CreditCardBillingPeriod],
    adjusted: Sequence[CreditCardBillingPeriod],
) -> pd.DataFrame:
    """Side-by-side totals of an unadjusted and an adjusted schedule."""
    if len(original) != len(adjusted):
        raise ValueError("Schedules must have the same number of periods")
    columns = ['Repayment Month', 'Original', 'With Headroom', 'Difference']
    rows = []
    for before, after in zip(original, adjusted):
        if before.repayment_month != after.repayment_month:
            raise ValueError(
                f"Mismatched repayment months: {before.repayment_month} vs {after.repayment_month}"
            )
        rows.append({
            'Repayment Month': before.repayment_month,
            'Original': before.total_spending,
            'With Headroom': after.total_spending,
            'Difference': after.total_spending - before.total_spending,
        })
    return pd.DataFrame(rows, columns=columns)


# ---------------------------------------------------------------------------
# Write-back planning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RepaymentUpdate:
    event_id: str
    repayment_month: str
    current_amount: float
    new_amount: float


def plan_repayment_updates(
    periods: Sequence[CreditCardBillingPeriod],
    events: Iterable[BudgetEvent],
    excluded_category: str = REPAYMENT_CATEGORY,
) -> List[RepaymentUpdate]:
    """Match each period to the scheduled repayment event in its repayment month.

    Repayments are debits, so the new amount is the negated period total.
    Periods without a scheduled repayment, or whose amount is already
    correct, produce no update.
    """
    by_month: Dict[str, List[BudgetEvent]] = {}
    for event in events:
        if event.category.title != excluded_category:
            continue
        try:
            event_date = event.parsed_date()
        except EventDataError as exc:
            logger.warning("Ignoring repayment event %s: %s", event.id, exc)
            continue
        by_month.setdefault(f"{event_date.year}-{event_date.month:02d}", []).append(event)

    updates: List[RepaymentUpdate] = []
    for period in periods:
        matches = sorted(by_month.get(period.repayment_month, []), key=lambda item: item.date)
        if not matches:
            logger.warning("No scheduled repayment event found for %s", period.repayment_month)
            continue
        if len(matches) > 1:
            logger.warning(
                "%d repayment events found for %s, updating the first",
                len(matches), period.repayment_month,
            )
        target = matches[0]
        if target.id is None:
            logger.warning("Repayment event for %s has no id", period.repayment_month)
            continue
        new_amount = -round(period.total_spending, 2)
        if round(target.amount, 2) == new_amount:
            continue
        updates.append(RepaymentUpdate(
            event_id=target.id,
            repayment_month=period.repayment_month,
            current_amount=target.amount,
            new_amount=new_amount,
        ))
    return updates
