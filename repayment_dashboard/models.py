"""Data classes describing budget events and the results derived from them.

Budget events arrive from the PocketSmith API as raw JSON records.  They
are converted into immutable :class:`BudgetEvent` instances by
:func:`events_from_api` before any calculation touches them.  Everything
else in this module is a derived value that is recomputed from the raw
events on every run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

MONTHLY = 'monthly'
YEARLY = 'yearly'


class EventDataError(ValueError):
    """Raised when an event record carries unusable data."""


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Category:
    title: str
    is_bill: bool = False
    is_transfer: bool = False
    id: Optional[int] = None


@dataclass(frozen=True)
class BudgetEvent:
    amount: float
    date: str
    category: Category
    repeat_type: str = MONTHLY
    repeat_interval: int = 1
    is_transfer: bool = False
    note: Optional[str] = None
    id: Optional[str] = None
    series_id: Optional[int] = None

    @property
    def is_bill(self) -> bool:
        return self.category.is_bill

    @property
    def counts_as_transfer(self) -> bool:
        return self.is_transfer or self.category.is_transfer

    def parsed_date(self) -> date:
        return parse_event_date(self.date)


def parse_event_date(value: Any) -> date:
    """Return the calendar date of an event's ``date`` field.

    Accepts ISO dates (``2025-04-15``) and ISO timestamps, of which only the
    date part is kept.  Anything else raises :class:`EventDataError`.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise EventDataError(f"Event date is missing or not a string: {value!r}")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    except ValueError as exc:
        raise EventDataError(f"Unparseable event date: {value!r}") from exc


# ---------------------------------------------------------------------------
# Calendar values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FiscalYearBounds:
    """Start and end instants of a fiscal year (both tz-aware)."""

    start: datetime
    end: datetime

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def iter_dates(self) -> Iterator[date]:
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)


@dataclass(frozen=True)
class MonthlyPeriod:
    start: date
    end: date
    year: int
    month: int


@dataclass(frozen=True)
class ProrationResult:
    start_date: date
    end_date: date
    daily_amount: float

    @property
    def days(self) -> int:
        return (self.end_date - self.start_date).days + 1


# ---------------------------------------------------------------------------
# Billing results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BillBreakdown:
    event: BudgetEvent
    amount: float
    date: date


@dataclass(frozen=True)
class CategoryBreakdown:
    category_title: str
    total_amount: float
    bills: Tuple[BillBreakdown, ...] = ()
    prorated_amount: float = 0.0


@dataclass(frozen=True)
class CreditCardBillingPeriod:
    repayment_month: str  # YYYY-MM
    period_start: datetime
    period_end: datetime
    total_spending: float = 0.0
    category_breakdown: Tuple[CategoryBreakdown, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# API record conversion
# ---------------------------------------------------------------------------


def event_from_api(record: Dict[str, Any]) -> BudgetEvent:
    """Convert one raw PocketSmith event record."""
    if not isinstance(record, dict):
        raise EventDataError(f"Event record must be an object, got {type(record).__name__}")

    raw_category = record.get('category') or {}
    if not isinstance(raw_category, dict) or not raw_category.get('title'):
        raise EventDataError(f"Event {record.get('id')!r} has no category title")

    try:
        amount = float(record['amount'])
    except (KeyError, TypeError, ValueError) as exc:
        raise EventDataError(f"Event {record.get('id')!r} has an invalid amount") from exc

    raw_date = record.get('date')
    if not isinstance(raw_date, str) or not raw_date.strip():
        raise EventDataError(f"Event {record.get('id')!r} has no date")

    raw_interval = record.get('repeat_interval')
    try:
        repeat_interval = 1 if raw_interval is None else int(raw_interval)
    except (TypeError, ValueError) as exc:
        raise EventDataError(f"Event {record.get('id')!r} has an invalid repeat_interval") from exc
    if repeat_interval < 1:
        raise EventDataError(f"Event {record.get('id')!r} has repeat_interval {repeat_interval} < 1")

    category = Category(
        title=str(raw_category['title']),
        is_bill=bool(raw_category.get('is_bill', False)),
        is_transfer=bool(raw_category.get('is_transfer', False)),
        id=raw_category.get('id'),
    )
    return BudgetEvent(
        amount=amount,
        date=raw_date.strip(),
        category=category,
        repeat_type=str(record.get('repeat_type') or MONTHLY),
        repeat_interval=repeat_interval,
        is_transfer=bool(record.get('is_transfer', False)),
        note=record.get('note') or None,
        id=None if record.get('id') is None else str(record['id']),
        series_id=record.get('series_id'),
    )


def events_from_api(records: Iterable[Dict[str, Any]]) -> List[BudgetEvent]:
    """Convert raw records, skipping (and logging) the ones that are unusable."""
    events: List[BudgetEvent] = []
    for record in records:
        try:
            events.append(event_from_api(record))
        except EventDataError as exc:
            logger.warning("Skipping event record: %s", exc)
    return events


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def summarise_events(events: Sequence[BudgetEvent], excluded_category: str) -> Dict[str, int]:
    """Count events by how the repayment calculation treats them."""
    transfers = [event for event in events if event.counts_as_transfer]
    repayments = [event for event in events if event.category.title == excluded_category]
    processed = [
        event for event in events
        if not event.counts_as_transfer and event.category.title != excluded_category
    ]
    return {
        'bills': sum(1 for event in processed if event.is_bill),
        'non_bills': sum(1 for event in processed if not event.is_bill),
        'transfers': len(transfers),
        'repayments': len(repayments),
    }


def monthly_event_summary(events: Sequence[BudgetEvent], periods: Sequence[MonthlyPeriod]) -> pd.DataFrame:
    """Return one row per month with its event count and net amount."""
    columns = ['Period', 'Events', 'Total Amount']
    rows = []
    dated: List[Tuple[date, float]] = []
    for event in events:
        try:
            dated.append((event.parsed_date(), event.amount))
        except EventDataError:
            continue
    for period in periods:
        amounts = [
            amount for day, amount in dated
            if day.year == period.year and day.month == period.month
        ]
        rows.append({
            'Period': f"{period.year}-{period.month:02d}",
            'Events': len(amounts),
            'Total Amount': float(sum(amounts)),
        })
    return pd.DataFrame(rows, columns=columns)
