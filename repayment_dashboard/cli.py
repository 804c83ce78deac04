#!/usr/bin/env python3
"""Console report of planned spending and credit card repayments.

Loads the current fiscal year's events (through the monthly cache),
prints the daily spending analysis and the repayment schedule, and can
optionally apply headroom and write the repayment amounts back to
PocketSmith.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import requests

from . import config
from .daily_spending import build_daily_spending_map, get_spending_for_date, get_spending_statistics
from .event_cache import get_monthly_events
from .fiscal_calendar import current_fiscal_year, monthly_periods
from .logging_config import setup_logging
from .models import BudgetEvent, FiscalYearBounds, events_from_api, monthly_event_summary, summarise_events
from .pocketsmith import PocketSmithError, create_client
from .repayments import (
    InvalidHeadroomError,
    apply_headroom,
    calculate_credit_card_repayments,
    headroom_comparison,
    parse_percentage,
    plan_repayment_updates,
)

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def confirm_action(question: str, input_fn: InputFn = input) -> bool:
    answer = input_fn(f"{question} (y/n): ")
    return answer.strip().lower() in {'y', 'yes'}


def get_percentage_input(question: str, input_fn: InputFn = input, output_fn=print) -> float:
    """Ask for a percentage until a value between 0 and 100 is entered."""
    while True:
        answer = input_fn(f"{question} ")
        try:
            return parse_percentage(answer)
        except InvalidHeadroomError:
            output_fn('Please enter a valid percentage between 0 and 100 (e.g., 20 for 20%)')


# ---------------------------------------------------------------------------
# Report formatting
# ---------------------------------------------------------------------------


def format_repayment_month(repayment_month: str) -> str:
    """``2026-01`` -> ``2026 Jan``."""
    year, month = repayment_month.split('-')
    return f"{year} {date(int(year), int(month), 1):%b}"


def _format_day(value: date, with_year: bool = True) -> str:
    text = f"{value:%b} {value.day}"
    return f"{text}, {value.year}" if with_year else text


def format_repayment_schedule(periods: Sequence) -> List[str]:
    lines = [
        '💳 Credit Card Repayment Schedule',
        '=================================',
        'Billing Period: 3rd of each month to 2nd of next month',
        'Repayment Due: Following month after billing period ends',
        '',
    ]
    if not periods:
        lines.append('❌ No repayment data available - insufficient spending data')
        return lines

    total_repayments = 0.0
    for index, period in enumerate(periods):
        lines.append(f"{format_repayment_month(period.repayment_month)}: ${period.total_spending:,.2f}")
        lines.append(
            f"  Billing Period: {_format_day(period.period_start.date())} - {_format_day(period.period_end.date())}"
        )

        if period.category_breakdown:
            lines.append('  Category Breakdown:')
            bill_categories = [item for item in period.category_breakdown if item.bills]
            prorated_categories = [
                item for item in period.category_breakdown
                if not item.bills and item.prorated_amount > 0
            ]
            for category in bill_categories:
                lines.append(f"    {category.category_title}: ${category.total_amount:,.2f}")
                for bill in category.bills:
                    note = f" ({bill.event.note})" if bill.event.note else ''
                    lines.append(f"      • {_format_day(bill.date, with_year=False)}: ${bill.amount:,.2f}{note}")
                if category.prorated_amount > 0:
                    lines.append(f"      • Prorated: ${category.prorated_amount:,.2f}")
            for category in prorated_categories:
                lines.append(f"    {category.category_title}: ${category.total_amount:,.2f}")

        total_repayments += period.total_spending
        if index < len(periods) - 1:
            lines.append('')

    lines.append('')
    lines.append(f"📊 Summary: {len(periods)} repayment periods, total: ${total_repayments:,.2f}")
    lines.append(f"📈 Average monthly repayment: ${total_repayments / len(periods):,.2f}")
    return lines


def print_spending_analysis(events: Sequence[BudgetEvent], daily_spending, fiscal_bounds: FiscalYearBounds) -> None:
    stats = get_spending_statistics(daily_spending)
    print('')
    print('💰 Daily Spending Analysis:')
    print(f"Total planned annual spending: ${stats['total']:,.2f}")
    if stats['days_count']:
        print(f"Average daily spending: ${stats['average']:,.2f}")
        print(f"Maximum daily spending: ${stats['max']:,.2f}")
        print(f"Minimum daily spending: ${stats['min']:,.2f}")

    counts = summarise_events(events, config.REPAYMENT_CATEGORY)
    print('')
    print('📊 Event Breakdown:')
    print(f"Bills: {counts['bills']} events")
    print(f"Non-bills: {counts['non_bills']} events")
    print(f"Transfers (ignored): {counts['transfers']} events")
    if counts['repayments']:
        print(f"Credit Card Repayments (ignored): {counts['repayments']} events")

    print('')
    print('📅 Sample Daily Spending (first 7 days):')
    for offset in range(7):
        day = fiscal_bounds.start_date + timedelta(days=offset)
        print(f"  {day.isoformat()}: ${get_spending_for_date(daily_spending, day):,.2f}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def load_fiscal_year_events(client, fiscal_bounds: FiscalYearBounds, refresh: bool = False,
                            cache_dir: Optional[Path] = None) -> List[BudgetEvent]:
    records = []
    for period in monthly_periods(fiscal_bounds.start_date, fiscal_bounds.end_date):
        records.extend(get_monthly_events(client, period.year, period.month, cache_dir, refresh=refresh))
    return events_from_api(records)


def load_repayment_events(client, periods: Sequence, fiscal_bounds: FiscalYearBounds,
                           excluded_category: str = config.REPAYMENT_CATEGORY, refresh: bool = False,
                           cache_dir: Optional[Path] = None) -> List[BudgetEvent]:
    """Scheduled repayment events for repayment months after the fiscal year.

    The last billing periods are repaid once the fiscal year is over, so
    their repayment events are not among the fiscal-year events.
    """
    loaded = {(period.year, period.month)
              for period in monthly_periods(fiscal_bounds.start_date, fiscal_bounds.end_date)}
    months = sorted({
        (int(period.repayment_month[:4]), int(period.repayment_month[5:7])) for period in periods
    } - loaded)
    events: List[BudgetEvent] = []
    for year, month in months:
        records = get_monthly_events(client, year, month, cache_dir, refresh=refresh)
        events.extend(event for event in events_from_api(records) if event.category.title == excluded_category)
    return events


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Calculate credit card repayments from PocketSmith events.')
    parser.add_argument('--headroom', type=str, default=None,
                        help='Percentage markup to apply to repayments (0-100), skips the prompt')
    parser.add_argument('--refresh', action='store_true', help='Ignore cached events and refetch them')
    parser.add_argument('--update', action='store_true',
                        help='Write repayment amounts back to the scheduled repayment events')
    parser.add_argument('--yes', action='store_true', help='Do not ask for confirmation')
    parser.add_argument('--log-level', default='INFO', help='Logging level (default: INFO)')
    return parser


def main(argv: Optional[Sequence[str]] = None, now: Optional[datetime] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    print('🚀 PocketSmith Tools - Credit Card Repayment Calculator')
    print('====================================================')

    try:
        headroom = None if args.headroom is None else parse_percentage(args.headroom)
        client = create_client()
        now = now or datetime.now(config.get_timezone())
        fiscal_bounds = current_fiscal_year(now)
        print(f"📅 Current NZ Financial Year: {fiscal_bounds.start_date} to {fiscal_bounds.end_date}")

        config.ensure_data_directories()
        events = load_fiscal_year_events(client, fiscal_bounds, refresh=args.refresh)
        periods = monthly_periods(fiscal_bounds.start_date, fiscal_bounds.end_date)

        print('')
        print(f"Total events loaded: {len(events)}")
        print('Monthly breakdown:')
        print(monthly_event_summary(events, periods).to_string(index=False))

        daily_spending = build_daily_spending_map(events, fiscal_bounds, config.REPAYMENT_CATEGORY)
        print_spending_analysis(events, daily_spending, fiscal_bounds)

        repayments = calculate_credit_card_repayments(daily_spending, events, now, config.REPAYMENT_CATEGORY)
        print('')
        print('\n'.join(format_repayment_schedule(repayments)))

        if headroom is None and repayments and not args.yes and confirm_action('Apply headroom to repayments?'):
            headroom = get_percentage_input('Headroom percentage (e.g., 20 for 20%):')

        schedule = repayments
        if headroom is not None and repayments:
            schedule = apply_headroom(repayments, headroom)
            print('')
            print(f"With {headroom:g}% headroom:")
            print('\n'.join(format_repayment_schedule(schedule)))
            print('')
            print(headroom_comparison(repayments, schedule).to_string(index=False, float_format='{:,.2f}'.format))

        if args.update and schedule:
            later_events = load_repayment_events(client, schedule, fiscal_bounds, refresh=args.refresh)
            updates = plan_repayment_updates(schedule, [*events, *later_events], config.REPAYMENT_CATEGORY)
            if not updates:
                print('Repayment events are already up to date.')
            elif args.yes or confirm_action(f"Update {len(updates)} repayment events in PocketSmith?"):
                client.apply_repayment_updates(updates)
                print(f"✅ Updated {len(updates)} repayment events")
    except (config.ConfigurationError, InvalidHeadroomError, PocketSmithError, requests.RequestException) as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
