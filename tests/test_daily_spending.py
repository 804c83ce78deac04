from __future__ import annotations

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pandas as pd
import pytest

from repayment_dashboard.daily_spending import (
    build_daily_spending_map,
    daily_spending_series,
    get_spending_for_date,
    get_spending_for_date_range,
    get_spending_statistics,
)
from repayment_dashboard.fiscal_calendar import current_fiscal_year
from repayment_dashboard.models import BudgetEvent, Category

NZ = ZoneInfo('Pacific/Auckland')
FY_2025 = current_fiscal_year(datetime(2025, 6, 1, tzinfo=NZ))
REPAYMENTS = 'Credit Card Repayments'


def _event(amount, day, title='Groceries', is_bill=False, repeat_type='monthly', interval=1,
           is_transfer=False, category_transfer=False):
    return BudgetEvent(
        amount=amount,
        date=day,
        category=Category(title=title, is_bill=is_bill, is_transfer=category_transfer),
        repeat_type=repeat_type,
        repeat_interval=interval,
        is_transfer=is_transfer,
    )


def _build(events):
    return build_daily_spending_map(events, FY_2025, REPAYMENTS)


def test_empty_events_give_zero_for_every_fiscal_day():
    daily = _build([])

    assert len(daily) == 365
    assert set(daily.values()) == {0.0}
    assert next(iter(daily)) == '2025-04-01'
    assert list(daily)[-1] == '2026-03-31'


def test_leap_fiscal_year_has_366_days():
    bounds = current_fiscal_year(datetime(2023, 8, 1, tzinfo=NZ))
    daily = build_daily_spending_map([], bounds, REPAYMENTS)

    assert len(daily) == 366
    assert '2024-02-29' in daily


def test_monthly_groceries_spread_over_april():
    daily = _build([_event(-300.0, '2025-04-15')])

    april = {key: value for key, value in daily.items() if key.startswith('2025-04')}
    assert len(april) == 30
    assert all(value == pytest.approx(10.0) for value in april.values())
    others = [value for key, value in daily.items() if not key.startswith('2025-04')]
    assert set(others) == {0.0}
    assert len(daily) == 365


def test_bill_is_spent_on_its_date():
    daily = _build([_event(-150.0, '2025-04-03', title='Power', is_bill=True)])

    assert daily['2025-04-03'] == pytest.approx(150.0)
    assert sum(daily.values()) == pytest.approx(150.0)


def test_amounts_accumulate_on_shared_days():
    daily = _build([
        _event(-150.0, '2025-04-03', title='Power', is_bill=True),
        _event(-50.0, '2025-04-03', title='Water', is_bill=True),
        _event(-300.0, '2025-04-20'),
    ])

    assert daily['2025-04-03'] == pytest.approx(210.0)
    assert daily['2025-04-04'] == pytest.approx(10.0)


def test_transfers_and_repayments_are_ignored():
    daily = _build([
        _event(-500.0, '2025-05-01', title='Savings', is_transfer=True),
        _event(-500.0, '2025-05-01', title='Savings', category_transfer=True),
        _event(-900.0, '2025-05-02', title=REPAYMENTS, is_bill=True),
    ])

    assert sum(daily.values()) == 0.0


def test_repayment_category_match_is_exact():
    daily = _build([_event(-31.0, '2025-05-02', title=f'{REPAYMENTS} 💳')])

    assert sum(daily.values()) == pytest.approx(31.0)


def test_events_outside_fiscal_year_are_skipped():
    daily = _build([
        _event(-100.0, '2025-03-31', is_bill=True),
        _event(-100.0, '2026-04-01', is_bill=True),
        _event(-310.0, '2025-03-15', interval=3),
    ])

    assert sum(daily.values()) == 0.0


def test_yearly_event_spread_over_whole_year():
    daily = _build([_event(-365.0, '2025-09-09', title='Insurance', repeat_type='yearly')])

    assert all(value == pytest.approx(1.0) for value in daily.values())
    assert sum(daily.values()) == pytest.approx(365.0)


def test_clipped_monthly_event_never_exceeds_its_amount():
    daily = _build([_event(-1200.0, '2026-01-10', interval=6)])

    total = sum(daily.values())
    assert total <= 1200.0 + 1e-6
    assert daily['2025-12-31'] == 0.0
    assert daily['2026-01-01'] > 0


def test_malformed_date_is_skipped_with_warning(caplog):
    events = [
        _event(-100.0, 'not-a-date', is_bill=True),
        _event(-150.0, '2025-04-03', title='Power', is_bill=True),
    ]
    with caplog.at_level(logging.WARNING, logger='repayment_dashboard.daily_spending'):
        daily = _build(events)

    assert sum(daily.values()) == pytest.approx(150.0)
    assert 'not-a-date' in caplog.text


def test_spending_for_date_and_range():
    daily = _build([_event(-300.0, '2025-04-15')])

    assert get_spending_for_date(daily, date(2025, 4, 10)) == pytest.approx(10.0)
    assert get_spending_for_date(daily, date(2024, 1, 1)) == 0.0
    assert get_spending_for_date_range(daily, date(2025, 4, 25), date(2025, 5, 5)) == pytest.approx(60.0)
    start = datetime(2025, 4, 3, tzinfo=NZ)
    end = datetime(2025, 5, 2, 23, 59, tzinfo=NZ)
    assert get_spending_for_date_range(daily, start, end) == pytest.approx(280.0)


def test_spending_statistics():
    daily = _build([
        _event(-365.0, '2025-09-09', title='Insurance', repeat_type='yearly'),
        _event(-99.0, '2025-10-10', title='Phone', is_bill=True),
    ])
    stats = get_spending_statistics(daily)

    assert stats['days_count'] == 365
    assert stats['total'] == pytest.approx(464.0)
    assert stats['max'] == pytest.approx(100.0)
    assert stats['min'] == pytest.approx(1.0)
    assert stats['average'] == pytest.approx(464.0 / 365)


def test_statistics_of_empty_map():
    stats = get_spending_statistics({})
    assert stats['days_count'] == 0
    assert stats['total'] == 0.0


def test_daily_spending_series_is_date_indexed():
    series = daily_spending_series(_build([_event(-300.0, '2025-04-15')]))

    assert series.index.name == 'Date'
    assert series.name == 'Spending'
    assert series.index[0] == pd.Timestamp('2025-04-01')
    assert series.loc['2025-04'].sum() == pytest.approx(300.0)
