from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import pytest

from repayment_dashboard import dashboard
from repayment_dashboard.models import CreditCardBillingPeriod

NZ = ZoneInfo('Pacific/Auckland')


def _period(month, total):
    return CreditCardBillingPeriod(
        repayment_month=month,
        period_start=datetime(2025, 4, 3, tzinfo=NZ),
        period_end=datetime.combine(date(2025, 5, 2), time.max, tzinfo=NZ),
        total_spending=total,
    )


def test_build_schedules_keeps_original():
    original = [_period('2025-06', 1000.0), _period('2025-07', 500.0)]

    adjusted, comparison = dashboard.build_schedules(original, 20)

    assert [p.total_spending for p in adjusted] == pytest.approx([1200.0, 600.0])
    assert [p.total_spending for p in original] == [1000.0, 500.0]
    assert comparison['With Headroom'].tolist() == pytest.approx([1200.0, 600.0])


def test_build_schedules_without_headroom():
    original = [_period('2025-06', 1000.0)]

    adjusted, comparison = dashboard.build_schedules(original, 0)

    assert adjusted == original
    assert comparison['Difference'].tolist() == [0.0]
