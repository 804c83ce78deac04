from __future__ import annotations

from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import requests

from repayment_dashboard import cli, config, event_cache
from repayment_dashboard.config import ConfigurationError
from repayment_dashboard.models import BillBreakdown, BudgetEvent, Category, CategoryBreakdown, CreditCardBillingPeriod

NZ = ZoneInfo('Pacific/Auckland')


def _answers(*values):
    iterator = iter(values)
    return lambda prompt: next(iterator)


def test_confirm_action():
    assert cli.confirm_action('Apply?', input_fn=_answers('y'))
    assert cli.confirm_action('Apply?', input_fn=_answers(' YES '))
    assert not cli.confirm_action('Apply?', input_fn=_answers('n'))
    assert not cli.confirm_action('Apply?', input_fn=_answers(''))


def test_get_percentage_input_reprompts():
    messages = []
    value = cli.get_percentage_input(
        'Headroom?',
        input_fn=_answers('abc', '150', '20%'),
        output_fn=messages.append,
    )

    assert value == 20.0
    assert len(messages) == 2


def test_format_repayment_month():
    assert cli.format_repayment_month('2026-01') == '2026 Jan'
    assert cli.format_repayment_month('2025-12') == '2025 Dec'


def test_format_empty_schedule():
    lines = cli.format_repayment_schedule([])
    assert lines[-1].startswith('❌ No repayment data available')


def test_format_schedule_lists_bills_before_prorated_categories():
    bill_event = BudgetEvent(amount=-150.0, date='2025-04-03', category=Category('Power', is_bill=True), note='Mercury')
    period = CreditCardBillingPeriod(
        repayment_month='2025-06',
        period_start=datetime(2025, 4, 3, tzinfo=NZ),
        period_end=datetime.combine(date(2025, 5, 2), time.max, tzinfo=NZ),
        total_spending=430.0,
        category_breakdown=(
            CategoryBreakdown('Groceries', 280.0, (), 280.0),
            CategoryBreakdown('Power', 150.0, (BillBreakdown(bill_event, 150.0, date(2025, 4, 3)),), 0.0),
        ),
    )

    lines = cli.format_repayment_schedule([period])

    assert '2025 Jun: $430.00' in lines
    assert '  Billing Period: Apr 3, 2025 - May 2, 2025' in lines
    assert lines.index('    Power: $150.00') < lines.index('    Groceries: $280.00')
    assert '      • Apr 3: $150.00 (Mercury)' in lines
    assert '📊 Summary: 1 repayment periods, total: $430.00' in lines


class _FakeClient:
    def __init__(self, records):
        self.records = records
        self.applied = []
        self.fetched = []

    def fetch_monthly_events(self, year, month):
        self.fetched.append((year, month))
        return [record for record in self.records if record['date'].startswith(f'{year}-{month:02d}')]

    def apply_repayment_updates(self, updates):
        self.applied.extend(updates)
        return [{} for _ in updates]


def _record(event_id, amount, day, title, is_bill=False):
    return {
        'id': event_id,
        'amount': amount,
        'date': day,
        'repeat_type': 'monthly',
        'repeat_interval': 1,
        'is_transfer': False,
        'category': {'title': title, 'is_bill': is_bill, 'is_transfer': False},
    }


def _isolate_data_dirs(monkeypatch, tmp_path):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path)
    monkeypatch.setattr(config, 'CACHE_DIR', tmp_path / 'cache')
    monkeypatch.setattr(event_cache, 'CACHE_DIR', tmp_path / 'cache')


def test_main_prints_schedule_and_updates(monkeypatch, tmp_path, capsys):
    _isolate_data_dirs(monkeypatch, tmp_path)
    client = _FakeClient([
        _record('1-1', -300.0, '2025-04-15', 'Groceries'),
        _record('2-1', -150.0, '2025-04-03', 'Power', is_bill=True),
        _record('3-1', -1.0, '2025-06-20', config.REPAYMENT_CATEGORY, is_bill=True),
    ])
    monkeypatch.setattr(cli, 'create_client', lambda: client)

    code = cli.main(['--headroom', '10', '--update', '--yes'], now=datetime(2025, 4, 10, tzinfo=NZ))

    output = capsys.readouterr().out
    assert code == 0
    assert '2025 Jun: $430.00' in output
    assert 'With 10% headroom:' in output
    assert '2025 Jun: $473.00' in output
    assert [update.event_id for update in client.applied] == ['3-1']
    assert client.applied[0].new_amount == -473.0
    assert (tmp_path / 'cache' / 'events-2025-04.json').exists()


def test_main_reports_configuration_errors(monkeypatch, tmp_path):
    _isolate_data_dirs(monkeypatch, tmp_path)

    def _missing():
        raise ConfigurationError('PS_API_KEY is required in the environment')

    monkeypatch.setattr(cli, 'create_client', _missing)

    assert cli.main(['--yes']) == 1


def test_main_rejects_invalid_headroom(monkeypatch, tmp_path):
    _isolate_data_dirs(monkeypatch, tmp_path)
    monkeypatch.setattr(cli, 'create_client', lambda: _FakeClient([]))

    assert cli.main(['--headroom', '250', '--yes']) == 1


def test_main_updates_repayment_due_after_fiscal_year(monkeypatch, tmp_path):
    _isolate_data_dirs(monkeypatch, tmp_path)
    client = _FakeClient([
        _record('1-1', -280.0, '2026-02-15', 'Groceries'),
        _record('9-1', -1.0, '2026-03-20', config.REPAYMENT_CATEGORY, is_bill=True),
        _record('9-2', -1.0, '2026-04-20', config.REPAYMENT_CATEGORY, is_bill=True),
        _record('8-1', -50.0, '2026-04-05', 'Groceries'),
    ])
    monkeypatch.setattr(cli, 'create_client', lambda: client)

    code = cli.main(['--update', '--yes'], now=datetime(2026, 2, 10, tzinfo=NZ))

    assert code == 0
    applied = {update.repayment_month: update for update in client.applied}
    assert set(applied) == {'2026-03', '2026-04'}
    assert applied['2026-03'].event_id == '9-1'
    assert applied['2026-03'].new_amount == -20.0
    assert applied['2026-04'].event_id == '9-2'
    assert applied['2026-04'].new_amount == -260.0
    assert (2026, 4) in client.fetched
    assert (tmp_path / 'cache' / 'events-2026-04.json').exists()


def test_load_repayment_events_only_fetches_months_after_fiscal_year(tmp_path):
    client = _FakeClient([
        _record('9-2', -1.0, '2026-04-20', config.REPAYMENT_CATEGORY, is_bill=True),
        _record('8-1', -50.0, '2026-04-05', 'Groceries'),
    ])
    fiscal_bounds = cli.current_fiscal_year(datetime(2026, 2, 10, tzinfo=NZ))
    periods = [
        CreditCardBillingPeriod('2026-03', datetime(2026, 1, 3, tzinfo=NZ), datetime(2026, 2, 2, tzinfo=NZ)),
        CreditCardBillingPeriod('2026-04', datetime(2026, 2, 3, tzinfo=NZ), datetime(2026, 3, 2, tzinfo=NZ)),
    ]

    events = cli.load_repayment_events(client, periods, fiscal_bounds, cache_dir=tmp_path)

    assert [event.id for event in events] == ['9-2']
    assert client.fetched == [(2026, 4)]


def test_main_reports_connection_errors(monkeypatch, tmp_path):
    _isolate_data_dirs(monkeypatch, tmp_path)

    class _UnreachableClient(_FakeClient):
        def fetch_monthly_events(self, year, month):
            raise requests.ConnectionError('connection refused')

    monkeypatch.setattr(cli, 'create_client', lambda: _UnreachableClient([]))

    assert cli.main(['--yes']) == 1
