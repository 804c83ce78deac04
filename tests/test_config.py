from __future__ import annotations

import pytest

from repayment_dashboard import config


def test_ensure_data_directories_creates_cache_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(config, 'DATA_DIR', tmp_path / 'data')
    monkeypatch.setattr(config, 'CACHE_DIR', tmp_path / 'data' / 'cache')

    config.ensure_data_directories()
    config.ensure_data_directories()

    assert (tmp_path / 'data' / 'cache').is_dir()


def test_load_settings_strips_values():
    settings = config.load_settings({'PS_API_KEY': ' abc ', 'PS_SCENARIO_ID': '12\n'})

    assert settings == config.Settings(api_key='abc', scenario_id='12')


def test_load_settings_names_missing_variable():
    with pytest.raises(config.ConfigurationError, match='PS_SCENARIO_ID'):
        config.load_settings({'PS_API_KEY': 'abc', 'PS_SCENARIO_ID': '  '})


def test_request_timeout_is_positive():
    assert config.REQUEST_TIMEOUT_SECONDS > 0
