"""Settings for the repayment planner.

Paths for the monthly event cache, the zone used for fiscal-year and
billing-cycle dates, the category holding scheduled repayments and the
PocketSmith API endpoint all come from ``PS_*`` environment variables.
Credentials are read separately by :func:`load_settings` so importing the
package never requires them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo

# Directory holding the repayment_dashboard package
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Cached PocketSmith responses live under DATA_DIR
DATA_DIR = Path(os.getenv("PS_DATA_DIR", _PROJECT_ROOT / "data"))
CACHE_DIR = Path(os.getenv("PS_CACHE_DIR", DATA_DIR / "cache"))

# All fiscal-year and billing-cycle math happens in this zone
TIMEZONE = os.getenv("PS_TIMEZONE", "Pacific/Auckland")

# Scheduled events in this category are the output of the repayment
# calculation, so they never feed back into it (exact title match).
REPAYMENT_CATEGORY = os.getenv("PS_REPAYMENT_CATEGORY", "Credit Card Repayments")

# PocketSmith API
API_BASE_URL = os.getenv("PS_API_BASE_URL", "https://api.pocketsmith.com/v2")
REQUEST_DELAY_SECONDS = float(os.getenv("PS_REQUEST_DELAY", "0.1"))
REQUEST_TIMEOUT_SECONDS = float(os.getenv("PS_REQUEST_TIMEOUT", "30"))


class ConfigurationError(RuntimeError):
    """Raised when a required setting is missing from the environment."""


@dataclass(frozen=True)
class Settings:
    api_key: str
    scenario_id: str


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Read the PocketSmith credentials from the environment."""
    env = os.environ if environ is None else environ
    api_key = (env.get("PS_API_KEY") or "").strip()
    scenario_id = (env.get("PS_SCENARIO_ID") or "").strip()
    if not api_key:
        raise ConfigurationError("PS_API_KEY is required in the environment")
    if not scenario_id:
        raise ConfigurationError("PS_SCENARIO_ID is required in the environment")
    return Settings(api_key=api_key, scenario_id=scenario_id)


def get_timezone() -> ZoneInfo:
    return ZoneInfo(TIMEZONE)


def ensure_data_directories() -> None:
    """Make sure the event cache has somewhere to write."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    CACHE_DIR.mkdir(parents=True, exist_ok=True)
