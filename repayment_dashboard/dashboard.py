"""Streamlit app for the credit card repayment planner.

This module wires the PocketSmith client, the monthly event cache and the
repayment calculations into an interactive page: the planned daily
spending for the fiscal year, the repayment schedule with an optional
headroom markup, and the category breakdown of every billing period.

To run the dashboard from the command line::

    streamlit run repayment_dashboard/dashboard.py

or use ``run_dashboard.py`` in the project root.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd
import requests
import streamlit as st

# Conditional imports to support execution both as part of a package
# (e.g. via ``python -m repayment_dashboard.dashboard``) and directly as a
# standalone script (e.g. ``streamlit run repayment_dashboard/dashboard.py``).
if __package__:
    from . import config
    from . import visualization as viz
    from .daily_spending import build_daily_spending_map, get_spending_statistics
    from .event_cache import clear_cache, get_monthly_events
    from .fiscal_calendar import current_fiscal_year, monthly_periods
    from .models import CreditCardBillingPeriod, events_from_api
    from .pocketsmith import PocketSmithError, create_client
    from .repayments import (
        apply_headroom,
        calculate_credit_card_repayments,
        category_breakdown_frame,
        headroom_comparison,
        schedule_frame,
    )
else:
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from repayment_dashboard import config  # type: ignore
    from repayment_dashboard import visualization as viz  # type: ignore
    from repayment_dashboard.daily_spending import build_daily_spending_map, get_spending_statistics  # type: ignore
    from repayment_dashboard.event_cache import clear_cache, get_monthly_events  # type: ignore
    from repayment_dashboard.fiscal_calendar import current_fiscal_year, monthly_periods  # type: ignore
    from repayment_dashboard.models import CreditCardBillingPeriod, events_from_api  # type: ignore
    from repayment_dashboard.pocketsmith import PocketSmithError, create_client  # type: ignore
    from repayment_dashboard.repayments import (  # type: ignore
        apply_headroom,
        calculate_credit_card_repayments,
        category_breakdown_frame,
        headroom_comparison,
        schedule_frame,
    )


@st.cache_data(show_spinner="Loading PocketSmith events...")
def load_event_records(fiscal_start: str, fiscal_end: str, refresh: bool = False) -> List[Dict[str, Any]]:
    """Fetch (or read from the cache) the raw events of every fiscal month."""
    client = create_client()
    start = datetime.fromisoformat(fiscal_start).date()
    end = datetime.fromisoformat(fiscal_end).date()
    records: List[Dict[str, Any]] = []
    for period in monthly_periods(start, end):
        records.extend(get_monthly_events(client, period.year, period.month, refresh=refresh))
    return records


def build_schedules(
    periods: Sequence[CreditCardBillingPeriod],
    headroom: float,
) -> Tuple[List[CreditCardBillingPeriod], pd.DataFrame]:
    """Return the headroom-adjusted schedule and its comparison table."""
    adjusted = apply_headroom(periods, headroom)
    return adjusted, headroom_comparison(periods, adjusted)


def _refresh_events() -> None:
    removed = clear_cache()
    st.cache_data.clear()
    st.session_state['refresh_events'] = True
    st.sidebar.success(f"Cleared {removed} cached months")


def main() -> None:
    """Entry point for the Streamlit app."""
    st.set_page_config(
        page_title="Credit Card Repayments",
        page_icon="💳",
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.title("💳 Credit Card Repayment Planner")

    st.sidebar.header("Configuration")
    headroom = st.sidebar.slider("Headroom (%)", min_value=0, max_value=100, value=0, step=5)
    show_breakdown = st.sidebar.checkbox("Show category breakdown", value=True)
    if st.sidebar.button("Refresh events from PocketSmith"):
        _refresh_events()

    now = datetime.now(config.get_timezone())
    fiscal_bounds = current_fiscal_year(now)
    st.caption(f"Financial year {fiscal_bounds.start_date} to {fiscal_bounds.end_date}")

    try:
        records = load_event_records(
            fiscal_bounds.start_date.isoformat(),
            fiscal_bounds.end_date.isoformat(),
            refresh=st.session_state.pop('refresh_events', False),
        )
    except config.ConfigurationError as exc:
        st.error(f"{exc}. Set PS_API_KEY and PS_SCENARIO_ID before starting the dashboard.")
        st.stop()
    except (PocketSmithError, requests.RequestException) as exc:  # pragma: no cover - UI display only
        st.error(f"Failed to load events: {exc}")
        st.stop()

    events = events_from_api(records)
    daily_spending = build_daily_spending_map(events, fiscal_bounds, config.REPAYMENT_CATEGORY)
    stats = get_spending_statistics(daily_spending)

    col1, col2, col3 = st.columns(3)
    col1.metric("Events loaded", len(events))
    col2.metric("Planned annual spending", f"${stats['total']:,.2f}")
    col3.metric("Average daily spending", f"${(stats['average'] or 0):,.2f}")

    st.subheader("Planned daily spending")
    st.plotly_chart(viz.create_daily_spending_chart(daily_spending), use_container_width=True)

    repayments = calculate_credit_card_repayments(daily_spending, events, now, config.REPAYMENT_CATEGORY)
    st.subheader("Repayment schedule")
    if not repayments:
        st.info("No repayment data available - insufficient spending data.")
        return

    adjusted, comparison = build_schedules(repayments, headroom)
    st.plotly_chart(
        viz.create_repayment_chart(repayments, adjusted if headroom else None),
        use_container_width=True,
    )
    if headroom:
        st.dataframe(comparison, hide_index=True)
    else:
        st.dataframe(schedule_frame(repayments), hide_index=True)

    if show_breakdown:
        st.subheader("Category breakdown")
        for period in adjusted:
            label = (
                f"{period.repayment_month}: ${period.total_spending:,.2f} "
                f"({period.period_start:%d %b} - {period.period_end:%d %b %Y})"
            )
            with st.expander(label):
                st.plotly_chart(viz.create_category_breakdown_chart(period), use_container_width=True)
                st.dataframe(category_breakdown_frame(period), hide_index=True)


if __name__ == "__main__":  # pragma: no cover
    main()
