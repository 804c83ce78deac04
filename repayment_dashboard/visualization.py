"""Plotly visualisation helpers for the repayment dashboard.

Each function accepts the values produced by :mod:`daily_spending` or
:mod:`repayments` and returns a `plotly.graph_objects.Figure` that
Streamlit can render via ``st.plotly_chart``.  Empty input yields a
placeholder figure titled "No data to display".
"""

from __future__ import annotations

from typing import Sequence

import plotly.express as px
import plotly.graph_objects as go

from .daily_spending import DailySpendingMap, daily_spending_series
from .models import CreditCardBillingPeriod
from .repayments import category_breakdown_frame


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_daily_spending_chart(daily_spending: DailySpendingMap, title: str | None = None) -> go.Figure:
    """Line chart of planned spending per day.

    Parameters
    ----------
    daily_spending : dict
        Map of ISO date strings to amounts.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Interactive line chart.
    """
    series = daily_spending_series(daily_spending)
    if series.empty:
        return _empty_figure()
    df = series.reset_index()
    fig = px.line(df, x="Date", y="Spending")
    fig.update_layout(
        title=title or "Planned daily spending",
        xaxis_title="Date",
        yaxis_title="Spending",
    )
    return fig


def create_repayment_chart(
    periods: Sequence[CreditCardBillingPeriod],
    adjusted: Sequence[CreditCardBillingPeriod] | None = None,
    title: str | None = None,
) -> go.Figure:
    """Grouped bar chart of repayment totals, optionally with headroom.

    Parameters
    ----------
    periods : sequence of CreditCardBillingPeriod
        The unadjusted schedule.
    adjusted : sequence of CreditCardBillingPeriod, optional
        The same schedule after :func:`repayments.apply_headroom`.
    title : str, optional
        Chart title.
    """
    if not periods:
        return _empty_figure()
    months = [period.repayment_month for period in periods]
    fig = go.Figure()
    fig.add_trace(go.Bar(name="Repayment", x=months, y=[p.total_spending for p in periods]))
    if adjusted:
        fig.add_trace(go.Bar(name="With headroom", x=months, y=[p.total_spending for p in adjusted]))
    fig.update_layout(
        title=title or "Credit card repayments",
        barmode="group",
        xaxis_title="Repayment month",
        yaxis_title="Amount",
    )
    return fig


def create_category_breakdown_chart(period: CreditCardBillingPeriod, title: str | None = None) -> go.Figure:
    """Stacked bar of bill and prorated amounts per category for one period."""
    frame = category_breakdown_frame(period)
    if frame.empty:
        return _empty_figure()
    long_df = frame.melt(
        id_vars="Category",
        value_vars=["Bill Amount", "Prorated"],
        var_name="Kind",
        value_name="Amount",
    )
    long_df = long_df[long_df["Amount"] > 0]
    fig = px.bar(long_df, x="Category", y="Amount", color="Kind")
    fig.update_layout(
        title=title or f"Category breakdown for {period.repayment_month}",
        barmode="stack",
        xaxis_title="Category",
        yaxis_title="Amount",
    )
    return fig
