"""
visualization.py — Plotly figures for capital-account reporting.

Depends on: aggregator.py (consumes its DataFrames)
All functions return plotly.graph_objects.Figure objects.
"""
from __future__ import annotations

from typing import Optional

import pandas as pd
import plotly.graph_objects as go

from capital_ledger.aggregator import POSITION_COLUMNS, STATEMENT_COLUMNS


# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------

_LEDGER_COLORS = {
    "background": "#FFFFFF",
    "paper": "#F6F8FA",
    "grid": "#D0D7DE",
    "text": "#1F2328",
    "text_secondary": "#59636E",
    "called": "#0969DA",
    "unfunded": "#8C959F",
    "distributed": "#1A7F37",
    "nav": "#BC4C00",
}

_SERIES_PALETTE = [
    "#0969DA",
    "#1A7F37",
    "#BC4C00",
    "#8250DF",
    "#BF3989",
    "#9A6700",
    "#1B7C83",
    "#CF222E",
]


def _apply_ledger_theme(fig: go.Figure) -> go.Figure:
    """Apply the light report styling in place and return the figure."""
    fig.update_layout(
        template="plotly_white",
        paper_bgcolor=_LEDGER_COLORS["paper"],
        plot_bgcolor=_LEDGER_COLORS["background"],
        font=dict(
            family="Inter, -apple-system, 'Segoe UI', sans-serif",
            color=_LEDGER_COLORS["text"],
            size=12,
        ),
        legend=dict(
            bgcolor=_LEDGER_COLORS["paper"],
            bordercolor=_LEDGER_COLORS["grid"],
            borderwidth=1,
            font=dict(color=_LEDGER_COLORS["text_secondary"]),
        ),
    )
    fig.update_xaxes(gridcolor=_LEDGER_COLORS["grid"], zerolinecolor=_LEDGER_COLORS["grid"])
    fig.update_yaxes(gridcolor=_LEDGER_COLORS["grid"], zerolinecolor=_LEDGER_COLORS["grid"])
    return fig


def _require_columns(df: pd.DataFrame, columns: list[str], source: str) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"DataFrame is missing {source} columns: {missing}")


def _labels(df: pd.DataFrame) -> pd.Series:
    if "investor_name" in df.columns:
        return df["investor_name"].fillna(df["investor_id"])
    return df["investor_id"]


# ---------------------------------------------------------------------------
# Capital accounts
# ---------------------------------------------------------------------------

def plot_capital_accounts(
    positions: pd.DataFrame,
    title: str = "Capital Accounts by Investor",
) -> go.Figure:
    """
    Stacked bars of called vs. unfunded commitment, with distributions and
    NAV as side-by-side markers.

    Parameters
    ----------
    positions:
        Output of LedgerAggregator.investor_positions().
    """
    _require_columns(positions, POSITION_COLUMNS, "investor_positions")
    labels = _labels(positions)

    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=labels,
            y=positions["called_amount"],
            name="Called",
            marker_color=_LEDGER_COLORS["called"],
            hovertemplate="%{x}<br>Called: %{y:,.2f}<extra></extra>",
        )
    )
    fig.add_trace(
        go.Bar(
            x=labels,
            y=positions["unfunded_amount"],
            name="Unfunded",
            marker_color=_LEDGER_COLORS["unfunded"],
            hovertemplate="%{x}<br>Unfunded: %{y:,.2f}<extra></extra>",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=labels,
            y=positions["distributed_amount"],
            name="Distributed",
            mode="markers",
            marker=dict(color=_LEDGER_COLORS["distributed"], size=12, symbol="diamond"),
            hovertemplate="%{x}<br>Distributed: %{y:,.2f}<extra></extra>",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=labels,
            y=positions["nav_amount"],
            name="NAV",
            mode="markers",
            marker=dict(color=_LEDGER_COLORS["nav"], size=12, symbol="circle"),
            hovertemplate="%{x}<br>NAV: %{y:,.2f}<extra></extra>",
        )
    )
    fig.update_layout(
        title=title,
        barmode="stack",
        xaxis_title="Investor",
        yaxis_title="Amount",
    )
    return _apply_ledger_theme(fig)


def plot_ownership(
    positions: pd.DataFrame,
    title: str = "Fund Ownership",
) -> go.Figure:
    """Donut chart of ownership percentages."""
    _require_columns(positions, POSITION_COLUMNS, "investor_positions")
    fig = go.Figure(
        go.Pie(
            labels=_labels(positions),
            values=positions["ownership_percentage"],
            hole=0.45,
            marker=dict(colors=_SERIES_PALETTE[: max(len(positions), 1)]),
            hovertemplate="%{label}<br>%{percent}<extra></extra>",
            sort=False,
        )
    )
    fig.update_layout(title=title)
    return _apply_ledger_theme(fig)


def plot_account_timeline(
    statement: pd.DataFrame,
    investor_id: Optional[str] = None,
    title: str = "Capital Account History",
) -> go.Figure:
    """
    Step lines of cumulative called, cumulative distributed and NAV.

    Parameters
    ----------
    statement:
        Output of LedgerAggregator.capital_account_statement().
    investor_id:
        Restrict to one investor; otherwise the fund total is plotted.
    """
    _require_columns(statement, STATEMENT_COLUMNS, "capital_account_statement")
    df = statement
    if investor_id is not None:
        df = df[df["investor_id"] == investor_id]

    fig = go.Figure()
    if df.empty:
        fig.update_layout(title=title)
        return _apply_ledger_theme(fig)

    daily = (
        df.groupby("entry_date", sort=True)[["contribution", "distribution", "nav_change"]]
        .sum()
        .cumsum()
        .reset_index()
    )
    for column, name, color in (
        ("contribution", "Cumulative Called", _LEDGER_COLORS["called"]),
        ("distribution", "Cumulative Distributed", _LEDGER_COLORS["distributed"]),
        ("nav_change", "NAV", _LEDGER_COLORS["nav"]),
    ):
        fig.add_trace(
            go.Scatter(
                x=daily["entry_date"],
                y=daily[column],
                name=name,
                mode="lines+markers",
                line=dict(color=color, width=2, shape="hv"),
                hovertemplate="%{x}<br>" + name + ": %{y:,.2f}<extra></extra>",
            )
        )
    fig.update_layout(title=title, xaxis_title="Date", yaxis_title="Amount")
    return _apply_ledger_theme(fig)
