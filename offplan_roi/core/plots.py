from __future__ import annotations

from typing import Dict, List, Sequence
import pandas as pd
import plotly.graph_objects as go

from .resale import StrategyResult
from .strategies import ExitStrategy


def schedule_curves(schedule_df: pd.DataFrame, title: str = "Property value vs amount paid") -> go.Figure:
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=schedule_df["month"], y=schedule_df["property_value"], mode="lines", name="Property value"))
    fig.add_trace(go.Scatter(x=schedule_df["month"], y=schedule_df["total_paid"], mode="lines", name="Total paid"))
    fig.add_trace(go.Scatter(x=schedule_df["month"], y=schedule_df["balance"], mode="lines", name="Balance"))
    fig.update_layout(title=title, xaxis_title="Month", yaxis_title="Amount")
    return fig


def payment_bars(schedule_df: pd.DataFrame, title: str = "Payments") -> go.Figure:
    fig = go.Figure()
    regular = schedule_df["amount"] - schedule_df["reinforcement"]
    fig.add_bar(x=schedule_df["month"], y=regular, name="Installment")
    fig.add_bar(x=schedule_df["month"], y=schedule_df["reinforcement"], name="Reinforcement")
    fig.update_layout(title=title, barmode="stack", xaxis_title="Month", yaxis_title="Amount")
    return fig


def profit_curve(
    roi_df: pd.DataFrame,
    picks: Sequence[StrategyResult] = (),
    title: str = "Resale profit by month",
) -> go.Figure:
    """Profit per resale month, with the selected months as markers."""
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=roi_df["month"], y=roi_df["profit"], mode="lines", name="Profit"))
    if picks:
        fig.add_trace(
            go.Scatter(
                x=[p.month for p in picks],
                y=[p.profit for p in picks],
                mode="markers+text",
                text=[p.label for p in picks],
                textposition="top center",
                name="Picks",
            )
        )
    fig.update_layout(title=title, xaxis_title="Month", yaxis_title="Profit")
    return fig


def roi_evolution_curves(evolution_df: pd.DataFrame, title: str = "ROI evolution") -> go.Figure:
    fig = go.Figure()
    fig.add_trace(go.Scatter(x=evolution_df["month"], y=evolution_df["annual_roi"], mode="lines", name="Annual ROI"))
    fig.add_trace(go.Scatter(x=evolution_df["month"], y=evolution_df["total_roi"], mode="lines", name="Total ROI"))
    fig.update_layout(title=title, xaxis_title="Month", yaxis_title="%")
    return fig


def strategy_bars(strategies: List[ExitStrategy], title: str = "Strategies") -> go.Figure:
    names = [s.name for s in strategies]
    fig = go.Figure()
    fig.add_bar(x=names, y=[s.total_roi for s in strategies], name="Total ROI")
    fig.add_bar(x=names, y=[s.annual_roi for s in strategies], name="Annual ROI")
    fig.update_layout(title=title, barmode="group", yaxis_title="%")
    return fig


def sale_waterfall(components: Dict[str, float], title: str = "Sale - Waterfall") -> go.Figure:
    labels = [
        "Sale value",
        "Amount invested",
        "Remaining balance",
        "Commission",
        "Tax",
        "Net profit",
    ]
    base = components.get("sale_value", 0.0)
    invested = -abs(components.get("investment", 0.0))
    balance = -abs(components.get("remaining_balance", 0.0))
    commission = -abs(components.get("commission", 0.0))
    tax = -abs(components.get("tax", 0.0))
    net = components.get("net_profit", 0.0)

    fig = go.Figure(
        go.Waterfall(
            x=labels,
            measure=["relative", "relative", "relative", "relative", "relative", "total"],
            y=[base, invested, balance, commission, tax, net],
        )
    )
    fig.update_layout(title=title)
    return fig
