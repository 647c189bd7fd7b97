"""Plotly figures built from a SimulationResult."""

from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from schedule_risk.config import GANTT_PERCENTILES, TORNADO_TOP_N
from schedule_risk.cpm.analysis import tornado_ranking
from schedule_risk.cpm.report import SimulationResult

# -----------------------------------------------------------
# Visual constants
# -----------------------------------------------------------
FLAT_COLORS = {
    "blue": "#1E88E5",
    "green": "#43A047",
    "amber": "#FB8C00",
    "red": "#E53935",
    "purple": "#8E24AA",
    "grey": "#757575",
}

MARGIN = dict(l=20, r=20, t=40, b=20)

_OUTCOMES = {
    "duration": ("Duration", "days"),
    "cost": ("Cost", "$"),
}


def _outcome(which: str):
    if which not in _OUTCOMES:
        raise ValueError(f"Unknown outcome {which!r}; expected 'duration' or 'cost'")
    return _OUTCOMES[which]


def histogram_figure(result: SimulationResult, which: str = "duration") -> go.Figure:
    """Frequency of total project duration or cost across runs."""
    title, unit = _outcome(which)
    a = result.analysis
    if a is None:
        return go.Figure()

    hist = a.duration_histogram if which == "duration" else a.cost_histogram
    df = pd.DataFrame({"Range": list(hist.labels), "Frequency": list(hist.counts)})
    fig = px.bar(
        df,
        x="Range",
        y="Frequency",
        title=f"Total {title} Distribution",
        color_discrete_sequence=[FLAT_COLORS["blue"] if which == "duration" else FLAT_COLORS["green"]],
    )
    fig.update_layout(
        margin=MARGIN,
        xaxis_title=f"{title} Range ({unit})",
        yaxis_title="Frequency",
    )
    return fig


def s_curve_figure(result: SimulationResult, which: str = "duration") -> go.Figure:
    """Cumulative probability of finishing within a given duration / cost."""
    title, unit = _outcome(which)
    if result.is_empty:
        return go.Figure()

    x, y = result.s_curve(which)
    df = pd.DataFrame({title: x, "Cumulative Probability": y})
    fig = px.line(
        df,
        x=title,
        y="Cumulative Probability",
        title=f"{title} S-Curve",
        color_discrete_sequence=[FLAT_COLORS["red"] if which == "duration" else FLAT_COLORS["purple"]],
    )

    a = result.analysis
    level = a.confidence_level
    marker = a.duration_at_confidence if which == "duration" else a.cost_at_confidence
    fig.add_vline(
        x=marker,
        line_dash="dash",
        line_color=FLAT_COLORS["grey"],
        annotation_text=f"P{level:g}",
    )
    fig.update_layout(
        margin=MARGIN,
        xaxis_title=f"Total Project {title} ({unit})",
        yaxis=dict(range=[0, 1], tickformat=".0%"),
    )
    return fig


def tornado_figure(result: SimulationResult, top_n: int = TORNADO_TOP_N) -> go.Figure:
    """Top tasks by absolute duration sensitivity."""
    if result.is_empty:
        return go.Figure()

    bars = tornado_ranking(result.tasks, result.analysis.duration_sensitivity, top_n)
    df = pd.DataFrame(
        {
            "Task": [b.label for b in bars],
            "Correlation": [b.correlation for b in bars],
            "Direction": ["positive" if b.correlation >= 0 else "negative" for b in bars],
        }
    )
    fig = px.bar(
        df,
        x="Correlation",
        y="Task",
        orientation="h",
        color="Direction",
        color_discrete_map={"positive": FLAT_COLORS["green"], "negative": FLAT_COLORS["red"]},
        title="Duration Sensitivity (Pearson Corr.)",
    )
    fig.update_layout(margin=MARGIN, xaxis=dict(range=[-1, 1]), showlegend=False)
    return fig


def gantt_figure(
    result: SimulationResult,
    percentiles: Sequence[float] = GANTT_PERCENTILES,
) -> go.Figure:
    """
    Probabilistic Gantt: each bar spans the low-percentile earliest start to
    the high-percentile earliest finish.
    """
    bars = result.gantt_bars(percentiles)
    if not bars:
        return go.Figure()

    ps = sorted(percentiles)
    hover = [
        " | ".join(f"P{p:g}: {b.start[p]:.1f} - {b.finish[p]:.1f}" for p in ps)
        for b in bars
    ]
    low, high = bars[0].low, bars[0].high
    fig = go.Figure(
        go.Bar(
            x=[b.width for b in bars],
            y=[b.label for b in bars],
            base=[b.offset for b in bars],
            orientation="h",
            marker_color=FLAT_COLORS["blue"],
            opacity=0.6,
            hovertext=hover,
            name=f"Duration Range (P{low:g}-P{high:g})",
        )
    )
    fig.update_layout(
        title="Probabilistic Gantt Chart",
        margin=MARGIN,
        xaxis_title="Project Timeline (days)",
        yaxis=dict(autorange="reversed"),
        showlegend=False,
    )
    return fig
