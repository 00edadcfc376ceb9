"""Gráfico de tendencia (plotly) para las últimas lecturas."""

from __future__ import annotations

import logging
from pathlib import Path

import plotly.graph_objects as go

from presion_tool.views import ChartSeries

logger = logging.getLogger(__name__)

Y_SUGGESTED_MIN = 60
Y_SUGGESTED_MAX = 160

SYSTOLIC_COLOR = "#FF8A80"
DIASTOLIC_COLOR = "#81C784"


def y_bounds(series: ChartSeries) -> tuple[float, float]:
    """Suggested y range, widened to fit values outside [60, 160]."""
    values = [v for v in (*series.systolic, *series.diastolic) if v == v]
    low = min([Y_SUGGESTED_MIN, *values])
    high = max([Y_SUGGESTED_MAX, *values])
    return low, high


def build_trend_figure(series: ChartSeries) -> go.Figure:
    """Two overlaid filled lines: systolic and diastolic."""
    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=series.labels,
            y=series.systolic,
            name="Sistólica",
            mode="lines+markers",
            line={"color": SYSTOLIC_COLOR, "shape": "spline"},
            fill="tozeroy",
            fillcolor="rgba(255, 138, 128, 0.2)",
        )
    )
    fig.add_trace(
        go.Scatter(
            x=series.labels,
            y=series.diastolic,
            name="Diastólica",
            mode="lines+markers",
            line={"color": DIASTOLIC_COLOR, "shape": "spline"},
            fill="tozeroy",
            fillcolor="rgba(129, 199, 132, 0.2)",
        )
    )
    fig.update_layout(
        legend={
            "orientation": "h",
            "yanchor": "top",
            "y": -0.15,
            "x": 0.5,
            "xanchor": "center",
        },
        yaxis={"range": list(y_bounds(series)), "title": "mmHg"},
        xaxis={"type": "category"},
        margin={"l": 40, "r": 20, "t": 30, "b": 60},
    )
    return fig


def write_trend_html(series: ChartSeries, out_path: Path) -> Path:
    """Write the trend chart as a standalone HTML page."""
    out_path.parent.mkdir(parents=True, exist_ok=True)
    build_trend_figure(series).write_html(str(out_path), include_plotlyjs=True)
    logger.debug("Chart with %d points written to %s", len(series), out_path)
    return out_path
