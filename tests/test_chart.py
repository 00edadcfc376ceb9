from __future__ import annotations

from pathlib import Path

from presion_tool.chart import build_trend_figure, write_trend_html, y_bounds
from presion_tool.views import ChartSeries


def _series() -> ChartSeries:
    return ChartSeries(
        labels=["03-08", "03-09", "03-10"],
        systolic=[118, 131, 145],
        diastolic=[76, 84, 92],
    )


def test_build_trend_figure_has_two_series() -> None:
    fig = build_trend_figure(_series())

    assert [trace.name for trace in fig.data] == ["Sistólica", "Diastólica"]
    assert list(fig.data[0].y) == [118, 131, 145]
    assert list(fig.data[1].x) == ["03-08", "03-09", "03-10"]
    assert list(fig.layout.yaxis.range) == [60, 160]


def test_y_bounds_widen_for_outliers() -> None:
    series = ChartSeries(labels=["03-10"], systolic=[182], diastolic=[55])
    assert y_bounds(series) == (55, 182)


def test_y_bounds_empty_series() -> None:
    assert y_bounds(ChartSeries(labels=[], systolic=[], diastolic=[])) == (60, 160)


def test_write_trend_html(tmp_path: Path) -> None:
    out = write_trend_html(_series(), tmp_path / "charts" / "trend.html")
    assert out.exists()
    html = out.read_text(encoding="utf-8")
    assert "03-10" in html
