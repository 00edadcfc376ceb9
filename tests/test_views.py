from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from conftest import UTC, make_reading, make_store
from dateutil import tz

from presion_tool.storage import RecordStore
from presion_tool.views import (
    ALL_TIME,
    chart_window,
    elapsed_days,
    filter_records,
    format_preview,
    list_items,
    records_frame,
    reminder_state,
)


def _store_with_days(*days: str) -> RecordStore:
    return make_store(*(make_reading(str(i), d) for i, d in enumerate(days)))


def test_reminder_state_today_recorded() -> None:
    store = _store_with_days("2025-03-09", "2025-03-10")
    state = reminder_state(store.records, date(2025, 3, 10))
    assert state.recorded_today is True


def test_reminder_state_not_recorded() -> None:
    store = _store_with_days("2025-03-09")
    state = reminder_state(store.records, date(2025, 3, 10))
    assert state.recorded_today is False
    recorded = reminder_state(store.records, date(2025, 3, 9))
    assert state.title != recorded.title


def test_reminder_state_empty_collection() -> None:
    assert reminder_state([], date(2025, 3, 10)).recorded_today is False


def test_elapsed_days_rounds_up() -> None:
    now = datetime(2025, 3, 10, 9, 30, tzinfo=UTC)
    assert elapsed_days("2025-03-10", now) == 1
    assert elapsed_days("2025-03-09", now) == 2
    assert elapsed_days("2025-03-12", now) == 2
    assert elapsed_days("garbage", now) is None


def test_filter_all_time_returns_everything_in_order() -> None:
    store = _store_with_days("2020-01-01", "2025-03-10", "2024-06-01")
    now = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)

    out = filter_records(store.records, ALL_TIME, now)

    assert out == list(store.records)


def test_filter_zero_days_keeps_only_today_at_midnight() -> None:
    store = _store_with_days("2025-03-09", "2025-03-10")
    now = datetime(2025, 3, 10, 0, 0, tzinfo=UTC)

    out = filter_records(store.records, 0, now)

    assert [r.date for r in out] == ["2025-03-10"]


def test_filter_window_is_inclusive_and_ordered() -> None:
    store = _store_with_days("2025-03-01", "2025-03-03", "2025-03-09", "2025-03-10")
    now = datetime(2025, 3, 10, 8, 0, tzinfo=UTC)

    out = filter_records(store.records, 7, now)

    # 2025-03-03 is 7 days and 8 hours back, ceiling gives 8.
    assert [r.date for r in out] == ["2025-03-10", "2025-03-09"]


def test_filter_excludes_unparsable_dates() -> None:
    good = make_reading("1", "2025-03-10")
    broken = replace(make_reading("2", "2025-03-10"), date="10/03/2025")
    now = datetime(2025, 3, 10, 8, 0, tzinfo=UTC)

    assert filter_records([good, broken], 5, now) == [good]
    assert filter_records([good, broken], ALL_TIME, now) == [good, broken]


def test_filter_empty_result() -> None:
    store = _store_with_days("2020-01-01")
    now = datetime(2025, 3, 10, 8, 0, tzinfo=UTC)
    assert filter_records(store.records, 30, now) == []


def test_chart_window_small_collection_oldest_first() -> None:
    store = _store_with_days("2025-03-02", "2025-03-01", "2025-03-03")

    series = chart_window(store.records)

    assert series.labels == ["03-01", "03-02", "03-03"]
    assert len(series.systolic) == len(series.diastolic) == 3


def test_chart_window_keeps_seven_most_recent() -> None:
    days = [f"2025-03-{d:02d}" for d in range(1, 11)]
    store = make_store(
        *(
            make_reading(str(i), d, systolic=100 + i, diastolic=60 + i)
            for i, d in enumerate(days)
        )
    )

    series = chart_window(store.records)

    assert series.labels == [d[5:] for d in days[3:]]
    assert series.systolic == [100 + i for i in range(3, 10)]
    assert series.diastolic == [60 + i for i in range(3, 10)]


def test_chart_window_empty() -> None:
    assert len(chart_window([])) == 0


def test_list_items_carry_status_and_period_label() -> None:
    store = make_store(
        make_reading("1", "2025-03-10", "21:05", 150, 95, 80, "evening", "mareo")
    )

    (item,) = list_items(store.records)

    assert item.heading == "2025-03-10 21:05"
    assert item.period_label == "noche"
    assert item.status.category == "alert"
    assert item.note == "mareo"


def test_records_frame_and_preview() -> None:
    store = _store_with_days("2025-03-09", "2025-03-10")

    frame = records_frame(store.records)

    assert list(frame["Fecha"]) == ["2025-03-10", "2025-03-09"]
    assert "Sistólica" in format_preview(store.records)


def test_preview_empty_state() -> None:
    assert records_frame([]).empty
    assert "Todavía no hay lecturas" in format_preview([])


def test_elapsed_days_counts_real_hours_across_dst() -> None:
    new_york = tz.gettz("America/New_York")
    # Clocks jumped forward on 2025-03-09, so only 23.5 hours have passed.
    now = datetime(2025, 3, 10, 0, 30, tzinfo=new_york)

    assert elapsed_days("2025-03-09", now) == 1
    store = _store_with_days("2025-03-09")
    assert [r.date for r in filter_records(store.records, 1, now)] == ["2025-03-09"]


def test_list_items_unknown_period_reads_as_other() -> None:
    reading = replace(make_reading("1", "2025-03-10"), period="madrugada")
    assert list_items([reading])[0].period_label == "otro"
