"""Vistas derivadas: recordatorio, filtro de lista, ventana del gráfico."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime

import pandas as pd

from presion_tool.classify import classify
from presion_tool.model import DATE_FORMAT, Reading, Status, period_label

ALL_TIME: int | None = None
CHART_WINDOW = 7

_DAY_SECONDS = 24 * 60 * 60

_PREVIEW_COLUMNS: list[str] = [
    "Fecha",
    "Hora",
    "Momento",
    "Sistólica",
    "Diastólica",
    "Pulso",
    "Estado",
    "Nota",
    "id",
]


@dataclass(frozen=True)
class ReminderState:
    """What the reminder card shows."""

    recorded_today: bool
    title: str
    text: str


@dataclass(frozen=True)
class ListItem:
    """One row of the reading list, ready for display."""

    id: str
    heading: str
    period_label: str
    systolic: int
    diastolic: int
    pulse: int
    status: Status
    note: str


@dataclass(frozen=True)
class ChartSeries:
    """Parallel sequences handed to the chart renderer, oldest first."""

    labels: list[str]
    systolic: list[int]
    diastolic: list[int]

    def __len__(self) -> int:
        return len(self.labels)


def reminder_state(records: Iterable[Reading], today: date) -> ReminderState:
    """Decide whether ``today`` already has a reading."""
    today_str = today.strftime(DATE_FORMAT)
    if any(r.date == today_str for r in records):
        return ReminderState(
            recorded_today=True,
            title="¡Muy bien!",
            text="Ya registraste la presión de hoy. ¡Seguí así!",
        )
    return ReminderState(
        recorded_today=False,
        title="¡Buen día!",
        text="Todavía no mediste la presión hoy. Tomate un minuto para registrarla.",
    )


def elapsed_days(day: str, now: datetime) -> int | None:
    """Whole days between ``now`` and midnight of ``day``, rounded up.

    The midnight is built in ``now``'s timezone and the difference is real
    elapsed time, so DST shifts count as they happened. Returns None when
    ``day`` is not a ``YYYY-MM-DD`` string.
    """
    try:
        midnight = datetime.strptime(day, DATE_FORMAT).replace(tzinfo=now.tzinfo)
    except (TypeError, ValueError):
        return None
    seconds = abs(now.timestamp() - midnight.timestamp())
    return math.ceil(seconds / _DAY_SECONDS)


def filter_records(
    records: Iterable[Reading], days: int | None, now: datetime
) -> list[Reading]:
    """Keep readings within ``days`` elapsed days of ``now``.

    Args:
        records: Readings in standing order.
        days: Day threshold, or ``ALL_TIME`` (None) for no limit.
        now: Reference time.

    Returns:
        Matching readings, order preserved.
    """
    if days is ALL_TIME:
        return list(records)
    out: list[Reading] = []
    for reading in records:
        diff = elapsed_days(reading.date, now)
        if diff is not None and diff <= days:
            out.append(reading)
    return out


def chart_window(records: Sequence[Reading], size: int = CHART_WINDOW) -> ChartSeries:
    """Take the newest ``size`` readings and lay them out oldest first."""
    window = list(records[:size])
    window.reverse()
    return ChartSeries(
        labels=[r.date[5:] for r in window],
        systolic=[r.systolic for r in window],
        diastolic=[r.diastolic for r in window],
    )


def list_items(records: Iterable[Reading]) -> list[ListItem]:
    return [
        ListItem(
            id=r.id,
            heading=f"{r.date} {r.time}",
            period_label=period_label(r.period),
            systolic=r.systolic,
            diastolic=r.diastolic,
            pulse=r.pulse,
            status=classify(r.systolic, r.diastolic),
            note=r.note,
        )
        for r in records
    ]


def records_frame(records: Iterable[Reading]) -> pd.DataFrame:
    """Tabla de lecturas con etiquetas en castellano."""
    rows = [
        {
            "Fecha": r.date,
            "Hora": r.time,
            "Momento": period_label(r.period),
            "Sistólica": r.systolic,
            "Diastólica": r.diastolic,
            "Pulso": r.pulse,
            "Estado": classify(r.systolic, r.diastolic).label,
            "Nota": r.note,
            "id": r.id,
        }
        for r in records
    ]
    if not rows:
        return pd.DataFrame(columns=_PREVIEW_COLUMNS)
    return pd.DataFrame(rows, columns=_PREVIEW_COLUMNS)


def format_preview(records: Iterable[Reading]) -> str:
    """Render the reading list as aligned text, or the empty-state message."""
    frame = records_frame(records)
    if frame.empty:
        return "Todavía no hay lecturas.\nUsá «add» para registrar la primera."
    return frame.to_string(index=False, max_colwidth=28)
