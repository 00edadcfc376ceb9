"""Exportación de lecturas: CSV plano y Excel formateado para el médico."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

from presion_tool.classify import classify
from presion_tool.model import PERIOD_LABELS, Reading

CSV_HEADER: tuple[str, ...] = (
    "date",
    "time",
    "systolic",
    "diastolic",
    "pulse",
    "period",
    "note",
)

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")

_HEADER_MAP: dict[str, str] = {
    "weekday": "Día",
    "date": "Fecha",
    "time": "Hora",
    "period": "Momento",
    "systolic": "Sistólica\n(mmHg)",
    "diastolic": "Diastólica\n(mmHg)",
    "pulse": "Pulso\n(lpm)",
    "status": "Estado",
    "note": "Nota",
}


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the doctor sheet."""

    sheet_name: str = "Presión arterial"


def to_csv(records: Iterable[Reading]) -> str:
    """Comma-separated table, one line per reading in the given order.

    Notes are written as-is; embedded commas or newlines are not escaped.
    """
    lines = [",".join(CSV_HEADER)]
    for r in records:
        lines.append(
            f"{r.date},{r.time},{r.systolic},{r.diastolic},"
            f"{r.pulse},{r.period},{r.note}"
        )
    return "\n".join(lines) + "\n"


def readings_to_frame(records: Sequence[Reading]) -> pd.DataFrame:
    """Convert readings to a DataFrame in the exported column order."""
    rows = [
        {
            "date": r.date,
            "time": r.time,
            "period": PERIOD_LABELS.get(r.period, PERIOD_LABELS["other"]),
            "systolic": r.systolic,
            "diastolic": r.diastolic,
            "pulse": r.pulse,
            "status": classify(r.systolic, r.diastolic).label,
            "note": r.note,
        }
        for r in records
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "date",
            "time",
            "period",
            "systolic",
            "diastolic",
            "pulse",
            "status",
            "note",
        ],
    )


def _weekday_label(i: object) -> str:
    """Convierte índice 0-6 (lunes-domingo) a etiqueta de 3 letras."""
    try:
        if i is None or (isinstance(i, float) and pd.isna(i)):
            return ""
        if isinstance(i, int | float):
            idx = int(i)
            return _DIA_SEMANA[idx] if 0 <= idx < 7 else ""
        return ""
    except (ValueError, TypeError):
        return ""


def _add_weekday_column(export_df: pd.DataFrame) -> pd.DataFrame:
    """Añade columna weekday (Día) a partir de date."""
    if "date" not in export_df.columns or export_df.empty:
        return export_df
    weekday_series = pd.to_datetime(export_df["date"], errors="coerce").dt.weekday
    export_df = export_df.copy()
    export_df["weekday"] = weekday_series.map(_weekday_label)
    cols = ["weekday"] + [c for c in export_df.columns if c != "weekday"]
    return export_df[cols]


def write_doctor_xlsx(
    records: Sequence[Reading], out_path: Path, layout: ExcelLayout
) -> Path:
    """Write a formatted Excel file suitable for printing.

    Args:
        records: Readings, newest first.
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.

    Returns:
        The written path.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    export_df = readings_to_frame(records)
    export_df = _add_weekday_column(export_df)
    export_df = export_df.rename(columns=_HEADER_MAP)

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name=layout.sheet_name)
        ws = writer.book[layout.sheet_name]
        _format_sheet(ws)
    return out_path


def _style_header_row(ws: Any) -> None:
    """Aplica fuente negrita, alineación y borde a la fila de cabecera."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for cell in ws[1]:
        cell.font = header_font
        cell.alignment = center
        cell.border = border


def _style_body_rows(ws: Any, col_index: dict[str, int]) -> None:
    """Centra y enmarca las filas de datos; la nota queda a la izquierda."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    left = Alignment(horizontal="left", vertical="center", wrap_text=True)
    note_idx = col_index.get(_HEADER_MAP["note"])
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = left if cell.column == note_idx else center
            cell.border = border


def _get_header_col_index(ws: Any) -> dict[str, int]:
    """Devuelve mapa nombre de cabecera -> índice de columna (1-based)."""
    headers = [str(cell.value) for cell in ws[1]]
    return {name: idx + 1 for idx, name in enumerate(headers)}


def _apply_column_widths(ws: Any, col_index: dict[str, int]) -> None:
    """Establece anchos de columna para evitar ###."""
    widths = [
        ("Día", 6),
        ("Fecha", 12),
        ("Hora", 8),
        ("Momento", 11),
        ("Sistólica\n(mmHg)", 11),
        ("Diastólica\n(mmHg)", 11),
        ("Pulso\n(lpm)", 8),
        ("Estado", 12),
        ("Nota", 36),
    ]
    for header, width in widths:
        idx = col_index.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    """Aplica formato entero a las columnas de presión y pulso."""
    headers = ("Sistólica\n(mmHg)", "Diastólica\n(mmHg)", "Pulso\n(lpm)")
    for row in ws.iter_rows(min_row=2):
        for header in headers:
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = "0"


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to a worksheet.

    Args:
        ws: openpyxl worksheet.
    """
    _style_header_row(ws)
    col_index = _get_header_col_index(ws)
    _style_body_rows(ws, col_index)
    _apply_column_widths(ws, col_index)
    _apply_number_formats(ws, col_index)
