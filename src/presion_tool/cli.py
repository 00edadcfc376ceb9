"""CLI para registrar lecturas de presión arterial y exportarlas."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from presion_tool.chart import write_trend_html
from presion_tool.export import ExcelLayout, to_csv, write_doctor_xlsx
from presion_tool.form import (
    FormController,
    FormValues,
    SaveError,
    ValidationError,
)
from presion_tool.model import PERIODS, local_now
from presion_tool.storage import (
    AppConfig,
    KeyValueStore,
    RecordStore,
    SQLiteKeyValueStore,
    load_config,
    parse_days,
    save_config,
)
from presion_tool.views import (
    chart_window,
    filter_records,
    format_preview,
    reminder_state,
)

DB_ENV_VAR = "PRESION_TOOL_DB"


def _default_db() -> str:
    return os.environ.get(DB_ENV_VAR, str(Path.cwd() / "presion_tool.sqlite3"))


def _add_reading_fields(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--sys", dest="systolic", help="Sistólica (mmHg).")
    parser.add_argument("--dia", dest="diastolic", help="Diastólica (mmHg).")
    parser.add_argument("--pulse", help="Pulso (lpm).")
    parser.add_argument("--date", help="Fecha AAAA-MM-DD (default: hoy).")
    parser.add_argument("--time", help="Hora HH:MM (default: ahora).")
    parser.add_argument("--period", choices=PERIODS, help="Momento del día.")
    parser.add_argument("--note", help="Nota libre.")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Registro personal de presión arterial."
    )
    parser.add_argument(
        "--db",
        default=_default_db(),
        help=f"Archivo SQLite (default: ./presion_tool.sqlite3 o ${DB_ENV_VAR}).",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log de depuración."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Registrar una lectura nueva.")
    _add_reading_fields(add)

    edit = sub.add_parser("edit", help="Editar una lectura existente.")
    edit.add_argument("id")
    _add_reading_fields(edit)

    delete = sub.add_parser("delete", help="Eliminar una lectura.")
    delete.add_argument("id")
    delete.add_argument("-y", "--yes", action="store_true", help="No preguntar.")

    list_cmd = sub.add_parser("list", help="Listar lecturas.")
    list_cmd.add_argument(
        "--days",
        help="Rango en días o 'all' (default: el configurado).",
    )

    sub.add_parser("reminder", help="¿Ya se midió hoy?")

    chart = sub.add_parser("chart", help="Tendencia de las últimas 7 lecturas.")
    chart.add_argument("--out", help="Guardar el gráfico como HTML.")

    export = sub.add_parser("export", help="Exportar lecturas.")
    export.add_argument("--format", choices=("csv", "xlsx"), default="csv")
    export.add_argument("--out", help="Archivo de salida (csv: default stdout).")

    config = sub.add_parser("config", help="Ver o cambiar la configuración.")
    config.add_argument("--filter-days", help="Rango por defecto o 'all'.")
    config.add_argument("--export-dir", help="Carpeta para exportar Excel.")

    return parser.parse_args(argv)


def open_backend(db: str) -> KeyValueStore:
    return SQLiteKeyValueStore(Path(db).expanduser())


def confirm_delete() -> bool:
    """Ask on stdin; a closed stdin or Ctrl-C counts as "no"."""
    try:
        answer = input("¿Seguro que querés eliminar esta lectura? [s/N] ")
    except (EOFError, KeyboardInterrupt):
        print()
        return False
    return answer.strip().lower() in ("s", "si", "sí", "y", "yes")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code: 0 ok, 1 not found or write failure, 2 invalid input.
    """
    ns = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    backend = open_backend(ns.db)
    store = RecordStore(backend)
    store.load()
    config = load_config(backend)

    if ns.command in ("add", "edit"):
        return _cmd_submit(ns, store)
    if ns.command == "delete":
        return _cmd_delete(ns, store)
    if ns.command == "list":
        days = parse_days(ns.days) if ns.days is not None else config.filter_days
        print(format_preview(filter_records(store.records, days, local_now())))
        return 0
    if ns.command == "reminder":
        state = reminder_state(store.records, local_now().date())
        print(state.title)
        print(state.text)
        return 0
    if ns.command == "chart":
        return _cmd_chart(ns, store)
    if ns.command == "export":
        return _cmd_export(ns, store, config)
    return _cmd_config(ns, backend, config)


def _cmd_submit(ns: argparse.Namespace, store: RecordStore) -> int:
    controller = FormController(store)
    if ns.command == "edit":
        current = controller.open_edit(ns.id)
        if current is None:
            print(f"No existe la lectura {ns.id}", file=sys.stderr)
            return 1
    else:
        current = controller.open_create()

    values = FormValues(
        date=ns.date if ns.date is not None else current.date,
        time=ns.time if ns.time is not None else current.time,
        period=ns.period if ns.period is not None else current.period,
        systolic=ns.systolic if ns.systolic is not None else current.systolic,
        diastolic=ns.diastolic if ns.diastolic is not None else current.diastolic,
        pulse=ns.pulse if ns.pulse is not None else current.pulse,
        note=ns.note if ns.note is not None else current.note,
    )
    try:
        reading = controller.submit(values)
    except ValidationError as exc:
        for field, message in exc.errors.items():
            print(f"{field}: {message}", file=sys.stderr)
        return 2
    except SaveError as exc:
        print(f"Error al guardar: {exc}", file=sys.stderr)
        return 1
    print(
        f"OK: {reading.id} {reading.date} {reading.time} "
        f"{reading.systolic}/{reading.diastolic} {reading.pulse}"
    )
    return 0


def _cmd_delete(ns: argparse.Namespace, store: RecordStore) -> int:
    if store.find_by_id(ns.id) is None:
        print(f"No existe la lectura {ns.id}", file=sys.stderr)
        return 1
    controller = FormController(store)
    confirm = (lambda: True) if ns.yes else confirm_delete
    try:
        deleted = controller.delete(ns.id, confirm)
    except SaveError as exc:
        print(f"Error al guardar: {exc}", file=sys.stderr)
        return 1
    if deleted:
        print(f"OK: eliminada {ns.id}")
    else:
        print("Cancelado.")
    return 0


def _cmd_chart(ns: argparse.Namespace, store: RecordStore) -> int:
    series = chart_window(store.records)
    for label, sys_value, dia_value in zip(
        series.labels, series.systolic, series.diastolic, strict=True
    ):
        print(f"{label}  {sys_value}/{dia_value}")
    if ns.out:
        out_path = write_trend_html(series, Path(ns.out).expanduser())
        print(f"OK: Gráfico: {out_path}")
    return 0


def _cmd_export(
    ns: argparse.Namespace, store: RecordStore, config: AppConfig
) -> int:
    if ns.format == "csv":
        content = to_csv(store.records)
        if ns.out:
            out_path = Path(ns.out).expanduser()
            out_path.parent.mkdir(parents=True, exist_ok=True)
            out_path.write_text(content, encoding="utf-8")
            print(f"OK: CSV: {out_path}")
        else:
            sys.stdout.write(content)
        return 0

    if ns.out:
        out_path = Path(ns.out).expanduser()
    else:
        out_dir = (
            Path(config.export_dir).expanduser()
            if config.export_dir
            else Path.cwd() / "salidas"
        )
        ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        out_path = out_dir / f"presion_{ts}.xlsx"
    write_doctor_xlsx(list(store.records), out_path, ExcelLayout())
    print(f"OK: Output: {out_path}")
    return 0


def _cmd_config(
    ns: argparse.Namespace, backend: KeyValueStore, config: AppConfig
) -> int:
    if ns.filter_days is not None or ns.export_dir is not None:
        config = AppConfig(
            filter_days=(
                parse_days(ns.filter_days)
                if ns.filter_days is not None
                else config.filter_days
            ),
            export_dir=(
                ns.export_dir if ns.export_dir is not None else config.export_dir
            ),
        )
        save_config(backend, config)
    days = "all" if config.filter_days is None else str(config.filter_days)
    print(f"filter_days: {days}")
    print(f"export_dir: {config.export_dir or '(./salidas)'}")
    return 0
