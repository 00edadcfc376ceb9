"""Tests for CLI entrypoints."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from openpyxl import load_workbook

from presion_tool import cli
from presion_tool.storage import MemoryKeyValueStore, RecordStore, load_config


@pytest.fixture
def backend(monkeypatch: pytest.MonkeyPatch) -> MemoryKeyValueStore:
    store = MemoryKeyValueStore()
    monkeypatch.setattr(cli, "open_backend", lambda _db: store)
    return store


def _stored(backend: MemoryKeyValueStore) -> RecordStore:
    store = RecordStore(backend)
    store.load()
    return store


def _add(*extra: str) -> int:
    return cli.main(
        [
            "add",
            "--sys",
            "128",
            "--dia",
            "82",
            "--pulse",
            "66",
            "--date",
            "2025-03-10",
            "--time",
            "07:45",
            "--period",
            "morning",
            *extra,
        ]
    )


def test_parse_args_custom_values() -> None:
    ns = cli.parse_args(["--db", "/tmp/x.sqlite3", "list", "--days", "all"])
    assert ns.db == "/tmp/x.sqlite3"
    assert ns.command == "list"
    assert ns.days == "all"


def test_parse_args_db_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(cli.DB_ENV_VAR, "/tmp/env.sqlite3")
    assert cli.parse_args(["reminder"]).db == "/tmp/env.sqlite3"


def test_add_then_list(
    backend: MemoryKeyValueStore, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _add("--note", "tras caminar") == 0
    store = _stored(backend)
    assert len(store) == 1
    assert store.records[0].note == "tras caminar"

    capsys.readouterr()
    assert cli.main(["list", "--days", "all"]) == 0
    out = capsys.readouterr().out
    assert "2025-03-10" in out
    assert "Alta" in out


def test_add_invalid_input_exit_code(
    backend: MemoryKeyValueStore, capsys: pytest.CaptureFixture[str]
) -> None:
    code = cli.main(["add", "--sys", "abc", "--dia", "80", "--pulse", "70"])
    assert code == 2
    assert "systolic" in capsys.readouterr().err
    assert len(_stored(backend)) == 0


def test_edit_keeps_unchanged_fields(backend: MemoryKeyValueStore) -> None:
    _add()
    reading_id = _stored(backend).records[0].id

    assert cli.main(["edit", reading_id, "--sys", "150"]) == 0

    edited = _stored(backend).find_by_id(reading_id)
    assert edited is not None
    assert edited.systolic == 150
    assert edited.diastolic == 82
    assert edited.date == "2025-03-10"


def test_edit_missing_id(backend: MemoryKeyValueStore) -> None:
    assert cli.main(["edit", "ghost", "--sys", "150"]) == 1


def test_delete_with_and_without_confirmation(
    backend: MemoryKeyValueStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    _add()
    reading_id = _stored(backend).records[0].id

    monkeypatch.setattr("builtins.input", lambda _prompt: "n")
    assert cli.main(["delete", reading_id]) == 0
    assert len(_stored(backend)) == 1

    monkeypatch.setattr("builtins.input", lambda _prompt: "s")
    assert cli.main(["delete", reading_id]) == 0
    assert len(_stored(backend)) == 0


def test_delete_missing_id(backend: MemoryKeyValueStore) -> None:
    assert cli.main(["delete", "ghost", "--yes"]) == 1


def test_export_csv_to_stdout(
    backend: MemoryKeyValueStore, capsys: pytest.CaptureFixture[str]
) -> None:
    _add()
    capsys.readouterr()

    assert cli.main(["export"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "date,time,systolic,diastolic,pulse,period,note",
        "2025-03-10,07:45,128,82,66,morning,",
    ]


def test_export_xlsx_to_path(backend: MemoryKeyValueStore, tmp_path: Path) -> None:
    _add()
    out = tmp_path / "out.xlsx"

    assert cli.main(["export", "--format", "xlsx", "--out", str(out)]) == 0

    ws = load_workbook(out).active
    assert ws is not None
    assert ws.max_row == 2


def test_export_xlsx_uses_configured_dir(
    backend: MemoryKeyValueStore, tmp_path: Path
) -> None:
    _add()
    assert cli.main(["config", "--export-dir", str(tmp_path / "salidas")]) == 0

    assert cli.main(["export", "--format", "xlsx"]) == 0

    files = list((tmp_path / "salidas").glob("presion_*.xlsx"))
    assert len(files) == 1


def test_chart_writes_html(
    backend: MemoryKeyValueStore,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _add()
    out = tmp_path / "trend.html"

    assert cli.main(["chart", "--out", str(out)]) == 0

    assert out.exists()
    assert "03-10  128/82" in capsys.readouterr().out


def test_reminder_prints_state(
    backend: MemoryKeyValueStore, capsys: pytest.CaptureFixture[str]
) -> None:
    assert cli.main(["reminder"]) == 0
    assert "Todavía no mediste" in capsys.readouterr().out


def test_config_updates_filter_days(backend: MemoryKeyValueStore) -> None:
    assert cli.main(["config", "--filter-days", "all"]) == 0
    assert load_config(backend).filter_days is None

    assert cli.main(["config", "--filter-days", "7"]) == 0
    assert load_config(backend).filter_days == 7


def test_delete_with_closed_stdin_cancels(
    backend: MemoryKeyValueStore,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _add()
    reading_id = _stored(backend).records[0].id
    monkeypatch.setattr("sys.stdin", io.StringIO(""))

    assert cli.main(["delete", reading_id]) == 0

    assert "Cancelado." in capsys.readouterr().out
    assert len(_stored(backend)) == 1
