"""Persistencia clave/valor y repositorio de lecturas."""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from presion_tool.model import Reading

logger = logging.getLogger(__name__)

STORAGE_KEY = "bp_records_v1"
CONFIG_KEY = "app_config"
DEFAULT_FILTER_DAYS = 30

# Legacy value of the range selector meaning "no limit".
ALL_TIME_LEGACY = 999

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class KeyValueStore(ABC):
    """Opaque durable string store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""


class SQLiteKeyValueStore(KeyValueStore):
    """Key/value table in a SQLite file."""

    def __init__(self, db_path: Path) -> None:
        """Create store and ensure schema exists."""
        self._db_path = db_path
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.executescript(SCHEMA_SQL)
            conn.commit()

    def get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM app_config WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO app_config(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                (key, value),
            )
            conn.commit()


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, lost on exit."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class RecordStore:
    """Colección ordenada de lecturas sincronizada con un KeyValueStore.

    The collection is kept sorted newest first after every mutation and the
    whole list is rewritten on each ``save``.
    """

    def __init__(self, backend: KeyValueStore, key: str = STORAGE_KEY) -> None:
        self._backend = backend
        self._key = key
        self._readings: list[Reading] = []
        self._listeners: list[Callable[[RecordStore], None]] = []

    @property
    def records(self) -> tuple[Reading, ...]:
        return tuple(self._readings)

    def __len__(self) -> int:
        return len(self._readings)

    def __iter__(self) -> Iterator[Reading]:
        return iter(tuple(self._readings))

    def subscribe(self, callback: Callable[[RecordStore], None]) -> None:
        """Register a callback run after every successful save."""
        self._listeners.append(callback)

    def load(self) -> list[Reading]:
        """Replace the in-memory collection with the stored one.

        Malformed data yields an empty collection; unusable items are skipped.
        """
        raw = self._backend.get(self._key)
        self._readings = _parse_readings(raw) if raw else []
        self._sort()
        return list(self._readings)

    def save(self) -> bool:
        """Sort and write the full collection.

        Returns:
            True when the write succeeded. Subscribers are only notified then.
        """
        self._sort()
        payload = json.dumps(
            [reading.to_dict() for reading in self._readings], ensure_ascii=False
        )
        try:
            self._backend.set(self._key, payload)
        except (sqlite3.Error, OSError):
            logger.exception("Could not write %d readings", len(self._readings))
            return False
        logger.debug("Saved %d readings under %s", len(self._readings), self._key)
        for callback in self._listeners:
            callback(self)
        return True

    def add(self, reading: Reading) -> None:
        self._readings.append(reading)
        self._sort()

    def replace(self, reading_id: str, reading: Reading) -> bool:
        """Overwrite the first reading with ``reading_id``; no-op if missing."""
        for idx, current in enumerate(self._readings):
            if current.id == reading_id:
                self._readings[idx] = reading
                self._sort()
                return True
        return False

    def remove(self, reading_id: str) -> int:
        """Drop every reading with ``reading_id`` and return how many went."""
        before = len(self._readings)
        self._readings = [r for r in self._readings if r.id != reading_id]
        return before - len(self._readings)

    def find_by_id(self, reading_id: str) -> Reading | None:
        for reading in self._readings:
            if reading.id == reading_id:
                return reading
        return None

    def new_id(self, now_ms: int) -> str:
        """Mint an id from a millisecond clock value, bumped until unused."""
        used = {reading.id for reading in self._readings}
        candidate = now_ms
        while str(candidate) in used:
            candidate += 1
        return str(candidate)

    def _sort(self) -> None:
        self._readings.sort(key=lambda r: r.timestamp, reverse=True)


def _parse_readings(raw: str) -> list[Reading]:
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored readings are not valid JSON; starting empty")
        return []
    if not isinstance(parsed, list):
        logger.warning("Stored readings are not a JSON list; starting empty")
        return []
    out: list[Reading] = []
    for item in parsed:
        reading = _item_to_reading(item)
        if reading is not None:
            out.append(reading)
    return out


def _item_to_reading(item: Any) -> Reading | None:
    """Convierte un ítem dict en Reading; None si no es utilizable."""
    if not isinstance(item, dict):
        logger.warning("Skipping stored item of type %s", type(item).__name__)
        return None
    try:
        return Reading.from_dict(item)
    except (KeyError, ValueError, TypeError) as exc:
        logger.warning("Skipping stored reading %r: %s", item.get("id"), exc)
        return None


@dataclass(frozen=True)
class AppConfig:
    """Configuracion persistida de la app."""

    filter_days: int | None = DEFAULT_FILTER_DAYS
    export_dir: str = ""


def load_config(backend: KeyValueStore) -> AppConfig:
    """Devuelve configuracion guardada o defaults."""
    defaults: dict[str, Any] = {
        "filter_days": DEFAULT_FILTER_DAYS,
        "export_dir": "",
    }
    raw = backend.get(CONFIG_KEY)
    values = _parse_json_object(raw) if raw else {}
    merged = {**defaults, **values}
    return AppConfig(
        filter_days=parse_days(merged["filter_days"]),
        export_dir=str(merged["export_dir"] or ""),
    )


def save_config(backend: KeyValueStore, config: AppConfig) -> None:
    """Guarda la configuracion como objeto JSON."""
    payload = {
        "filter_days": config.filter_days,
        "export_dir": config.export_dir,
    }
    backend.set(CONFIG_KEY, json.dumps(payload))


def parse_days(value: object) -> int | None:
    """Normalize a day-range value; None means all time.

    Accepts ints, numeric strings, ``"all"`` and the legacy ``999``. Anything
    unusable falls back to the default range.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("all", "todo", "todos"):
            return None
        try:
            value = int(text)
        except ValueError:
            return DEFAULT_FILTER_DAYS
    if isinstance(value, bool) or not isinstance(value, int | float):
        return DEFAULT_FILTER_DAYS
    if isinstance(value, float) and not math.isfinite(value):
        return DEFAULT_FILTER_DAYS
    days = int(value)
    if days == ALL_TIME_LEGACY:
        return None
    if days < 0:
        return DEFAULT_FILTER_DAYS
    return days


def _parse_json_object(raw: str) -> dict[str, Any]:
    try:
        parsed: Any = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Stored config is not valid JSON; using defaults")
        return {}
    if not isinstance(parsed, dict):
        return {}
    return parsed
