"""Modelos tipados para lecturas de presión arterial."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, tzinfo
from typing import Any

from dateutil import tz

PERIODS: tuple[str, ...] = ("morning", "noon", "evening", "other")

PERIOD_LABELS: dict[str, str] = {
    "morning": "mañana",
    "noon": "mediodía",
    "evening": "noche",
    "other": "otro",
}

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

_LOCAL_TZ = tz.tzlocal()


@dataclass(frozen=True)
class Reading:
    """One blood-pressure measurement."""

    id: str
    timestamp: int
    date: str
    time: str
    period: str
    systolic: int
    diastolic: int
    pulse: int
    note: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping stored in the key/value blob."""
        return asdict(self)

    @classmethod
    def from_dict(cls, item: dict[str, Any]) -> Reading:
        """Build a reading from a stored mapping.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a numeric field cannot be converted.
            TypeError: If a field has an unusable type.
        """
        note = item.get("note")
        return cls(
            id=str(item["id"]),
            timestamp=int(item["timestamp"]),
            date=str(item["date"]),
            time=str(item["time"]),
            period=str(item.get("period") or "other"),
            systolic=int(item["systolic"]),
            diastolic=int(item["diastolic"]),
            pulse=int(item["pulse"]),
            note=str(note) if note is not None else "",
        )


@dataclass(frozen=True)
class Status:
    """Severity category with its display label."""

    category: str
    label: str


def reading_timestamp(day: str, hour: str, zone: tzinfo | None = None) -> int:
    """Milliseconds since epoch for a local ``YYYY-MM-DD`` + ``HH:MM`` pair.

    Raises:
        ValueError: If either string does not match its format.
    """
    naive = datetime.strptime(f"{day} {hour}", f"{DATE_FORMAT} {TIME_FORMAT}")
    aware = naive.replace(tzinfo=zone or _LOCAL_TZ)
    return int(aware.timestamp() * 1000)


def period_for_hour(hour: int) -> str:
    """Map an hour of the day to its coarse period tag."""
    if 5 <= hour < 11:
        return "morning"
    if 11 <= hour < 14:
        return "noon"
    if 18 <= hour < 23:
        return "evening"
    return "other"


def local_now() -> datetime:
    """Current wall-clock time in the local timezone."""
    return datetime.now(tz=_LOCAL_TZ)


def period_label(period: str) -> str:
    """Display label for a period tag; unknown tags read as "other"."""
    return PERIOD_LABELS.get(period, PERIOD_LABELS["other"])
