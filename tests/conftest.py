from __future__ import annotations

import os

from dateutil import tz

from presion_tool.model import Reading, reading_timestamp
from presion_tool.storage import MemoryKeyValueStore, RecordStore

os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")

UTC = tz.UTC


def make_reading(
    reading_id: str,
    day: str,
    hour: str = "08:00",
    systolic: int = 118,
    diastolic: int = 76,
    pulse: int = 70,
    period: str = "morning",
    note: str = "",
) -> Reading:
    return Reading(
        id=reading_id,
        timestamp=reading_timestamp(day, hour, UTC),
        date=day,
        time=hour,
        period=period,
        systolic=systolic,
        diastolic=diastolic,
        pulse=pulse,
        note=note,
    )


def make_store(*readings: Reading) -> RecordStore:
    store = RecordStore(MemoryKeyValueStore())
    for reading in readings:
        store.add(reading)
    return store
