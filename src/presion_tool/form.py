"""Controlador del formulario de alta/edición de lecturas."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from presion_tool.model import (
    DATE_FORMAT,
    PERIODS,
    TIME_FORMAT,
    Reading,
    local_now,
    period_for_hour,
    reading_timestamp,
)
from presion_tool.storage import RecordStore

logger = logging.getLogger(__name__)

CREATE = "create"
EDIT = "edit"


class SaveError(RuntimeError):
    """The store could not write the collection."""


class ValidationError(ValueError):
    """Form input rejected before reaching the store."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(detail)


@dataclass(frozen=True)
class FormValues:
    """Raw text of every form field."""

    date: str
    time: str
    period: str
    systolic: str = ""
    diastolic: str = ""
    pulse: str = ""
    note: str = ""


class FormController:
    """Create/edit state machine on top of a RecordStore."""

    def __init__(
        self,
        store: RecordStore,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._mode = CREATE
        self._editing_id: str | None = None

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def editing_id(self) -> str | None:
        return self._editing_id

    def open_create(self) -> FormValues:
        """Blank form with date, time and period taken from the clock."""
        now = self._clock()
        self._mode = CREATE
        self._editing_id = None
        return FormValues(
            date=now.strftime(DATE_FORMAT),
            time=now.strftime(TIME_FORMAT),
            period=period_for_hour(now.hour),
        )

    def open_edit(self, reading_id: str) -> FormValues | None:
        """Form filled from an existing reading; None if it is gone."""
        reading = self._store.find_by_id(reading_id)
        if reading is None:
            return None
        self._mode = EDIT
        self._editing_id = reading.id
        return FormValues(
            date=reading.date,
            time=reading.time,
            period=reading.period,
            systolic=str(reading.systolic),
            diastolic=str(reading.diastolic),
            pulse=str(reading.pulse),
            note=reading.note,
        )

    def submit(self, values: FormValues) -> Reading:
        """Validate, then add or replace the reading and save.

        Raises:
            ValidationError: If any field is malformed. The store is untouched.
            SaveError: If the store could not be written.
        """
        parsed = validate(values)
        if self._mode == EDIT and self._editing_id is not None:
            reading_id = self._editing_id
        else:
            now_ms = int(self._clock().timestamp() * 1000)
            reading_id = self._store.new_id(now_ms)

        reading = Reading(id=reading_id, **parsed)
        if self._mode == EDIT:
            replaced = self._store.replace(reading_id, reading)
            logger.debug("Edit %s (found=%s)", reading_id, replaced)
        else:
            self._store.add(reading)
            logger.debug("Created %s", reading_id)
        if not self._store.save():
            raise SaveError(f"could not save reading {reading_id}")
        return reading

    def delete(self, reading_id: str, confirm: Callable[[], bool]) -> bool:
        """Remove a reading after ``confirm()`` agrees.

        Returns:
            True when a reading was removed.
        """
        if not confirm():
            return False
        removed = self._store.remove(reading_id)
        if not removed:
            return False
        if not self._store.save():
            raise SaveError(f"could not save after deleting {reading_id}")
        logger.debug("Deleted %s", reading_id)
        if self._editing_id == reading_id:
            self._mode = CREATE
            self._editing_id = None
        return True


def validate(values: FormValues) -> dict[str, object]:
    """Parse form text into Reading fields (everything except ``id``).

    Raises:
        ValidationError: With one message per bad field.
    """
    errors: dict[str, str] = {}
    numbers: dict[str, int] = {}
    for field in ("systolic", "diastolic", "pulse"):
        number = _parse_positive_int(getattr(values, field))
        if number is None:
            errors[field] = "debe ser un entero positivo"
        else:
            numbers[field] = number

    day = _normalize(values.date, DATE_FORMAT)
    if day is None:
        errors["date"] = "formato esperado AAAA-MM-DD"
    hour = _normalize(values.time, TIME_FORMAT)
    if hour is None:
        errors["time"] = "formato esperado HH:MM"
    period = values.period.strip()
    if period not in PERIODS:
        errors["period"] = f"debe ser uno de: {', '.join(PERIODS)}"

    if errors:
        raise ValidationError(errors)
    return {
        "timestamp": reading_timestamp(day, hour),
        "date": day,
        "time": hour,
        "period": period,
        "note": values.note.strip(),
        **numbers,
    }


def _parse_positive_int(text: str) -> int | None:
    try:
        number = int(str(text).strip())
    except ValueError:
        return None
    return number if number > 0 else None


def _normalize(text: str, fmt: str) -> str | None:
    """Re-render a date or time string in its canonical zero-padded form."""
    try:
        return datetime.strptime(str(text).strip(), fmt).strftime(fmt)
    except ValueError:
        return None
