"""Clasificación de lecturas por severidad."""

from __future__ import annotations

from presion_tool.model import Status

ALERT = Status("alert", "Muy alta")
HIGH = Status("high", "Alta")
ELEVATED = Status("elevated", "Normal alta")
NORMAL = Status("normal", "Normal")


def classify(systolic: float, diastolic: float) -> Status:
    """Classify a systolic/diastolic pair; first matching tier wins.

    Args:
        systolic: Systolic pressure in mmHg.
        diastolic: Diastolic pressure in mmHg.

    Returns:
        The matching status. Values are not range-checked.
    """
    if systolic >= 140 or diastolic >= 90:
        return ALERT
    if systolic >= 130 or diastolic >= 80:
        return HIGH
    if systolic >= 120:
        return ELEVATED
    return NORMAL
