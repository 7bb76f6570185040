"""Coordinate parsing for ECA&D station metadata."""

from __future__ import annotations


def dms_to_decimal(text: str) -> float:
    """Convert ``[+-]D:M:S`` (seconds optional) to decimal degrees.

    The sign applies to the whole value, so ``-0:07:39`` is west of Greenwich.
    """

    value = text.strip()
    negative = value.startswith("-")
    parts = value.lstrip("+-").split(":")
    if not 2 <= len(parts) <= 3:
        raise ValueError(f"invalid DMS coordinate '{text}'")
    try:
        degrees = float(parts[0])
        minutes = float(parts[1])
        seconds = float(parts[2]) if len(parts) == 3 else 0.0
    except ValueError as exc:
        raise ValueError(f"invalid DMS coordinate '{text}'") from exc
    if degrees < 0:
        raise ValueError(f"invalid DMS coordinate '{text}'")
    if not 0 <= minutes < 60:
        raise ValueError(f"minutes out of range in '{text}'")
    if not 0 <= seconds < 60:
        raise ValueError(f"seconds out of range in '{text}'")

    decimal = degrees + minutes / 60.0 + seconds / 3600.0
    return -decimal if negative else decimal


def parse_coordinate(text: str) -> float:
    """Parse either a DMS or a decimal-degree coordinate."""

    value = text.strip()
    if ":" in value:
        return dms_to_decimal(value)
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"invalid coordinate '{text}'") from exc


__all__ = ["dms_to_decimal", "parse_coordinate"]
