"""Raw observation model produced by the metric record reader."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import date

    from ecadflow.core.models.enums import EcadFlag


@dataclass(slots=True, frozen=True)
class RawObservation:
    """One parsed line of a per-station, per-metric ECA&D file."""

    station_id: int
    source_id: int
    date: date
    raw_value: int
    quality_flag: EcadFlag
    line_number: int = 0


__all__ = ["RawObservation"]
