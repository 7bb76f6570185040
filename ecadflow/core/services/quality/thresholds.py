"""Physical plausibility bands for weather metrics."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, SupportsFloat, TypedDict

from ecadflow.core.models import MetricFamily, QualityVerdict

if TYPE_CHECKING:
    from collections.abc import Mapping


class BandOverride(TypedDict, total=False):
    """Typed mapping describing override payloads for a band."""

    suspect_low: SupportsFloat
    valid_low: SupportsFloat
    valid_high: SupportsFloat
    suspect_high: SupportsFloat


_BAND_FIELDS = ("suspect_low", "valid_low", "valid_high", "suspect_high")


@dataclass(frozen=True)
class PlausibilityBand:
    """Nested ranges: ``[valid_low, valid_high]`` inside ``[suspect_low, suspect_high]``.

    Both ranges are inclusive. Values inside the valid range are valid, values
    outside it but inside the suspect range are suspect, anything else
    (including NaN) is invalid.
    """

    suspect_low: float
    valid_low: float
    valid_high: float
    suspect_high: float

    def __post_init__(self) -> None:
        if not self.suspect_low <= self.valid_low <= self.valid_high <= self.suspect_high:
            raise ValueError(
                "band bounds must satisfy suspect_low <= valid_low <= valid_high <= suspect_high, "
                f"got {self.suspect_low}, {self.valid_low}, {self.valid_high}, {self.suspect_high}"
            )

    def classify(self, value: float) -> QualityVerdict:
        if math.isnan(value):
            return QualityVerdict.INVALID
        if self.valid_low <= value <= self.valid_high:
            return QualityVerdict.VALID
        if self.suspect_low <= value <= self.suspect_high:
            return QualityVerdict.SUSPECT
        return QualityVerdict.INVALID


DEFAULT_BANDS: dict[MetricFamily, PlausibilityBand] = {
    MetricFamily.TEMPERATURE: PlausibilityBand(-90.0, -35.0, 45.0, 60.0),
    MetricFamily.PRECIPITATION: PlausibilityBand(0.0, 0.0, 500.0, 2000.0),
    MetricFamily.WIND_SPEED: PlausibilityBand(0.0, 0.0, 50.0, 120.0),
}


def merge_band_overrides(
    defaults: Mapping[MetricFamily, PlausibilityBand],
    overrides: Mapping[str, BandOverride] | None = None,
) -> dict[MetricFamily, PlausibilityBand]:
    """Merge configuration overrides (keyed by family name) into default bands."""

    merged: dict[MetricFamily, PlausibilityBand] = dict(defaults)
    if not overrides:
        return merged

    for family_name, override in overrides.items():
        try:
            family = MetricFamily(family_name)
        except ValueError as exc:
            allowed = ", ".join(family.value for family in MetricFamily)
            raise ValueError(f"unknown metric family '{family_name}'. Available families: {allowed}") from exc

        unknown = set(override) - set(_BAND_FIELDS)
        if unknown:
            raise ValueError(f"override for {family_name} has unknown keys: {', '.join(sorted(unknown))}")

        base = merged.get(family)
        if base is None:
            missing = [name for name in _BAND_FIELDS if override.get(name) is None]
            if missing:
                raise ValueError(f"override for {family_name} must define {', '.join(missing)}")
            merged[family] = PlausibilityBand(**{name: float(override[name]) for name in _BAND_FIELDS})
            continue

        changes = {name: float(value) for name, value in override.items() if value is not None}
        merged[family] = replace(base, **changes)

    return merged


__all__ = ["DEFAULT_BANDS", "BandOverride", "PlausibilityBand", "merge_band_overrides"]
