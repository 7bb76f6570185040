"""Enumerations describing ECA&D metrics and quality states."""

from __future__ import annotations

from enum import Enum, IntEnum


class MetricFamily(str, Enum):
    """Physical quantity groups sharing plausibility bands."""

    TEMPERATURE = "temperature"
    PRECIPITATION = "precipitation"
    WIND_SPEED = "wind_speed"


class Metric(str, Enum):
    """Daily metrics published by ECA&D, valued by their output field name."""

    TEMP_MIN = "temp_min"
    TEMP_MAX = "temp_max"
    TEMP_AVG = "temp_avg"
    PRECIPITATION = "precipitation"
    WIND_SPEED = "wind_speed"

    @property
    def prefix(self) -> str:
        """File name prefix, e.g. ``TX`` in ``TX_STAID000257.txt``."""

        return _PREFIXES[self]

    @property
    def scale(self) -> float:
        """Divisor turning the fixed-point raw value into physical units."""

        return 10.0

    @property
    def family(self) -> MetricFamily:
        return _FAMILIES[self]

    @property
    def units(self) -> str:
        return _UNITS[self.family]

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @classmethod
    def from_prefix(cls, prefix: str) -> Metric | None:
        return _BY_PREFIX.get(prefix.upper())

    @classmethod
    def temperatures(cls) -> tuple[Metric, Metric, Metric]:
        """Temperature metrics in min, avg, max order."""

        return (cls.TEMP_MIN, cls.TEMP_AVG, cls.TEMP_MAX)


_PREFIXES = {
    Metric.TEMP_MIN: "TN",
    Metric.TEMP_MAX: "TX",
    Metric.TEMP_AVG: "TG",
    Metric.PRECIPITATION: "RR",
    Metric.WIND_SPEED: "FG",
}
_BY_PREFIX = {prefix: metric for metric, prefix in _PREFIXES.items()}
_FAMILIES = {
    Metric.TEMP_MIN: MetricFamily.TEMPERATURE,
    Metric.TEMP_MAX: MetricFamily.TEMPERATURE,
    Metric.TEMP_AVG: MetricFamily.TEMPERATURE,
    Metric.PRECIPITATION: MetricFamily.PRECIPITATION,
    Metric.WIND_SPEED: MetricFamily.WIND_SPEED,
}
_UNITS = {
    MetricFamily.TEMPERATURE: "°C",
    MetricFamily.PRECIPITATION: "mm",
    MetricFamily.WIND_SPEED: "m/s",
}
_DISPLAY_NAMES = {
    Metric.TEMP_MIN: "Minimum temperature",
    Metric.TEMP_MAX: "Maximum temperature",
    Metric.TEMP_AVG: "Mean temperature",
    Metric.PRECIPITATION: "Precipitation amount",
    Metric.WIND_SPEED: "Mean wind speed",
}


class EcadFlag(IntEnum):
    """Quality code assigned by the upstream data provider."""

    VALID = 0
    SUSPECT = 1
    MISSING = 9

    @classmethod
    def from_code(cls, code: int) -> EcadFlag:
        try:
            return cls(code)
        except ValueError as exc:
            raise ValueError(f"unknown ECA&D quality code {code}") from exc

    @property
    def rank(self) -> int:
        """Preference order when resolving duplicates, lower is better."""

        return _FLAG_RANK[self]

    @property
    def char(self) -> str:
        return str(self.value)


_FLAG_RANK = {EcadFlag.VALID: 0, EcadFlag.SUSPECT: 1, EcadFlag.MISSING: 2}


class QualityVerdict(str, Enum):
    """Physical plausibility verdict computed by the validator."""

    VALID = "valid"
    SUSPECT = "suspect"
    INVALID = "invalid"


class DataQuality(str, Enum):
    """Combined view of the upstream flag and the physical verdict."""

    VALID = "valid"
    SUSPECT_ORIGINAL = "suspect_original"
    SUSPECT_RANGE = "suspect_range"
    SUSPECT_BOTH = "suspect_both"
    INVALID = "invalid"
    MISSING = "missing"

    @classmethod
    def assess(cls, flag: EcadFlag, verdict: QualityVerdict | None) -> DataQuality:
        if flag is EcadFlag.MISSING:
            return cls.MISSING
        if verdict is QualityVerdict.INVALID:
            return cls.INVALID
        range_suspect = verdict is QualityVerdict.SUSPECT
        if flag is EcadFlag.SUSPECT:
            return cls.SUSPECT_BOTH if range_suspect else cls.SUSPECT_ORIGINAL
        return cls.SUSPECT_RANGE if range_suspect else cls.VALID


__all__ = ["DataQuality", "EcadFlag", "Metric", "MetricFamily", "QualityVerdict"]
