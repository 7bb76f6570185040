"""Consolidated per-station, per-day weather record."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from ecadflow.core.models.enums import DataQuality, EcadFlag, Metric, MetricFamily, QualityVerdict

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date


@dataclass(slots=True, frozen=True)
class MetricValue:
    """A metric value with its upstream flag and physical verdict kept apart."""

    value: float
    ecad_flag: EcadFlag
    verdict: QualityVerdict | None = None
    source_id: int | None = None

    @property
    def quality(self) -> DataQuality:
        return DataQuality.assess(self.ecad_flag, self.verdict)


@dataclass(slots=True, frozen=True)
class ConsolidatedRecord:
    """All metrics observed for one station on one calendar day.

    Metric fields are sparse: a metric never observed (or resolved to the
    missing flag) for the day is ``None``. At least one metric is present.
    """

    station_id: int
    date: date
    station_name: str
    latitude: float
    longitude: float
    temp_min: MetricValue | None = None
    temp_max: MetricValue | None = None
    temp_avg: MetricValue | None = None
    precipitation: MetricValue | None = None
    wind_speed: MetricValue | None = None

    def __post_init__(self) -> None:
        if not self.present_metrics():
            raise ValueError(f"record for station {self.station_id} on {self.date} carries no metric")

    @property
    def key(self) -> tuple[int, date]:
        return (self.station_id, self.date)

    def get(self, metric: Metric) -> MetricValue | None:
        return getattr(self, metric.value)

    def present_metrics(self) -> tuple[Metric, ...]:
        return tuple(metric for metric in Metric if getattr(self, metric.value) is not None)

    def has_temperature_data(self) -> bool:
        return any(self.get(metric) is not None for metric in Metric.temperatures())

    def has_complete_temperature(self) -> bool:
        return all(self.get(metric) is not None for metric in Metric.temperatures())

    def temperature_range(self) -> float | None:
        if self.temp_min is None or self.temp_max is None:
            return None
        return self.temp_max.value - self.temp_min.value

    def metric_coverage_score(self) -> float:
        """Share of metric families (temperature, precipitation, wind) present."""

        families = {metric.family for metric in self.present_metrics()}
        return len(families) / len(MetricFamily)

    @property
    def temp_quality(self) -> str | None:
        """Upstream flags in min, avg, max order, ``9`` for an absent component."""

        if not self.has_temperature_data():
            return None
        return "".join(
            value.ecad_flag.char if (value := self.get(metric)) is not None else EcadFlag.MISSING.char
            for metric in Metric.temperatures()
        )

    @property
    def precip_quality(self) -> str | None:
        return self.precipitation.ecad_flag.char if self.precipitation is not None else None

    @property
    def wind_quality(self) -> str | None:
        return self.wind_speed.ecad_flag.char if self.wind_speed is not None else None

    def with_verdicts(self, verdicts: Mapping[Metric, QualityVerdict]) -> ConsolidatedRecord:
        """Return a copy whose metric values carry the provided verdicts."""

        changes: dict[str, MetricValue] = {}
        for metric, verdict in verdicts.items():
            current = self.get(metric)
            if current is not None:
                changes[metric.value] = replace(current, verdict=verdict)
        return replace(self, **changes)

    def to_row(self) -> dict[str, Any]:
        """Flatten into the columnar output layout."""

        row: dict[str, Any] = {
            "station_id": self.station_id,
            "station_name": self.station_name,
            "date": self.date,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }
        for metric in Metric:
            value = self.get(metric)
            row[metric.value] = value.value if value is not None else None
            row[f"{metric.value}_flag"] = value.ecad_flag.value if value is not None else None
            row[f"{metric.value}_verdict"] = (
                value.verdict.value if value is not None and value.verdict is not None else None
            )
        row["temp_quality"] = self.temp_quality
        row["precip_quality"] = self.precip_quality
        row["wind_quality"] = self.wind_quality
        return row


__all__ = ["ConsolidatedRecord", "MetricValue"]
