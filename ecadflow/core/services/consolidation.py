"""Merge per-metric observation streams into per-day station records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from ecadflow.core.logging import logger
from ecadflow.core.models import ConsolidatedRecord, EcadFlag, Metric, MetricValue

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import date

    from ecadflow.core.models import RawObservation, StationInfo


@dataclass(slots=True, frozen=True)
class MetricReading:
    """A converted observation competing for a ``(date, metric)`` slot."""

    value: float
    quality_flag: EcadFlag
    source_id: int


class DuplicateResolutionPolicy(Protocol):
    """Decides which of two readings for the same day and metric is kept."""

    name: str

    def prefer(self, current: MetricReading, candidate: MetricReading) -> bool:
        """Return ``True`` when ``candidate`` (seen later) should replace ``current``."""


@dataclass(frozen=True)
class FlagThenRecencyPolicy:
    """Valid beats suspect beats missing; on a tie the later reading wins."""

    name: str = "flag_then_recency"

    def prefer(self, current: MetricReading, candidate: MetricReading) -> bool:
        return candidate.quality_flag.rank <= current.quality_flag.rank


@dataclass(frozen=True)
class FlagThenLowestSourcePolicy:
    """Valid beats suspect beats missing; on a tie the lowest source id wins."""

    name: str = "flag_then_lowest_source"

    def prefer(self, current: MetricReading, candidate: MetricReading) -> bool:
        if candidate.quality_flag.rank != current.quality_flag.rank:
            return candidate.quality_flag.rank < current.quality_flag.rank
        return candidate.source_id < current.source_id


_POLICIES: dict[str, type[DuplicateResolutionPolicy]] = {
    FlagThenRecencyPolicy.name: FlagThenRecencyPolicy,
    FlagThenLowestSourcePolicy.name: FlagThenLowestSourcePolicy,
}


def get_policy(name: str) -> DuplicateResolutionPolicy:
    """Resolve a duplicate policy by its configuration name."""

    try:
        return _POLICIES[name]()
    except KeyError as exc:
        allowed = ", ".join(sorted(_POLICIES))
        raise ValueError(f"unknown duplicate policy '{name}'. Available policies: {allowed}") from exc


@dataclass(slots=True)
class MergeStats:
    observations: int = 0
    duplicates_resolved: int = 0
    missing_days_dropped: int = 0


class StationMerge:
    """Working set for one station: ``date -> {metric: reading}``.

    Owned by a single worker. Each metric stream is staged separately and
    committed only once it has been read to the end, so a stream that fails
    part-way leaves the working set untouched.
    """

    def __init__(self, station: StationInfo, policy: DuplicateResolutionPolicy) -> None:
        self.station = station
        self.policy = policy
        self.stats = MergeStats()
        self._pending: dict[date, dict[Metric, MetricReading]] = {}
        self._finalized = False

    def add_stream(self, metric: Metric, observations: Iterable[RawObservation]) -> int:
        """Consume one metric stream; returns the number of observations read."""

        if self._finalized:
            raise RuntimeError(f"station {self.station.station_id} merge already finalized")

        staged: dict[date, MetricReading] = {}
        consumed = 0
        duplicates = 0
        for observation in observations:
            if observation.station_id != self.station.station_id:
                raise ValueError(
                    f"observation for station {observation.station_id} fed into merge for {self.station.station_id}"
                )
            consumed += 1
            candidate = MetricReading(
                value=observation.raw_value / metric.scale,
                quality_flag=observation.quality_flag,
                source_id=observation.source_id,
            )
            current = staged.get(observation.date)
            if current is None:
                staged[observation.date] = candidate
                continue
            duplicates += 1
            if self.policy.prefer(current, candidate):
                staged[observation.date] = candidate

        for day, candidate in staged.items():
            readings = self._pending.setdefault(day, {})
            current = readings.get(metric)
            if current is not None:
                duplicates += 1
                if not self.policy.prefer(current, candidate):
                    continue
            readings[metric] = candidate

        self.stats.observations += consumed
        self.stats.duplicates_resolved += duplicates
        if duplicates:
            logger.debug(
                "Resolved duplicate readings",
                station_id=self.station.station_id,
                metric=metric.value,
                duplicates=duplicates,
                policy=self.policy.name,
            )
        return consumed

    def finalize(self) -> list[ConsolidatedRecord]:
        """Emit records in ascending date order and release the working set."""

        station = self.station
        records: list[ConsolidatedRecord] = []
        for day in sorted(self._pending):
            values = {
                metric.value: MetricValue(
                    value=reading.value,
                    ecad_flag=reading.quality_flag,
                    source_id=reading.source_id,
                )
                for metric, reading in self._pending[day].items()
                if reading.quality_flag is not EcadFlag.MISSING
            }
            if not values:
                self.stats.missing_days_dropped += 1
                continue
            records.append(
                ConsolidatedRecord(
                    station_id=station.station_id,
                    date=day,
                    station_name=station.name,
                    latitude=station.latitude,
                    longitude=station.longitude,
                    **values,
                )
            )
        self._pending.clear()
        self._finalized = True
        return records


class ConsolidationEngine:
    """Factory for per-station merges sharing one duplicate policy."""

    def __init__(self, policy: DuplicateResolutionPolicy | None = None) -> None:
        self.policy = policy or FlagThenRecencyPolicy()

    def start_station(self, station: StationInfo) -> StationMerge:
        return StationMerge(station, self.policy)

    def merge(
        self,
        station: StationInfo,
        streams: Mapping[Metric, Iterable[RawObservation]],
    ) -> list[ConsolidatedRecord]:
        """Merge complete metric streams for one station in a single call."""

        merge = self.start_station(station)
        for metric, observations in streams.items():
            merge.add_stream(metric, observations)
        return merge.finalize()


__all__ = [
    "ConsolidationEngine",
    "DuplicateResolutionPolicy",
    "FlagThenLowestSourcePolicy",
    "FlagThenRecencyPolicy",
    "MergeStats",
    "MetricReading",
    "StationMerge",
    "get_policy",
]
