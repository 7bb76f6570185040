"""Physical validation and cross-metric consistency checks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from ecadflow.core.exceptions import GeographicBoundsViolation
from ecadflow.core.models import GLOBAL_BOUNDS, Metric, QualityVerdict
from ecadflow.core.services.quality.thresholds import DEFAULT_BANDS

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import date

    from ecadflow.core.models import ConsolidatedRecord, GeoBounds, MetricFamily, StationInfo
    from ecadflow.core.services.quality.thresholds import PlausibilityBand

MIN_ABOVE_AVG = "MIN_ABOVE_AVG"
AVG_ABOVE_MAX = "AVG_ABOVE_MAX"
MIN_ABOVE_MAX = "MIN_ABOVE_MAX"
TEMPERATURE_JUMP = "TEMPERATURE_JUMP"
CONSISTENCY_CODES = frozenset({MIN_ABOVE_AVG, AVG_ABOVE_MAX, MIN_ABOVE_MAX})


@dataclass(slots=True, frozen=True)
class ValidationInconsistency:
    """Informational finding; never blocks emission of the record."""

    station_id: int
    date: date
    field: str
    code: str
    message: str

    @property
    def is_consistency(self) -> bool:
        return self.code in CONSISTENCY_CODES


@dataclass(slots=True, frozen=True)
class ValidationOutcome:
    records: tuple[ConsolidatedRecord, ...]
    issues: tuple[ValidationInconsistency, ...]


class QualityValidator:
    """Assigns verdicts to every metric value and reports inconsistencies."""

    def __init__(
        self,
        bands: Mapping[MetricFamily, PlausibilityBand] | None = None,
        *,
        consistency_tolerance: float = 0.1,
        jump_threshold: float | None = 20.0,
        bounds: GeoBounds = GLOBAL_BOUNDS,
    ) -> None:
        self.bands = dict(bands or DEFAULT_BANDS)
        self.consistency_tolerance = consistency_tolerance
        self.jump_threshold = jump_threshold
        self.bounds = bounds

    def check_station(self, station: StationInfo) -> None:
        """Reject stations outside the configured region."""

        if not self.bounds.contains_station(station):
            raise GeographicBoundsViolation(station.station_id, station.latitude, station.longitude, self.bounds.name)

    def classify(self, metric: Metric, value: float) -> QualityVerdict:
        return self.bands[metric.family].classify(value)

    def validate(self, record: ConsolidatedRecord) -> tuple[ConsolidatedRecord, list[ValidationInconsistency]]:
        """Attach verdicts to ``record`` and run the temperature ordering checks.

        Each relation is checked when both of its operands are present:
        min against avg, avg against max, and min against max only when avg
        is absent (otherwise it is implied by the other two).
        """

        verdicts = {}
        for metric in record.present_metrics():
            value = record.get(metric)
            verdicts[metric] = self.classify(metric, value.value)
        validated = record.with_verdicts(verdicts)
        return validated, self._consistency_issues(validated)

    def validate_station(self, records: Sequence[ConsolidatedRecord]) -> ValidationOutcome:
        """Validate a station's records (ascending dates) including day-to-day jumps."""

        validated: list[ConsolidatedRecord] = []
        issues: list[ValidationInconsistency] = []
        previous: ConsolidatedRecord | None = None
        for record in records:
            checked, record_issues = self.validate(record)
            validated.append(checked)
            issues.extend(record_issues)
            if previous is not None:
                issues.extend(self._jump_issues(previous, checked))
            previous = checked
        return ValidationOutcome(records=tuple(validated), issues=tuple(issues))

    def _consistency_issues(self, record: ConsolidatedRecord) -> list[ValidationInconsistency]:
        tolerance = self.consistency_tolerance
        low = record.temp_min.value if record.temp_min is not None else None
        mean = record.temp_avg.value if record.temp_avg is not None else None
        high = record.temp_max.value if record.temp_max is not None else None

        issues: list[ValidationInconsistency] = []
        if low is not None and mean is not None and low > mean + tolerance:
            issues.append(
                self._issue(record, "temp_min", MIN_ABOVE_AVG, f"minimum {low} exceeds mean {mean}")
            )
        if mean is not None and high is not None and mean > high + tolerance:
            issues.append(
                self._issue(record, "temp_avg", AVG_ABOVE_MAX, f"mean {mean} exceeds maximum {high}")
            )
        if mean is None and low is not None and high is not None and low > high + tolerance:
            issues.append(
                self._issue(record, "temp_min", MIN_ABOVE_MAX, f"minimum {low} exceeds maximum {high}")
            )
        return issues

    def _jump_issues(self, previous: ConsolidatedRecord, current: ConsolidatedRecord) -> list[ValidationInconsistency]:
        if self.jump_threshold is None or current.date - previous.date != timedelta(days=1):
            return []
        issues: list[ValidationInconsistency] = []
        for metric in Metric.temperatures():
            before = previous.get(metric)
            after = current.get(metric)
            if before is None or after is None:
                continue
            change = abs(after.value - before.value)
            if change > self.jump_threshold:
                issues.append(
                    self._issue(
                        current,
                        metric.value,
                        TEMPERATURE_JUMP,
                        f"{metric.value} changed by {change:.1f} since {previous.date.isoformat()}",
                    )
                )
        return issues

    @staticmethod
    def _issue(record: ConsolidatedRecord, field: str, code: str, message: str) -> ValidationInconsistency:
        return ValidationInconsistency(
            station_id=record.station_id,
            date=record.date,
            field=field,
            code=code,
            message=message,
        )


__all__ = [
    "AVG_ABOVE_MAX",
    "CONSISTENCY_CODES",
    "MIN_ABOVE_AVG",
    "MIN_ABOVE_MAX",
    "TEMPERATURE_JUMP",
    "QualityValidator",
    "ValidationInconsistency",
    "ValidationOutcome",
]
