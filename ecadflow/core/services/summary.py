"""Run-level accounting of records, verdicts and errors."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ecadflow.core.models import Metric, QualityVerdict

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ecadflow.core.exceptions import EcadError
    from ecadflow.core.models import ConsolidatedRecord
    from ecadflow.core.services.consolidation import MergeStats
    from ecadflow.core.services.quality import ValidationInconsistency


@dataclass(slots=True, frozen=True)
class FailureSummary:
    """Aggregated failure counts grouped by error code."""

    code: str
    count: int


@dataclass(slots=True, frozen=True)
class StationError:
    """A station whose contribution to the output is empty."""

    station_id: int
    code: str
    message: str

    @classmethod
    def from_error(cls, station_id: int, error: EcadError) -> StationError:
        return cls(station_id=station_id, code=error.error_code, message=error.message)


@dataclass(slots=True, frozen=True)
class FileError:
    """A single metric file that could not be read; siblings are unaffected."""

    station_id: int
    metric: str
    code: str
    message: str


@dataclass(slots=True)
class StationResult:
    """Everything one worker produced for one station."""

    station_id: int
    records: list[ConsolidatedRecord] = field(default_factory=list)
    issues: list[ValidationInconsistency] = field(default_factory=list)
    skipped_lines: int = 0
    file_errors: list[FileError] = field(default_factory=list)
    error: StationError | None = None
    merge_stats: MergeStats | None = None
    cancelled: bool = False


def _summarise(counter: Counter[str]) -> tuple[FailureSummary, ...]:
    summaries = [FailureSummary(code=code, count=count) for code, count in counter.items()]
    summaries.sort(key=lambda item: (-item.count, item.code))
    return tuple(summaries)


@dataclass
class RunSummary:
    """Counts accumulated while a run streams records to the sink."""

    total_records: int = 0
    stations_processed: int = 0
    metric_coverage: Counter[str] = field(default_factory=Counter)
    verdict_counts: Counter[str] = field(default_factory=Counter)
    verdict_counts_by_metric: dict[str, Counter[str]] = field(default_factory=dict)
    consistency_violations: int = 0
    temperature_jumps: int = 0
    duplicates_resolved: int = 0
    skipped_records: dict[int, int] = field(default_factory=dict)
    station_errors: list[StationError] = field(default_factory=list)
    file_errors: list[FileError] = field(default_factory=list)
    cancelled_stations: list[int] = field(default_factory=list)
    incomplete: bool = False
    duration_ms: float = 0.0

    def record_station(self, result: StationResult) -> None:
        """Fold one station's outcome into the summary (records excluded)."""

        if result.cancelled:
            self.cancelled_stations.append(result.station_id)
            self.incomplete = True
            return
        if result.skipped_lines:
            self.skipped_records[result.station_id] = (
                self.skipped_records.get(result.station_id, 0) + result.skipped_lines
            )
        self.file_errors.extend(result.file_errors)
        if result.merge_stats is not None:
            self.duplicates_resolved += result.merge_stats.duplicates_resolved
        if result.error is not None:
            self.station_errors.append(result.error)
            return
        self.stations_processed += 1
        for issue in result.issues:
            if issue.is_consistency:
                self.consistency_violations += 1
            else:
                self.temperature_jumps += 1

    def record_batch(self, records: Iterable[ConsolidatedRecord]) -> None:
        """Count records acknowledged by the sink."""

        for record in records:
            self.total_records += 1
            for metric in record.present_metrics():
                value = record.get(metric)
                self.metric_coverage[metric.value] += 1
                if value.verdict is not None:
                    self.verdict_counts[value.verdict.value] += 1
                    per_metric = self.verdict_counts_by_metric.setdefault(metric.value, Counter())
                    per_metric[value.verdict.value] += 1

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped_records.values())

    def error_counts(self) -> tuple[FailureSummary, ...]:
        counter: Counter[str] = Counter()
        for error in self.station_errors:
            counter[error.code] += 1
        for file_error in self.file_errors:
            counter[file_error.code] += 1
        if self.total_skipped:
            counter["MALFORMED_RECORD"] += self.total_skipped
        return _summarise(counter)

    def coverage_percent(self, metric: Metric) -> float:
        if not self.total_records:
            return 0.0
        return 100.0 * self.metric_coverage.get(metric.value, 0) / self.total_records

    def to_rows(self) -> list[dict[str, object]]:
        """Flatten into ``metric``/``value`` rows for the CLI formatters."""

        rows: list[dict[str, object]] = [
            {"metric": "total_records", "value": self.total_records},
            {"metric": "stations_processed", "value": self.stations_processed},
            {"metric": "station_errors", "value": len(self.station_errors)},
            {"metric": "file_errors", "value": len(self.file_errors)},
            {"metric": "skipped_records", "value": self.total_skipped},
            {"metric": "duplicates_resolved", "value": self.duplicates_resolved},
            {"metric": "consistency_violations", "value": self.consistency_violations},
            {"metric": "temperature_jumps", "value": self.temperature_jumps},
        ]
        for metric in Metric:
            count = self.metric_coverage.get(metric.value, 0)
            rows.append(
                {
                    "metric": f"coverage.{metric.value}",
                    "value": f"{count} ({self.coverage_percent(metric):.1f}%)",
                }
            )
        for verdict in QualityVerdict:
            rows.append({"metric": f"verdict.{verdict.value}", "value": self.verdict_counts.get(verdict.value, 0)})
        rows.append({"metric": "incomplete", "value": self.incomplete})
        rows.append({"metric": "duration_ms", "value": round(self.duration_ms, 1)})
        return rows

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total_records,
            "stations_processed": self.stations_processed,
            "metric_coverage": dict(self.metric_coverage),
            "verdict_counts": dict(self.verdict_counts),
            "verdict_counts_by_metric": {k: dict(v) for k, v in self.verdict_counts_by_metric.items()},
            "consistency_violations": self.consistency_violations,
            "temperature_jumps": self.temperature_jumps,
            "duplicates_resolved": self.duplicates_resolved,
            "skipped_records": dict(self.skipped_records),
            "station_errors": [
                {"station_id": e.station_id, "code": e.code, "message": e.message} for e in self.station_errors
            ],
            "file_errors": [
                {"station_id": e.station_id, "metric": e.metric, "code": e.code, "message": e.message}
                for e in self.file_errors
            ],
            "cancelled_stations": list(self.cancelled_stations),
            "error_counts": [{"code": s.code, "count": s.count} for s in self.error_counts()],
            "incomplete": self.incomplete,
            "duration_ms": self.duration_ms,
        }


__all__ = ["FailureSummary", "FileError", "RunSummary", "StationError", "StationResult"]
