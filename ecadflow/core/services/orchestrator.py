"""Parallel, order-preserving execution of the per-station pipeline."""

from __future__ import annotations

import contextvars
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import closing
from typing import TYPE_CHECKING

from ecadflow.core.data.ingestion import MalformedPolicy, MetricRecordReader, data_file_name
from ecadflow.core.exceptions import (
    ErrorCode,
    FileUnavailableError,
    GeographicBoundsViolation,
    MalformedRecordError,
    UnknownStationError,
)
from ecadflow.core.logging import logger
from ecadflow.core.models import Metric
from ecadflow.core.services.consolidation import ConsolidationEngine
from ecadflow.core.services.quality import QualityValidator
from ecadflow.core.services.summary import FileError, RunSummary, StationError, StationResult

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping

    from ecadflow.core.data.ingestion import MetricSource
    from ecadflow.core.data.storage import RecordSink
    from ecadflow.core.models import ConsolidatedRecord, StationInfo


class ParallelOrchestrator:
    """Fan stations out to a thread pool and stream records back in key order.

    Stations are grouped into work units in ascending id order. Units are
    submitted in that order with a bounded look-ahead and their results are
    consumed in submission order, so output order depends only on station
    identity. Each worker owns the working set of the station it processes.
    """

    def __init__(
        self,
        source: MetricSource,
        catalog: Mapping[int, StationInfo],
        *,
        engine: ConsolidationEngine | None = None,
        validator: QualityValidator | None = None,
        max_workers: int = 4,
        stations_per_unit: int = 1,
        max_in_flight_units: int | None = None,
        batch_size: int = 1000,
        malformed_policy: MalformedPolicy | str = MalformedPolicy.SKIP,
        encoding: str = "utf-8",
        cancel_event: threading.Event | None = None,
        progress: Callable[[StationResult], None] | None = None,
    ) -> None:
        if max_workers <= 0 or stations_per_unit <= 0 or batch_size <= 0:
            raise ValueError("max_workers, stations_per_unit and batch_size must be positive")
        self.source = source
        self.catalog = catalog
        self.engine = engine or ConsolidationEngine()
        self.validator = validator or QualityValidator()
        self.max_workers = max_workers
        self.stations_per_unit = stations_per_unit
        self.max_in_flight_units = max_in_flight_units or max_workers * 2
        self.batch_size = batch_size
        self.malformed_policy = MalformedPolicy(malformed_policy)
        self.encoding = encoding
        self.cancel_event = cancel_event or threading.Event()
        self.progress = progress

    def plan(self, station_ids: Iterable[int] | None = None) -> list[list[int]]:
        """Partition the stations to process into ordered work units."""

        discovered = self.source.station_metrics()
        if station_ids is None:
            selected = sorted(discovered)
        else:
            selected = sorted(set(station_ids) & set(discovered))
        size = self.stations_per_unit
        return [selected[index : index + size] for index in range(0, len(selected), size)]

    def process_station(self, station_id: int) -> StationResult:
        """Read, merge and validate one station. Runs on a worker thread."""

        result = StationResult(station_id=station_id)
        log = logger.bind(station_id=station_id)

        station = self.catalog.get(station_id)
        if station is None:
            error = UnknownStationError(station_id)
            log.bind(error_code=error.error_code).warning("Station missing from catalog; excluded")
            result.error = StationError.from_error(station_id, error)
            return result
        try:
            self.validator.check_station(station)
        except GeographicBoundsViolation as error:
            log.bind(error_code=error.error_code).warning("Station outside bounds; excluded", reason=error.message)
            result.error = StationError.from_error(station_id, error)
            return result

        merge = self.engine.start_station(station)
        available = self.source.station_metrics().get(station_id, frozenset())
        metrics = [metric for metric in Metric if metric in available]
        readable = 0
        for metric in metrics:
            name = data_file_name(metric, station_id)
            reader = MetricRecordReader(
                metric,
                station_id=station_id,
                policy=self.malformed_policy,
                encoding=self.encoding,
                source_name=name,
            )
            try:
                with self.source.open_metric_stream(station_id, metric) as stream:
                    merge.add_stream(metric, reader.read(stream))
            except (FileUnavailableError, MalformedRecordError) as error:
                log.bind(error_code=error.error_code).warning(
                    "Metric file discarded", file=name, reason=error.message
                )
                result.file_errors.append(FileError(station_id, metric.value, error.error_code, error.message))
            else:
                readable += 1
            result.skipped_lines += reader.stats.skipped

        result.merge_stats = merge.stats
        if metrics and not readable:
            result.error = StationError(
                station_id, ErrorCode.NO_READABLE_FILES.value, "none of the station's metric files could be read"
            )
            return result

        outcome = self.validator.validate_station(merge.finalize())
        result.records = list(outcome.records)
        result.issues = list(outcome.issues)
        log.debug("Station consolidated", records=len(result.records), issues=len(result.issues))
        return result

    def _run_unit(self, unit: list[int]) -> list[StationResult]:
        results: list[StationResult] = []
        for station_id in unit:
            if self.cancel_event.is_set():
                results.append(StationResult(station_id=station_id, cancelled=True))
                continue
            try:
                results.append(self.process_station(station_id))
            except Exception as exc:
                logger.bind(station_id=station_id, error_code=ErrorCode.WORKER_FAILURE.value).exception(
                    "Worker failed while processing station"
                )
                results.append(
                    StationResult(
                        station_id=station_id,
                        error=StationError(station_id, ErrorCode.WORKER_FAILURE.value, str(exc)),
                    )
                )
        return results

    def iter_station_results(self, station_ids: Iterable[int] | None = None) -> Iterator[StationResult]:
        """Yield per-station results in ascending station order."""

        units = iter(self.plan(station_ids))
        pending: deque[Future[list[StationResult]]] = deque()
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="ecadflow-worker")

        def submit_next() -> bool:
            if self.cancel_event.is_set():
                return False
            unit = next(units, None)
            if unit is None:
                return False
            pending.append(executor.submit(contextvars.copy_context().run, self._run_unit, unit))
            return True

        try:
            for _ in range(self.max_in_flight_units):
                if not submit_next():
                    break
            while pending:
                results = pending.popleft().result()
                submit_next()
                for result in results:
                    if self.progress is not None:
                        self.progress(result)
                    yield result
        finally:
            for future in pending:
                future.cancel()
            executor.shutdown(wait=True)

        for unit in units:
            for station_id in unit:
                yield StationResult(station_id=station_id, cancelled=True)

    def iter_batches(
        self,
        summary: RunSummary | None = None,
        station_ids: Iterable[int] | None = None,
    ) -> Iterator[list[ConsolidatedRecord]]:
        """Yield record batches of at most ``batch_size``.

        Asking for the next batch acknowledges the previous one; nothing
        further is produced until then.
        """

        summary = summary if summary is not None else RunSummary()
        batch: list[ConsolidatedRecord] = []
        for result in self.iter_station_results(station_ids):
            summary.record_station(result)
            for record in result.records:
                batch.append(record)
                if len(batch) >= self.batch_size:
                    yield batch
                    summary.record_batch(batch)
                    batch = []
        if batch:
            yield batch
            summary.record_batch(batch)

    def run(self, sink: RecordSink, station_ids: Iterable[int] | None = None) -> RunSummary:
        """Drive the whole run into ``sink`` and return the summary."""

        summary = RunSummary()
        started = time.perf_counter()
        try:
            with closing(self.iter_batches(summary, station_ids)) as batches:
                for batch in batches:
                    sink.write_batch(batch)
        except BaseException:
            sink.discard()
            raise
        sink.close()

        summary.duration_ms = (time.perf_counter() - started) * 1000.0
        logger.info(
            "Run finished",
            records=summary.total_records,
            stations=summary.stations_processed,
            station_errors=len(summary.station_errors),
            skipped=summary.total_skipped,
            incomplete=summary.incomplete,
        )
        return summary


__all__ = ["ParallelOrchestrator"]
