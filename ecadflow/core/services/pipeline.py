"""High level entry point wiring source, catalog, engine, validator and sink."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

from ecadflow.core.config import EcadConfig
from ecadflow.core.data.storage import NullSink
from ecadflow.core.exceptions import EcadError, PipelineConfigError
from ecadflow.core.logging import log_context, logger
from ecadflow.core.models import GeoBounds
from ecadflow.core.services.consolidation import ConsolidationEngine, get_policy
from ecadflow.core.services.orchestrator import ParallelOrchestrator
from ecadflow.core.services.quality import DEFAULT_BANDS, QualityValidator, merge_band_overrides

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Iterable

    from ecadflow.core.config import QualityConfig
    from ecadflow.core.data.ingestion import MetricSource
    from ecadflow.core.data.storage import RecordSink
    from ecadflow.core.services.summary import RunSummary, StationResult


def build_validator(config: QualityConfig) -> QualityValidator:
    """Create a validator from the ``[quality]`` configuration section."""

    try:
        bands = merge_band_overrides(DEFAULT_BANDS, config.bands)
        bounds = GeoBounds.from_name(config.bounds)
    except ValueError as exc:
        raise PipelineConfigError(str(exc)) from exc
    return QualityValidator(
        bands,
        consistency_tolerance=config.consistency_tolerance,
        jump_threshold=config.jump_threshold,
        bounds=bounds,
    )


def run_pipeline(
    source: MetricSource,
    *,
    config: EcadConfig | None = None,
    sink: RecordSink | None = None,
    station_ids: Iterable[int] | None = None,
    cancel_event: threading.Event | None = None,
    progress: Callable[[StationResult], None] | None = None,
) -> RunSummary:
    """Process every station of ``source`` into ``sink`` and return the run summary.

    Raises:
        CatalogError: The station catalog could not be loaded; nothing is written.
        PipelineConfigError: The configuration is invalid.
        SinkError: The sink failed; the partial output is discarded.
    """

    config = config or EcadConfig()
    sink = sink if sink is not None else NullSink()

    with log_context(run_id=uuid4().hex):
        try:
            config.validate()
            validator = build_validator(config.quality)
            engine = ConsolidationEngine(get_policy(config.pipeline.duplicate_policy))
            catalog = source.load_catalog()
        except EcadError:
            sink.discard()
            raise
        orchestrator = ParallelOrchestrator(
            source,
            catalog,
            engine=engine,
            validator=validator,
            max_workers=config.pipeline.max_workers,
            stations_per_unit=config.pipeline.stations_per_unit,
            max_in_flight_units=config.pipeline.in_flight_limit(),
            batch_size=config.pipeline.batch_size,
            malformed_policy=config.pipeline.malformed_policy,
            encoding=config.pipeline.encoding,
            cancel_event=cancel_event,
            progress=progress,
        )
        logger.info(
            "Starting run",
            source=source.name,
            catalog_stations=len(catalog),
            workers=config.pipeline.max_workers,
            batch_size=config.pipeline.batch_size,
        )
        return orchestrator.run(sink, station_ids)


__all__ = ["build_validator", "run_pipeline"]
