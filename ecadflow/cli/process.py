"""Processing commands: process, validate and inspect."""

from __future__ import annotations

import threading
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from ecadflow.core.config import EcadConfig
from ecadflow.core.data.ingestion import inspect_source, open_source
from ecadflow.core.data.storage import NullSink, ParquetSink
from ecadflow.core.exceptions import (
    CatalogError,
    EcadError,
    FileUnavailableError,
    PipelineConfigError,
    SinkError,
)
from ecadflow.core.services import run_pipeline

from .constants import CONFIG_EXIT_CODE, DATA_EXIT_CODE, OUTPUT_EXIT_CODE, SYSTEM_EXIT_CODE
from .utils import cancel_on_interrupt, emit_error, get_config, prepare_output

if TYPE_CHECKING:
    from ecadflow.core.data.ingestion import MetricSource
    from ecadflow.core.data.storage import RecordSink
    from ecadflow.core.services import RunSummary

SUMMARY_COLUMNS = ["metric", "value"]
MANIFEST_COLUMNS = ["metric", "prefix", "description", "files"]


def register(app: typer.Typer) -> None:
    """Register processing commands on the root application."""

    app.command("process", help="Consolidate, validate and write a Parquet dataset.")(process_command)
    app.command("validate", help="Consolidate and validate without writing output.")(validate_command)
    app.command("inspect", help="List the metrics and stations an input contains.")(inspect_command)


def get_source(path: Path, file_pattern: str | None) -> MetricSource:
    """Factory hook for opening the input."""

    return open_source(path, file_pattern=file_pattern)


def default_output_path(config: EcadConfig, today: date | None = None) -> Path:
    stamp = (today or date.today()).strftime("%y%m%d")
    return Path(config.output.directory) / f"ecad-weather-{stamp}.parquet"


def _apply_overrides(
    config: EcadConfig,
    *,
    max_workers: int | None,
    batch_size: int | None,
    malformed_policy: str | None,
    duplicate_policy: str | None,
    bounds: str | None,
    compression: str | None,
) -> EcadConfig:
    updates = {
        "pipeline": {
            key: value
            for key, value in (
                ("max_workers", max_workers),
                ("batch_size", batch_size),
                ("malformed_policy", malformed_policy),
                ("duplicate_policy", duplicate_policy),
            )
            if value is not None
        },
        "quality": {"bounds": bounds} if bounds is not None else {},
        "output": {"compression": compression} if compression is not None else {},
    }
    merged = config.to_dict()
    for section, values in updates.items():
        merged[section].update(values)
    resolved = EcadConfig.from_dict(merged)
    resolved.validate()
    return resolved


def _run(
    source: MetricSource,
    config: EcadConfig,
    sink: RecordSink,
    station_ids: list[int] | None,
    *,
    show_progress: bool,
) -> RunSummary:
    discovered = source.station_metrics()
    total = len(discovered) if not station_ids else len(set(station_ids) & set(discovered))
    cancel_event = threading.Event()
    progress = Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        disable=not show_progress,
        transient=True,
    )
    with cancel_on_interrupt(cancel_event), progress:
        task = progress.add_task("stations", total=total)
        return run_pipeline(
            source,
            config=config,
            sink=sink,
            station_ids=station_ids,
            cancel_event=cancel_event,
            progress=lambda _result: progress.advance(task),
        )


def _exit_code_for(error: EcadError) -> int:
    if isinstance(error, PipelineConfigError):
        return CONFIG_EXIT_CODE
    if isinstance(error, (CatalogError, FileUnavailableError)):
        return DATA_EXIT_CODE
    if isinstance(error, SinkError):
        return OUTPUT_EXIT_CODE
    return SYSTEM_EXIT_CODE


def _summary_rows(summary: RunSummary, output_file: Path | None) -> list[dict[str, object]]:
    rows = summary.to_rows()
    if output_file is not None:
        rows.append({"metric": "output_file", "value": str(output_file)})
    for error in summary.station_errors:
        rows.append({"metric": f"station_error.{error.station_id}", "value": f"{error.code}: {error.message}"})
    for file_error in summary.file_errors:
        rows.append(
            {
                "metric": f"file_error.{file_error.station_id}.{file_error.metric}",
                "value": f"{file_error.code}: {file_error.message}",
            }
        )
    return rows


def _execute(
    ctx: typer.Context,
    input_path: Path,
    *,
    output_file: Path | None,
    write_output: bool,
    station_ids: list[int] | None,
    file_pattern: str | None,
    show_progress: bool,
    overrides: dict[str, object],
) -> None:
    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        config = _apply_overrides(get_config(ctx), **overrides)
    except PipelineConfigError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=CONFIG_EXIT_CODE) from error

    try:
        source = get_source(input_path, file_pattern)
    except FileUnavailableError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=DATA_EXIT_CODE) from error

    target: Path | None = None
    try:
        if write_output:
            target = output_file or default_output_path(config)
            sink: RecordSink = ParquetSink(
                target,
                compression=config.output.compression,
                row_group_size=config.output.row_group_size,
            )
        else:
            sink = NullSink()
        summary = _run(source, config, sink, station_ids, show_progress=show_progress)
    except EcadError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=_exit_code_for(error)) from error
    finally:
        close = getattr(source, "close", None)
        if close is not None:
            close()

    try:
        formatter.render(_summary_rows(summary, target), stream=stream, columns=SUMMARY_COLUMNS, title="Run summary")
    finally:
        stack.close()


def process_command(
    ctx: typer.Context,
    input_path: Path = typer.Argument(..., help="Zip archive, directory of archives or extracted directory."),
    output_file: Path | None = typer.Option(
        None, "--output-file", help="Parquet file to write (default: <output dir>/ecad-weather-YYMMDD.parquet)."
    ),
    compression: str | None = typer.Option(None, "--compression", help="snappy, gzip, zstd, lz4 or none."),
    station_ids: list[int] | None = typer.Option(None, "--station-id", help="Only process this station (repeatable)."),
    max_workers: int | None = typer.Option(None, "--max-workers", help="Worker threads."),
    batch_size: int | None = typer.Option(None, "--batch-size", help="Records per output batch."),
    malformed_policy: str | None = typer.Option(None, "--malformed-policy", help="skip or abort."),
    duplicate_policy: str | None = typer.Option(
        None, "--duplicate-policy", help="flag_then_recency or flag_then_lowest_source."
    ),
    bounds: str | None = typer.Option(None, "--bounds", help="Geographic bounds preset: global, europe or uk."),
    file_pattern: str | None = typer.Option(None, "--file-pattern", help="Only use archives whose name contains this."),
    validate_only: bool = typer.Option(False, "--validate-only", help="Run everything but do not write output."),
    no_progress: bool = typer.Option(False, "--no-progress", help="Hide the progress bar."),
) -> None:
    """Consolidate an ECA&D input into a Parquet dataset and print the run summary."""

    _execute(
        ctx,
        input_path,
        output_file=output_file,
        write_output=not validate_only,
        station_ids=station_ids or None,
        file_pattern=file_pattern,
        show_progress=not no_progress,
        overrides={
            "max_workers": max_workers,
            "batch_size": batch_size,
            "malformed_policy": malformed_policy,
            "duplicate_policy": duplicate_policy,
            "bounds": bounds,
            "compression": compression,
        },
    )


def validate_command(
    ctx: typer.Context,
    input_path: Path = typer.Argument(..., help="Zip archive, directory of archives or extracted directory."),
    station_ids: list[int] | None = typer.Option(None, "--station-id", help="Only process this station (repeatable)."),
    max_workers: int | None = typer.Option(None, "--max-workers", help="Worker threads."),
    malformed_policy: str | None = typer.Option(None, "--malformed-policy", help="skip or abort."),
    bounds: str | None = typer.Option(None, "--bounds", help="Geographic bounds preset: global, europe or uk."),
    file_pattern: str | None = typer.Option(None, "--file-pattern", help="Only use archives whose name contains this."),
    no_progress: bool = typer.Option(False, "--no-progress", help="Hide the progress bar."),
) -> None:
    """Report data quality for an input without writing a dataset."""

    _execute(
        ctx,
        input_path,
        output_file=None,
        write_output=False,
        station_ids=station_ids or None,
        file_pattern=file_pattern,
        show_progress=not no_progress,
        overrides={
            "max_workers": max_workers,
            "batch_size": None,
            "malformed_policy": malformed_policy,
            "duplicate_policy": None,
            "bounds": bounds,
            "compression": None,
        },
    )


def inspect_command(
    ctx: typer.Context,
    input_path: Path = typer.Argument(..., help="Zip archive, directory of archives or extracted directory."),
    file_pattern: str | None = typer.Option(None, "--file-pattern", help="Only use archives whose name contains this."),
) -> None:
    """Show which metrics and how many station files an input holds."""

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        source = get_source(input_path, file_pattern)
    except FileUnavailableError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=DATA_EXIT_CODE) from error

    try:
        manifest = inspect_source(source)
        formatter.render(
            manifest.to_rows(),
            stream=stream,
            columns=MANIFEST_COLUMNS,
            title=f"{manifest.name}: {manifest.station_count} stations",
        )
    finally:
        close = getattr(source, "close", None)
        if close is not None:
            close()
        stack.close()


__all__ = ["default_output_path", "get_source", "register"]
