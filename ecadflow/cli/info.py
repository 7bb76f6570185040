"""Dataset inspection command."""

from __future__ import annotations

from pathlib import Path

import typer

from ecadflow.core.data.storage import describe_dataset
from ecadflow.core.exceptions import FileUnavailableError

from .constants import DATA_EXIT_CODE
from .utils import emit_error, prepare_output


def register(app: typer.Typer) -> None:
    """Register the ``info`` command on the root application."""

    app.command("info", help="Describe a Parquet dataset written by 'process'.")(info_command)


def info_command(
    ctx: typer.Context,
    dataset: Path = typer.Argument(..., help="Parquet file to describe."),
    sample: int = typer.Option(10, "--sample", min=0, help="Number of sample rows to show."),
) -> None:
    """Print row counts, coverage, verdicts, extremes and sample rows."""

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        description = describe_dataset(dataset, sample=sample)
    except FileUnavailableError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=DATA_EXIT_CODE) from error

    try:
        formatter.render(description.to_rows(), stream=stream, columns=["metric", "value"], title="Dataset")
        if sample:
            sample_rows = description.sample.astype(object).where(description.sample.notna(), None).to_dict("records")
            formatter.render(sample_rows, stream=stream, title="Sample")
    finally:
        stack.close()


__all__ = ["register"]
