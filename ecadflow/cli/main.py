"""Main entry point for the ecadflow command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from ecadflow.core.config import ConfigManager
from ecadflow.core.exceptions import PipelineConfigError
from ecadflow.core.logging import configure_logging

from .constants import CONFIG_EXIT_CODE
from .formatters import create_formatter
from .info import register as register_info_commands
from .process import register as register_process_commands
from .utils import emit_error


def create_app() -> typer.Typer:
    """Create a Typer application instance for ecadflow."""

    app = typer.Typer(add_completion=False, help="Consolidate ECA&D station files into validated Parquet datasets")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write the command report to a file instead of stdout.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Logging level (defaults to the configured level).",
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            help="TOML configuration file (defaults to ~/.ecadflow/config.toml).",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            # Validate formatter eagerly for immediate feedback on invalid options
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        try:
            config = ConfigManager(config_path).get_config()
        except PipelineConfigError as error:
            emit_error(error.message, error.error_code, details=error.details)
            raise typer.Exit(code=CONFIG_EXIT_CODE) from error

        level = (log_level or config.logging.level).upper()
        try:
            configure_logging(
                level,
                file_output=config.logging.file is not None,
                file_path=config.logging.file,
            )
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--log-level") from exc

        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "log_level": level,
                "no_color": no_color,
                "config": config,
            }
        )

    register_process_commands(app)
    register_info_commands(app)
    return app


app = create_app()
