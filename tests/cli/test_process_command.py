import json
from datetime import date
from pathlib import Path

import duckdb
import pytest
from typer.testing import CliRunner

from ecadflow.cli import process as process_module
from ecadflow.cli.constants import CONFIG_EXIT_CODE, DATA_EXIT_CODE
from ecadflow.cli.main import create_app
from ecadflow.core.config import EcadConfig
from ecadflow.core.data.ingestion import DirectorySource
from ecadflow.core.models import Metric


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text("[pipeline]\nmax_workers = 2\nbatch_size = 2\n", encoding="utf-8")
    return path


def _invoke(runner: CliRunner, config_file: Path, report: Path, *args: str):
    return runner.invoke(
        create_app(),
        [
            "--config",
            str(config_file),
            "--format",
            "jsonl",
            "--output",
            str(report),
            "--log-level",
            "warning",
            *args,
        ],
    )


def _report(path: Path) -> dict[str, object]:
    rows = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]
    return {row["metric"]: row["value"] for row in rows}


def test_process_writes_parquet_and_summary(runner, config_file, armagh, tmp_path) -> None:
    input_dir = armagh.write_directory(tmp_path / "in")
    target = tmp_path / "out" / "weather.parquet"
    report = tmp_path / "report.jsonl"

    cli_result = _invoke(runner, config_file, report, "process", str(input_dir), "--output-file", str(target), "--no-progress")

    assert cli_result.exit_code == 0, cli_result.output
    summary = _report(report)
    assert summary["total_records"] == 3
    assert summary["stations_processed"] == 1
    assert summary["output_file"] == str(target)
    rows = duckdb.connect().execute(
        f"SELECT station_id, date, temp_quality FROM read_parquet('{target}') ORDER BY date"
    ).fetchall()
    assert rows[0] == (257, date(1957, 1, 1), "000")
    assert len(rows) == 3


def test_process_reports_station_and_file_errors(runner, config_file, armagh, tmp_path) -> None:
    armagh.add_metric(Metric.TEMP_MAX, 99999, [("19570101", 62, 0)])
    armagh.add_metric(Metric.WIND_SPEED, 257, [("19570101", 41, 0)], extra_lines=["257,1001,19570102,x,0"])
    input_dir = armagh.write_directory(tmp_path / "in")
    report = tmp_path / "report.jsonl"

    cli_result = _invoke(
        runner,
        config_file,
        report,
        "process",
        str(input_dir),
        "--output-file",
        str(tmp_path / "weather.parquet"),
        "--malformed-policy",
        "abort",
        "--no-progress",
    )

    assert cli_result.exit_code == 0, cli_result.output
    summary = _report(report)
    assert summary["station_error.99999"].startswith("UNKNOWN_STATION")
    assert summary["file_error.257.wind_speed"].startswith("MALFORMED_RECORD")


def test_validate_does_not_write_output(runner, config_file, armagh, tmp_path, monkeypatch) -> None:
    input_dir = armagh.write_directory(tmp_path / "in")
    report = tmp_path / "report.jsonl"
    monkeypatch.chdir(tmp_path)

    cli_result = _invoke(runner, config_file, report, "validate", str(input_dir), "--no-progress")

    assert cli_result.exit_code == 0, cli_result.output
    assert _report(report)["total_records"] == 3
    assert "output_file" not in _report(report)
    assert not (tmp_path / "output").exists()


def test_process_uses_source_factory(runner, config_file, armagh, tmp_path, monkeypatch) -> None:
    input_dir = armagh.write_directory(tmp_path / "in")
    calls: list[tuple[Path, str | None]] = []

    def fake_source(path: Path, file_pattern: str | None):
        calls.append((path, file_pattern))
        return DirectorySource(input_dir)

    monkeypatch.setattr(process_module, "get_source", fake_source)
    report = tmp_path / "report.jsonl"

    cli_result = _invoke(
        runner,
        config_file,
        report,
        "process",
        "archives",
        "--file-pattern",
        "blend",
        "--station-id",
        "257",
        "--validate-only",
        "--no-progress",
    )

    assert cli_result.exit_code == 0, cli_result.output
    assert calls == [(Path("archives"), "blend")]
    assert _report(report)["total_records"] == 3


def test_process_missing_input_exits_with_data_code(runner, config_file, tmp_path) -> None:
    cli_result = _invoke(runner, config_file, tmp_path / "report.jsonl", "process", str(tmp_path / "absent"))

    assert cli_result.exit_code == DATA_EXIT_CODE
    assert "FILE_UNAVAILABLE" in cli_result.stderr


def test_process_missing_catalog_exits_with_data_code(runner, config_file, armagh, tmp_path) -> None:
    input_dir = armagh.write_directory(tmp_path / "in", catalog=False)
    target = tmp_path / "weather.parquet"

    cli_result = _invoke(
        runner, config_file, tmp_path / "report.jsonl", "process", str(input_dir), "--output-file", str(target)
    )

    assert cli_result.exit_code == DATA_EXIT_CODE
    assert "CATALOG_ERROR" in cli_result.stderr
    assert not target.exists()


def test_process_rejects_unknown_compression(runner, config_file, armagh, tmp_path) -> None:
    input_dir = armagh.write_directory(tmp_path / "in")

    cli_result = _invoke(
        runner, config_file, tmp_path / "report.jsonl", "process", str(input_dir), "--compression", "rar"
    )

    assert cli_result.exit_code == CONFIG_EXIT_CODE
    assert "CONFIGURATION_ERROR" in cli_result.stderr


def test_broken_config_file_exits_with_config_code(runner, tmp_path) -> None:
    config_file = tmp_path / "config.toml"
    config_file.write_text("[pipeline\n", encoding="utf-8")

    cli_result = _invoke(runner, config_file, tmp_path / "report.jsonl", "inspect", str(tmp_path))

    assert cli_result.exit_code == CONFIG_EXIT_CODE
    assert "CONFIGURATION_ERROR" in cli_result.stderr


def test_inspect_lists_metric_files(runner, config_file, armagh, tmp_path) -> None:
    archive = armagh.write_zip(tmp_path / "ECA_blend.zip")
    report = tmp_path / "report.jsonl"

    cli_result = _invoke(runner, config_file, report, "inspect", str(archive))

    assert cli_result.exit_code == 0, cli_result.output
    rows = [json.loads(line) for line in report.read_text(encoding="utf-8").splitlines()]
    assert [row["prefix"] for row in rows] == ["TN", "TX", "TG", "RR", "FG"]
    assert all(row["files"] == 1 for row in rows)
    assert rows[0]["section"].endswith("1 stations")


def test_info_describes_written_dataset(runner, config_file, armagh, tmp_path) -> None:
    input_dir = armagh.write_directory(tmp_path / "in")
    target = tmp_path / "weather.parquet"
    _invoke(runner, config_file, tmp_path / "process.jsonl", "process", str(input_dir), "--output-file", str(target), "--no-progress")
    report = tmp_path / "info.jsonl"

    cli_result = _invoke(runner, config_file, report, "info", str(target), "--sample", "2")

    assert cli_result.exit_code == 0, cli_result.output
    rows = [json.loads(line) for line in report.read_text(encoding="utf-8").splitlines()]
    dataset = {row["metric"]: row["value"] for row in rows if row["section"] == "Dataset"}
    samples = [row for row in rows if row["section"] == "Sample"]
    assert dataset["rows"] == 3
    assert dataset["first_date"] == "1957-01-01"
    assert len(samples) == 2
    assert samples[0]["station_id"] == 257


def test_default_output_path_is_dated() -> None:
    path = process_module.default_output_path(EcadConfig(), date(2026, 10, 19))

    assert path == Path("output") / "ecad-weather-261019.parquet"


def test_invalid_format_is_rejected(runner, tmp_path) -> None:
    cli_result = runner.invoke(create_app(), ["--format", "xml", "inspect", str(tmp_path)])

    assert cli_result.exit_code != 0
