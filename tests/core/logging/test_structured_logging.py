"""Tests for structured logging with trace propagation."""

from __future__ import annotations

import contextvars
import io
import json
from concurrent.futures import ThreadPoolExecutor

import pytest

from ecadflow.core.logging import LogConfig, StructuredLogger, log_context


def _read_records(stream: io.StringIO) -> list[dict[str, object]]:
    stream.seek(0)
    lines = [line for line in stream.getvalue().splitlines() if line.strip()]
    return [json.loads(line) for line in lines]


def test_structured_log_contains_trace_and_context() -> None:
    buffer = io.StringIO()
    config = LogConfig(console_stream=buffer, console_output=True, file_output=False)
    logger = StructuredLogger(config)

    with logger.context(trace_id="trace-123", station_id=257, error_code="MALFORMED_RECORD", run_id="run-42"):
        logger.logger.info("skipping line", line_number=17)

    records = _read_records(buffer)
    assert len(records) == 1
    record = records[0]
    assert record["trace_id"] == "trace-123"
    assert record["station_id"] == 257
    assert record["error_code"] == "MALFORMED_RECORD"
    assert record["context"]["run_id"] == "run-42"
    assert record["context"]["line_number"] == 17


def test_trace_id_propagates_within_context() -> None:
    buffer = io.StringIO()
    logger = StructuredLogger(LogConfig(console_stream=buffer, console_output=True, file_output=False))

    with logger.context() as trace_id:
        logger.logger.info("first event")
        logger.logger.info("second event")

    logger.logger.info("outside context")

    records = _read_records(buffer)
    assert len(records) == 3
    assert records[0]["trace_id"] == records[1]["trace_id"]
    assert records[0]["trace_id"] == trace_id
    assert records[2]["trace_id"] != records[0]["trace_id"]


def test_trace_id_generated_when_missing() -> None:
    buffer = io.StringIO()
    logger = StructuredLogger(LogConfig(console_stream=buffer, console_output=True, file_output=False))

    logger.logger.info("single message")

    records = _read_records(buffer)
    assert len(records) == 1
    trace_id = records[0]["trace_id"]
    assert isinstance(trace_id, str)
    assert len(trace_id) == 32
    assert all(character in "0123456789abcdef" for character in trace_id)


def test_context_reaches_worker_threads_through_copied_context() -> None:
    buffer = io.StringIO()
    logger = StructuredLogger(LogConfig(console_stream=buffer, console_output=True, file_output=False))

    with log_context(trace_id="run-trace", run_id="abc"), ThreadPoolExecutor(max_workers=1) as executor:
        executor.submit(contextvars.copy_context().run, logger.logger.info, "from worker").result()

    records = _read_records(buffer)
    assert records[0]["trace_id"] == "run-trace"
    assert records[0]["context"]["run_id"] == "abc"


def test_level_filters_lower_severity_events() -> None:
    buffer = io.StringIO()
    logger = StructuredLogger(LogConfig(level="warning", console_stream=buffer, console_output=True))

    logger.logger.info("dropped")
    logger.logger.warning("kept")

    records = _read_records(buffer)
    assert [record["message"] for record in records] == ["kept"]
    assert records[0]["level"] == "WARNING"


def test_unknown_level_rejected() -> None:
    with pytest.raises(ValueError):
        LogConfig(level="chatty")


def test_file_sink_appends_json_lines(tmp_path) -> None:
    path = tmp_path / "logs" / "ecadflow.jsonl"
    logger = StructuredLogger(LogConfig(console_output=False, file_output=True, file_path=str(path)))

    logger.logger.bind(station_id=1).error("station failed")

    lines = path.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[0])["station_id"] == 1
