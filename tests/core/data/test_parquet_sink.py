from __future__ import annotations

from datetime import date

import duckdb
import pytest

from ecadflow.core.data.schema import WEATHER_RECORDS_TABLE
from ecadflow.core.data.storage import DuckDBSink, ParquetSink, describe_dataset, records_to_frame
from ecadflow.core.exceptions import FileUnavailableError, PipelineConfigError
from ecadflow.core.models import ConsolidatedRecord, EcadFlag, MetricValue, QualityVerdict


def _record(station_id: int, day: int, **metrics: MetricValue) -> ConsolidatedRecord:
    return ConsolidatedRecord(
        station_id=station_id,
        date=date(1957, 1, day),
        station_name=f"STATION {station_id}",
        latitude=54.35,
        longitude=-6.65,
        **metrics,
    )


def _value(value: float, flag: EcadFlag = EcadFlag.VALID, verdict: QualityVerdict = QualityVerdict.VALID) -> MetricValue:
    return MetricValue(value, flag, verdict)


def test_records_to_frame_uses_table_column_order() -> None:
    frame = records_to_frame([_record(257, 1, temp_max=_value(6.2))])

    assert tuple(frame.columns) == WEATHER_RECORDS_TABLE.column_names
    assert str(frame["temp_max"].dtype) == "Float64"
    assert str(frame["temp_max_flag"].dtype) == "UInt8"
    assert frame["temp_min"].isna().all()


def test_duckdb_sink_appends_batches() -> None:
    connection = duckdb.connect(database=":memory:")
    sink = DuckDBSink(connection=connection)

    sink.write_batch([_record(257, 1, temp_max=_value(6.2)), _record(257, 2, precipitation=_value(5.2))])
    sink.write_batch([])
    sink.close()

    rows = connection.execute(
        "SELECT station_id, date, temp_max, temp_max_flag, precipitation, precip_quality, temp_quality "
        "FROM weather_records ORDER BY date"
    ).fetchall()
    assert rows == [
        (257, date(1957, 1, 1), pytest.approx(6.2), 0, None, None, "990"),
        (257, date(1957, 1, 2), None, None, pytest.approx(5.2), "0", None),
    ]
    assert sink.rows_written == 2


def test_parquet_sink_writes_sorted_file(tmp_path) -> None:
    target = tmp_path / "out" / "ecad-weather-261019.parquet"
    sink = ParquetSink(target, compression="zstd", row_group_size=2)

    sink.write_batch([_record(2, 1, temp_min=_value(-3.0, EcadFlag.SUSPECT, QualityVerdict.VALID))])
    sink.write_batch([_record(1, 2, wind_speed=_value(130.0, verdict=QualityVerdict.INVALID)), _record(1, 1, temp_max=_value(4.0))])
    sink.close()

    rows = duckdb.connect().execute(
        f"SELECT station_id, date, temp_min_flag, wind_speed_verdict FROM read_parquet('{target}')"
    ).fetchall()
    assert rows == [
        (1, date(1957, 1, 1), None, None),
        (1, date(1957, 1, 2), None, "invalid"),
        (2, date(1957, 1, 1), 1, None),
    ]


def test_parquet_sink_discard_leaves_no_output(tmp_path) -> None:
    target = tmp_path / "discarded.parquet"
    sink = ParquetSink(target)

    sink.write_batch([_record(1, 1, temp_max=_value(4.0))])
    sink.discard()

    assert not target.exists()


def test_parquet_sink_rejects_unknown_compression(tmp_path) -> None:
    with pytest.raises(PipelineConfigError):
        ParquetSink(tmp_path / "x.parquet", compression="rar")


def test_describe_dataset_reports_coverage_and_extremes(tmp_path) -> None:
    target = tmp_path / "dataset.parquet"
    sink = ParquetSink(target, compression="none")
    sink.write_batch(
        [
            _record(1, 1, temp_max=_value(31.5), precipitation=_value(0.0)),
            _record(1, 2, temp_max=_value(55.0, verdict=QualityVerdict.SUSPECT)),
            _record(2, 1, temp_min=_value(-12.5), temp_max=_value(-2.0)),
        ]
    )
    sink.close()

    description = describe_dataset(target, sample=2)

    assert description.rows == 3
    assert description.stations == 2
    assert description.first_date == date(1957, 1, 1)
    assert description.last_date == date(1957, 1, 2)
    assert description.coverage["temp_max"] == 3
    assert description.coverage["wind_speed"] == 0
    assert description.verdicts["temp_max"] == {"valid": 2, "suspect": 1}
    assert description.extremes["hottest"]["value"] == pytest.approx(31.5)
    assert description.extremes["coldest"]["station_name"] == "STATION 2"
    assert "windiest" not in description.extremes
    assert len(description.sample) == 2
    assert list(description.sample["date"]) == ["1957-01-01", "1957-01-02"]
    assert any(row["metric"] == "coverage.temp_max" for row in description.to_rows())


def test_describe_dataset_missing_file(tmp_path) -> None:
    with pytest.raises(FileUnavailableError):
        describe_dataset(tmp_path / "absent.parquet")
