from __future__ import annotations

import duckdb

from ecadflow.core.data import schema


def test_weather_records_table_contains_expected_columns() -> None:
    conn = duckdb.connect(database=":memory:")

    schema.WEATHER_RECORDS_TABLE.ensure(conn)
    schema.WEATHER_RECORDS_TABLE.ensure(conn)

    info = conn.execute("PRAGMA table_info('weather_records')").fetchall()
    columns = [row[1] for row in info]
    types = {row[1]: row[2] for row in info}

    assert columns[:5] == ["station_id", "station_name", "date", "latitude", "longitude"]
    assert columns[5:8] == ["temp_min", "temp_min_flag", "temp_min_verdict"]
    assert columns[-3:] == ["temp_quality", "precip_quality", "wind_quality"]
    assert len(columns) == 5 + 5 * 3 + 3
    assert types["date"] == "DATE"
    assert types["wind_speed_flag"] == "UTINYINT"

