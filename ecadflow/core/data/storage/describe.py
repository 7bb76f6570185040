"""Describe a written Parquet dataset."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import duckdb
import pandas as pd

from ecadflow.core.exceptions import FileUnavailableError
from ecadflow.core.models import Metric

SAMPLE_COLUMNS = (
    "station_id",
    "station_name",
    "CAST(date AS VARCHAR) AS date",
    "temp_min",
    "temp_avg",
    "temp_max",
    "precipitation",
    "wind_speed",
    "temp_quality",
)


@dataclass
class DatasetDescription:
    path: str
    rows: int
    stations: int
    first_date: date | None
    last_date: date | None
    coverage: dict[str, int] = field(default_factory=dict)
    verdicts: dict[str, dict[str, int]] = field(default_factory=dict)
    extremes: dict[str, dict[str, Any]] = field(default_factory=dict)
    bounds: dict[str, float | None] = field(default_factory=dict)
    sample: pd.DataFrame = field(default_factory=pd.DataFrame)

    def to_rows(self) -> list[dict[str, object]]:
        rows: list[dict[str, object]] = [
            {"metric": "rows", "value": self.rows},
            {"metric": "stations", "value": self.stations},
            {"metric": "first_date", "value": self.first_date},
            {"metric": "last_date", "value": self.last_date},
        ]
        for metric, count in self.coverage.items():
            share = 100.0 * count / self.rows if self.rows else 0.0
            rows.append({"metric": f"coverage.{metric}", "value": f"{count} ({share:.1f}%)"})
        for metric, counts in self.verdicts.items():
            for verdict, count in sorted(counts.items()):
                rows.append({"metric": f"verdict.{metric}.{verdict}", "value": count})
        for label, extreme in self.extremes.items():
            rows.append(
                {
                    "metric": label,
                    "value": f"{extreme['value']} at {extreme['station_name']} on {extreme['date']}",
                }
            )
        for key, value in self.bounds.items():
            rows.append({"metric": key, "value": value})
        return rows


def describe_dataset(path: str | Path, *, sample: int = 10) -> DatasetDescription:
    """Summarise row counts, coverage, verdicts and extremes of a Parquet file."""

    target = Path(path)
    if not target.is_file():
        raise FileUnavailableError(f"dataset '{target}' does not exist", path=str(target))
    relation = f"read_parquet('{str(target).replace(chr(39), chr(39) * 2)}')"

    conn = duckdb.connect()
    try:
        rows, stations, first_date, last_date = conn.execute(
            f"SELECT count(*), count(DISTINCT station_id), min(date), max(date) FROM {relation}"
        ).fetchone()

        coverage_sql = ", ".join(f"count({metric.value})" for metric in Metric)
        coverage_counts = conn.execute(f"SELECT {coverage_sql} FROM {relation}").fetchone()
        coverage = {metric.value: int(count) for metric, count in zip(Metric, coverage_counts, strict=True)}

        verdicts: dict[str, dict[str, int]] = {}
        for metric in Metric:
            column = f"{metric.value}_verdict"
            counts = conn.execute(
                f"SELECT {column}, count(*) FROM {relation} WHERE {column} IS NOT NULL GROUP BY 1"
            ).fetchall()
            if counts:
                verdicts[metric.value] = {verdict: int(count) for verdict, count in counts}

        extremes: dict[str, dict[str, Any]] = {}
        for label, column, order in (
            ("hottest", Metric.TEMP_MAX.value, "DESC"),
            ("coldest", Metric.TEMP_MIN.value, "ASC"),
            ("wettest", Metric.PRECIPITATION.value, "DESC"),
            ("windiest", Metric.WIND_SPEED.value, "DESC"),
        ):
            found = conn.execute(
                f"SELECT {column}, station_name, date FROM {relation} "
                f"WHERE {column} IS NOT NULL AND {column}_verdict = 'valid' "
                f"ORDER BY {column} {order}, station_id, date LIMIT 1"
            ).fetchone()
            if found is not None:
                extremes[label] = {"value": found[0], "station_name": found[1], "date": found[2]}

        min_lat, max_lat, min_lon, max_lon = conn.execute(
            f"SELECT min(latitude), max(latitude), min(longitude), max(longitude) FROM {relation}"
        ).fetchone()

        sample_frame = conn.execute(
            f"SELECT {', '.join(SAMPLE_COLUMNS)} FROM {relation} ORDER BY station_id, date LIMIT ?",
            [sample],
        ).df()
    except duckdb.Error as exc:
        raise FileUnavailableError(f"unable to read dataset '{target}': {exc}", path=str(target)) from exc
    finally:
        conn.close()

    return DatasetDescription(
        path=str(target),
        rows=int(rows),
        stations=int(stations),
        first_date=first_date,
        last_date=last_date,
        coverage=coverage,
        verdicts=verdicts,
        extremes=extremes,
        bounds={"min_latitude": min_lat, "max_latitude": max_lat, "min_longitude": min_lon, "max_longitude": max_lon},
        sample=sample_frame,
    )


__all__ = ["DatasetDescription", "describe_dataset"]
