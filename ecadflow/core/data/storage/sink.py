"""Output sinks receiving ordered batches of consolidated records."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import duckdb
import pandas as pd

from ecadflow.core.data.schema import WEATHER_RECORDS_TABLE, TableSchema
from ecadflow.core.exceptions import PipelineConfigError, SinkError
from ecadflow.core.logging import logger
from ecadflow.core.models import Metric

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ecadflow.core.models import ConsolidatedRecord

# DuckDB codec names for the user-facing compression options.
PARQUET_CODECS = {
    "snappy": "snappy",
    "gzip": "gzip",
    "zstd": "zstd",
    "lz4": "lz4",
    "none": "uncompressed",
}

_NULLABLE_DTYPES: dict[str, str] = {}
for _metric in Metric:
    _NULLABLE_DTYPES[_metric.value] = "Float64"
    _NULLABLE_DTYPES[f"{_metric.value}_flag"] = "UInt8"
    _NULLABLE_DTYPES[f"{_metric.value}_verdict"] = "string"
for _column in ("temp_quality", "precip_quality", "wind_quality"):
    _NULLABLE_DTYPES[_column] = "string"


class RecordSink(Protocol):
    """Receives batches in ``(station_id, date)`` order.

    Returning from :meth:`write_batch` acknowledges the batch. :meth:`close`
    finalises the output; :meth:`discard` abandons it after a failed run.
    """

    def write_batch(self, batch: Sequence[ConsolidatedRecord]) -> None: ...

    def close(self) -> None: ...

    def discard(self) -> None: ...


def records_to_frame(records: Sequence[ConsolidatedRecord], schema: TableSchema = WEATHER_RECORDS_TABLE) -> pd.DataFrame:
    """Build a DataFrame in the table's column order with nullable dtypes."""

    frame = pd.DataFrame.from_records([record.to_row() for record in records], columns=list(schema.column_names))
    frame["date"] = pd.to_datetime(frame["date"])
    return frame.astype(_NULLABLE_DTYPES)


class MemorySink:
    """Keeps every batch in memory; for library use and tests."""

    def __init__(self) -> None:
        self.batches: list[list[ConsolidatedRecord]] = []
        self.closed = False
        self.discarded = False

    @property
    def records(self) -> list[ConsolidatedRecord]:
        return [record for batch in self.batches for record in batch]

    def write_batch(self, batch: Sequence[ConsolidatedRecord]) -> None:
        self.batches.append(list(batch))

    def close(self) -> None:
        self.closed = True

    def discard(self) -> None:
        self.discarded = True


class NullSink:
    """Drops records; used for validate-only runs."""

    def __init__(self) -> None:
        self.records_seen = 0

    def write_batch(self, batch: Sequence[ConsolidatedRecord]) -> None:
        self.records_seen += len(batch)

    def close(self) -> None:
        return None

    def discard(self) -> None:
        return None


class DuckDBSink:
    """Appends batches to the ``weather_records`` table of a DuckDB database."""

    def __init__(
        self,
        database: str | Path = ":memory:",
        *,
        connection: duckdb.DuckDBPyConnection | None = None,
        schema: TableSchema = WEATHER_RECORDS_TABLE,
    ) -> None:
        self.schema = schema
        self._owns_connection = connection is None
        try:
            self.conn = connection if connection is not None else duckdb.connect(str(database))
            self.schema.ensure(self.conn)
        except duckdb.Error as exc:
            raise SinkError(f"unable to prepare DuckDB database '{database}': {exc}", str(database)) from exc
        self.rows_written = 0

    def write_batch(self, batch: Sequence[ConsolidatedRecord]) -> None:
        if not batch:
            return
        frame = records_to_frame(batch, self.schema)
        try:
            self.conn.register("ecadflow_batch", frame)
            try:
                self.conn.execute(
                    f"INSERT INTO {self.schema.name} "
                    "SELECT * REPLACE (CAST(date AS DATE) AS date) FROM ecadflow_batch"
                )
            finally:
                self.conn.unregister("ecadflow_batch")
        except duckdb.Error as exc:
            raise SinkError(f"failed to write batch of {len(batch)} records: {exc}") from exc
        self.rows_written += len(batch)

    def close(self) -> None:
        if self._owns_connection:
            self.conn.close()

    def discard(self) -> None:
        self.close()


class ParquetSink(DuckDBSink):
    """Stages batches in a scratch DuckDB file and writes one Parquet file on close."""

    def __init__(
        self,
        path: str | Path,
        *,
        compression: str = "snappy",
        row_group_size: int = 10_000,
    ) -> None:
        codec = PARQUET_CODECS.get(compression.lower())
        if codec is None:
            allowed = ", ".join(PARQUET_CODECS)
            raise PipelineConfigError(f"unsupported compression '{compression}'. Available: {allowed}")
        if row_group_size <= 0:
            raise PipelineConfigError("row_group_size must be positive")
        self.path = Path(path)
        self.codec = codec
        self.row_group_size = row_group_size
        self._scratch = tempfile.TemporaryDirectory(prefix="ecadflow-")
        super().__init__(Path(self._scratch.name) / "staging.duckdb")

    def close(self) -> None:
        target = str(self.path).replace("'", "''")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.conn.execute(
                f"COPY (SELECT * FROM {self.schema.name} ORDER BY station_id, date) "
                f"TO '{target}' (FORMAT PARQUET, COMPRESSION '{self.codec}', ROW_GROUP_SIZE {self.row_group_size})"
            )
        except (duckdb.Error, OSError) as exc:
            raise SinkError(f"failed to write Parquet file '{self.path}': {exc}", str(self.path)) from exc
        finally:
            super().close()
            self._scratch.cleanup()
        logger.info("Wrote Parquet output", path=str(self.path), rows=self.rows_written, compression=self.codec)

    def discard(self) -> None:
        super().close()
        self._scratch.cleanup()


__all__ = [
    "PARQUET_CODECS",
    "DuckDBSink",
    "MemorySink",
    "NullSink",
    "ParquetSink",
    "RecordSink",
    "records_to_frame",
]
