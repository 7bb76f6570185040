"""Output storage for consolidated records."""

from ecadflow.core.data.storage.describe import DatasetDescription, describe_dataset
from ecadflow.core.data.storage.sink import (
    PARQUET_CODECS,
    DuckDBSink,
    MemorySink,
    NullSink,
    ParquetSink,
    RecordSink,
    records_to_frame,
)

__all__ = [
    "PARQUET_CODECS",
    "DatasetDescription",
    "DuckDBSink",
    "MemorySink",
    "NullSink",
    "ParquetSink",
    "RecordSink",
    "describe_dataset",
    "records_to_frame",
]
