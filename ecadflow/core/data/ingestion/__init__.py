"""Ingestion of ECA&D station files and metadata."""

from ecadflow.core.data.ingestion.archive import (
    CompositeSource,
    DirectorySource,
    MetricSource,
    SourceManifest,
    ZipArchiveSource,
    data_file_name,
    inspect_source,
    open_source,
    parse_data_file_name,
)
from ecadflow.core.data.ingestion.catalog import load_catalog, parse_station_line
from ecadflow.core.data.ingestion.coordinates import dms_to_decimal, parse_coordinate
from ecadflow.core.data.ingestion.reader import MISSING_VALUE, MalformedPolicy, MetricRecordReader, ReadStats

__all__ = [
    "MISSING_VALUE",
    "CompositeSource",
    "DirectorySource",
    "MalformedPolicy",
    "MetricRecordReader",
    "MetricSource",
    "ReadStats",
    "SourceManifest",
    "ZipArchiveSource",
    "data_file_name",
    "dms_to_decimal",
    "inspect_source",
    "load_catalog",
    "open_source",
    "parse_coordinate",
    "parse_data_file_name",
    "parse_station_line",
]
