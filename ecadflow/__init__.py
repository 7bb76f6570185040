"""ecadflow - consolidate ECA&D daily station data into validated datasets.

Reads per-station, per-metric ECA&D files (extracted or inside zip archives),
merges them into one record per station and day, attaches physical validity
verdicts next to the upstream quality flags and streams the records, ordered
by station and date, to an output sink such as a Parquet file.
"""

from ecadflow.core.config import ConfigManager, EcadConfig
from ecadflow.core.data.ingestion import load_catalog, open_source
from ecadflow.core.data.storage import MemorySink, NullSink, ParquetSink
from ecadflow.core.models import ConsolidatedRecord, EcadFlag, Metric, QualityVerdict, StationInfo
from ecadflow.core.services import RunSummary, run_pipeline

__version__ = "0.1.0"

__all__ = [
    "ConfigManager",
    "ConsolidatedRecord",
    "EcadConfig",
    "EcadFlag",
    "MemorySink",
    "Metric",
    "NullSink",
    "ParquetSink",
    "QualityVerdict",
    "RunSummary",
    "StationInfo",
    "load_catalog",
    "open_source",
    "run_pipeline",
]
