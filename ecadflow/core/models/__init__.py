"""Domain models for ECA&D weather data."""

from ecadflow.core.models.enums import DataQuality, EcadFlag, Metric, MetricFamily, QualityVerdict
from ecadflow.core.models.observation import RawObservation
from ecadflow.core.models.record import ConsolidatedRecord, MetricValue
from ecadflow.core.models.station import EUROPE_BOUNDS, GLOBAL_BOUNDS, UK_BOUNDS, GeoBounds, StationInfo

__all__ = [
    "EUROPE_BOUNDS",
    "GLOBAL_BOUNDS",
    "UK_BOUNDS",
    "ConsolidatedRecord",
    "DataQuality",
    "EcadFlag",
    "GeoBounds",
    "Metric",
    "MetricFamily",
    "MetricValue",
    "QualityVerdict",
    "RawObservation",
    "StationInfo",
]
