"""Exception handling module."""

from ecadflow.core.exceptions.base import (
    CatalogError,
    EcadError,
    FileUnavailableError,
    GeographicBoundsViolation,
    MalformedRecordError,
    PipelineConfigError,
    SinkError,
    UnknownStationError,
)
from ecadflow.core.exceptions.codes import ErrorCode

__all__ = [
    "CatalogError",
    "EcadError",
    "ErrorCode",
    "FileUnavailableError",
    "GeographicBoundsViolation",
    "MalformedRecordError",
    "PipelineConfigError",
    "SinkError",
    "UnknownStationError",
]
