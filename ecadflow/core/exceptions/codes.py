"""Machine readable error codes shared by the pipeline and the CLI."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable identifiers attached to every :class:`EcadError`."""

    GENERAL = "GENERAL_ERROR"
    MALFORMED_RECORD = "MALFORMED_RECORD"
    FILE_UNAVAILABLE = "FILE_UNAVAILABLE"
    CATALOG_ERROR = "CATALOG_ERROR"
    GEOGRAPHIC_BOUNDS_VIOLATION = "GEOGRAPHIC_BOUNDS_VIOLATION"
    UNKNOWN_STATION = "UNKNOWN_STATION"
    NO_READABLE_FILES = "NO_READABLE_FILES"
    WORKER_FAILURE = "WORKER_FAILURE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    SINK_ERROR = "SINK_ERROR"


__all__ = ["ErrorCode"]
