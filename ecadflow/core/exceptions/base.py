"""Core exception hierarchy for ecadflow."""

from __future__ import annotations

from typing import Any

from ecadflow.core.exceptions.codes import ErrorCode


class EcadError(Exception):
    """Base error carrying a code and structured details."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode | str = ErrorCode.GENERAL,
        details: dict[str, Any] | None = None,
    ):
        """Initialise the error.

        Args:
            message: Human readable message.
            error_code: Machine readable code.
            details: Extra context for summaries and CLI payloads.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code.value if isinstance(error_code, ErrorCode) else error_code
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Serialise the error for logs and CLI output."""

        return {"code": self.error_code, "message": self.message, "details": dict(self.details)}


class MalformedRecordError(EcadError):
    """A data line that could not be parsed."""

    def __init__(
        self,
        message: str,
        line_number: int,
        raw_line: str,
        details: dict[str, Any] | None = None,
    ):
        super_details = dict(details or {})
        super_details.update({"line_number": line_number, "raw_line": raw_line})
        super().__init__(message, ErrorCode.MALFORMED_RECORD, super_details)
        self.line_number = line_number
        self.raw_line = raw_line


class FileUnavailableError(EcadError):
    """A metric file or catalog could not be opened or read."""

    def __init__(
        self,
        message: str,
        station_id: int | None = None,
        metric: str | None = None,
        path: str | None = None,
    ):
        details: dict[str, Any] = {}
        if station_id is not None:
            details["station_id"] = station_id
        if metric is not None:
            details["metric"] = metric
        if path is not None:
            details["path"] = path
        super().__init__(message, ErrorCode.FILE_UNAVAILABLE, details)
        self.station_id = station_id
        self.metric = metric
        self.path = path


class CatalogError(EcadError):
    """The station catalog is missing or corrupt; the run cannot proceed."""

    def __init__(self, message: str, line_number: int | None = None, details: dict[str, Any] | None = None):
        super_details = dict(details or {})
        if line_number is not None:
            super_details["line_number"] = line_number
        super().__init__(message, ErrorCode.CATALOG_ERROR, super_details)
        self.line_number = line_number


class GeographicBoundsViolation(EcadError):
    """Station coordinates fall outside the configured region."""

    def __init__(self, station_id: int, latitude: float, longitude: float, region: str):
        super().__init__(
            f"station {station_id} at ({latitude}, {longitude}) lies outside the {region} bounds",
            ErrorCode.GEOGRAPHIC_BOUNDS_VIOLATION,
            {"station_id": station_id, "latitude": latitude, "longitude": longitude, "region": region},
        )
        self.station_id = station_id


class UnknownStationError(EcadError):
    """Metric files reference a station absent from the catalog."""

    def __init__(self, station_id: int):
        super().__init__(
            f"station {station_id} has metric files but no catalog entry",
            ErrorCode.UNKNOWN_STATION,
            {"station_id": station_id},
        )
        self.station_id = station_id


class PipelineConfigError(EcadError):
    """Raised when pipeline configuration is invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR)


class SinkError(EcadError):
    """The output sink failed to persist a batch."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message, ErrorCode.SINK_ERROR, {"path": path} if path else None)
        self.path = path


__all__ = [
    "CatalogError",
    "EcadError",
    "FileUnavailableError",
    "GeographicBoundsViolation",
    "MalformedRecordError",
    "PipelineConfigError",
    "SinkError",
    "UnknownStationError",
]
