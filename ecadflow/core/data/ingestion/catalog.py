"""Station catalog loading (ECA&D ``stations.txt``)."""

from __future__ import annotations

import io
from pathlib import Path
from types import MappingProxyType
from typing import IO, TYPE_CHECKING

from pydantic import ValidationError

from ecadflow.core.data.ingestion.coordinates import parse_coordinate
from ecadflow.core.data.ingestion.reader import iter_data_lines
from ecadflow.core.exceptions import CatalogError
from ecadflow.core.logging import logger
from ecadflow.core.models import StationInfo

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

CATALOG_FILE_NAME = "stations.txt"
MISSING_ELEVATION = -999
_FIELD_COUNT = 6


def parse_station_line(line: str, line_number: int = 0) -> StationInfo:
    """Parse ``STAID, STANAME, CN, LAT, LON, HGHT`` into :class:`StationInfo`."""

    parts = [part.strip() for part in line.split(",")]
    if len(parts) != _FIELD_COUNT:
        raise CatalogError(f"expected {_FIELD_COUNT} fields, found {len(parts)}", line_number, {"line": line})
    station_text, name, country, lat_text, lon_text, elevation_text = parts
    try:
        station_id = int(station_text)
        latitude = parse_coordinate(lat_text)
        longitude = parse_coordinate(lon_text)
        elevation = int(elevation_text) if elevation_text else None
        return StationInfo(
            station_id=station_id,
            name=name,
            latitude=latitude,
            longitude=longitude,
            country=country or None,
            elevation=None if elevation == MISSING_ELEVATION else elevation,
        )
    except (ValueError, ValidationError) as exc:
        raise CatalogError(f"invalid station entry: {exc}", line_number, {"line": line}) from exc


def load_catalog(
    source: str | Path | IO[bytes] | IO[str] | Iterable[str],
    *,
    encoding: str = "utf-8",
) -> Mapping[int, StationInfo]:
    """Load the station catalog into a read-only ``station_id -> StationInfo`` map.

    Any problem is a :class:`CatalogError`: without trustworthy station
    metadata no record can be emitted.
    """

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            with path.open("r", encoding=encoding, errors="replace", newline="") as handle:
                return _parse_catalog(handle, str(path))
        except OSError as exc:
            raise CatalogError(f"unable to read station catalog '{path}': {exc}") from exc

    if hasattr(source, "read") and not isinstance(source, io.TextIOBase) and isinstance(source.read(0), bytes):
        source = io.TextIOWrapper(source, encoding=encoding, errors="replace", newline="")
    try:
        return _parse_catalog(source, getattr(source, "name", "<stream>"))
    except OSError as exc:
        raise CatalogError(f"unable to read station catalog: {exc}") from exc


def _parse_catalog(lines: Iterable[str], origin: str) -> Mapping[int, StationInfo]:
    stations: dict[int, StationInfo] = {}
    for line_number, line in iter_data_lines(lines):
        station = parse_station_line(line, line_number)
        if station.station_id in stations:
            raise CatalogError(f"duplicate station id {station.station_id}", line_number, {"line": line})
        stations[station.station_id] = station

    if not stations:
        raise CatalogError(f"station catalog '{origin}' contains no stations")
    logger.info("Loaded station catalog", origin=str(origin), stations=len(stations))
    return MappingProxyType(stations)


__all__ = ["CATALOG_FILE_NAME", "load_catalog", "parse_station_line"]
