"""Station metadata and geographic bounds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class StationInfo(BaseModel):
    """Catalog entry for a weather station."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    station_id: int = Field(gt=0)
    name: str = Field(min_length=1)
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    country: str | None = None
    elevation: int | None = None


@dataclass(frozen=True)
class GeoBounds:
    """Inclusive latitude/longitude box."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float
    name: str = "custom"

    PRESETS: ClassVar[dict[str, GeoBounds]]

    def contains(self, latitude: float, longitude: float) -> bool:
        return self.min_lat <= latitude <= self.max_lat and self.min_lon <= longitude <= self.max_lon

    def contains_station(self, station: StationInfo) -> bool:
        return self.contains(station.latitude, station.longitude)

    @classmethod
    def from_name(cls, name: str) -> GeoBounds:
        try:
            return cls.PRESETS[name.lower()]
        except KeyError as exc:
            allowed = ", ".join(sorted(cls.PRESETS))
            raise ValueError(f"unknown bounds preset '{name}'. Available presets: {allowed}") from exc


GLOBAL_BOUNDS = GeoBounds(-90.0, 90.0, -180.0, 180.0, name="global")
EUROPE_BOUNDS = GeoBounds(25.0, 82.0, -45.0, 75.0, name="europe")
UK_BOUNDS = GeoBounds(49.5, 61.0, -8.0, 2.0, name="uk")

GeoBounds.PRESETS = {bounds.name: bounds for bounds in (GLOBAL_BOUNDS, EUROPE_BOUNDS, UK_BOUNDS)}


__all__ = ["EUROPE_BOUNDS", "GLOBAL_BOUNDS", "UK_BOUNDS", "GeoBounds", "StationInfo"]
