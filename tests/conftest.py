"""Pytest configuration and ECA&D fixture builders for the ecadflow test suite."""

from __future__ import annotations

import zipfile
from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest

from ecadflow.core.logging import configure_logging
from ecadflow.core.models import Metric

CATALOG_PREAMBLE = (
    "EUROPEAN CLIMATE ASSESSMENT & DATASET (ECA&D), file created on: 19-10-2026",
    "THESE DATA CAN BE USED FREELY PROVIDED THAT THE FOLLOWING SOURCE IS ACKNOWLEDGED:",
    "",
    "FILE FORMAT (MISSING VALUE CODE IS -999):",
    "01-05 STAID  : Station identifier",
    "",
)
CATALOG_HEADER = "STAID,STANAME                                 ,CN,      LAT,       LON,HGHT"

Row = tuple[str, int, int] | tuple[int, str, int, int]


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line options for controlling integration tests."""

    parser.addoption(
        "--ecadflow-run-integration",
        action="store_true",
        default=False,
        help="Run ecadflow integration tests that need real ECA&D archives.",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the integration marker for ecadflow tests."""

    config.addinivalue_line(
        "markers",
        "integration: marks ecadflow tests requiring downloaded ECA&D archives",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly requested."""

    if config.getoption("--ecadflow-run-integration"):
        return

    ecadflow_skip_integration = pytest.mark.skip(
        reason="integration tests require --ecadflow-run-integration",
    )
    for ecadflow_item in items:
        if "integration" in ecadflow_item.keywords:
            ecadflow_item.add_marker(ecadflow_skip_integration)


@pytest.fixture(autouse=True)
def _quiet_logging() -> Iterator[None]:
    configure_logging(console_output=False)
    yield
    configure_logging(console_output=False)


class EcadFixture:
    """Builds ECA&D-shaped station files in memory and writes them out."""

    def __init__(self) -> None:
        self.catalog_lines: list[str] = []
        self.files: dict[str, str] = {}

    def add_station(
        self,
        station_id: int,
        name: str = "ARMAGH",
        *,
        latitude: str = "+54:21:10",
        longitude: str = "-006:39:00",
        country: str = "GB",
        elevation: int = 62,
    ) -> EcadFixture:
        self.catalog_lines.append(f"{station_id:>6},{name:<40},{country},{latitude},{longitude},{elevation:>4}")
        return self

    def add_metric(
        self,
        metric: Metric,
        station_id: int,
        rows: Sequence[Row],
        *,
        header: bool = True,
        extra_lines: Sequence[str] = (),
    ) -> EcadFixture:
        """Add ``PREFIX_STAIDnnnnnn.txt``; rows are ``(date, value, flag)`` or ``(souid, date, value, flag)``."""

        prefix = metric.prefix
        lines: list[str] = []
        if header:
            lines.extend(
                [
                    "EUROPEAN CLIMATE ASSESSMENT & DATASET (ECA&D), file created on: 19-10-2026",
                    f"FILE FORMAT: {prefix} in 0.1 units, Q_{prefix} quality code (0='valid'; 1='suspect'; 9='missing')",
                    "",
                    f"STAID, SOUID,    DATE,   {prefix}, Q_{prefix}",
                ]
            )
        for row in rows:
            if len(row) == 3:
                source_id, (day, value, flag) = 1001, row
            else:
                source_id, day, value, flag = row
            lines.append(f"{station_id:>6},{source_id:>6},{day},{value:>5},{flag:>5}")
        lines.extend(extra_lines)
        self.files[f"{prefix}_STAID{station_id:06d}.txt"] = "\r\n".join(lines) + "\r\n"
        return self

    def catalog_text(self) -> str:
        return "\r\n".join([*CATALOG_PREAMBLE, CATALOG_HEADER, *self.catalog_lines]) + "\r\n"

    def write_directory(self, root: Path, *, catalog: bool = True) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        if catalog:
            (root / "stations.txt").write_text(self.catalog_text(), encoding="utf-8", newline="")
        for name, text in self.files.items():
            (root / name).write_text(text, encoding="utf-8", newline="")
        return root

    def write_zip(self, path: Path, *, catalog: bool = True, prefix: str | None = None) -> Path:
        """Write a zip archive; ``prefix`` restricts it to one metric's files."""

        path.parent.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            if catalog:
                archive.writestr("stations.txt", self.catalog_text())
            for name, text in self.files.items():
                if prefix is None or name.startswith(f"{prefix}_"):
                    archive.writestr(name, text)
        return path


@pytest.fixture()
def ecad() -> EcadFixture:
    return EcadFixture()


@pytest.fixture()
def armagh(ecad: EcadFixture) -> EcadFixture:
    """Station 257 with three days of temperature, precipitation and wind."""

    ecad.add_station(257)
    ecad.add_metric(Metric.TEMP_MIN, 257, [("19570101", 14, 0), ("19570102", 10, 0), ("19570103", -5, 0)])
    ecad.add_metric(Metric.TEMP_MAX, 257, [("19570101", 62, 0), ("19570102", 70, 0), ("19570103", 41, 1)])
    ecad.add_metric(Metric.TEMP_AVG, 257, [("19570101", 39, 0), ("19570102", 40, 0), ("19570103", 18, 0)])
    ecad.add_metric(Metric.PRECIPITATION, 257, [("19570101", 0, 0), ("19570102", 52, 0), ("19570103", -9999, 9)])
    ecad.add_metric(Metric.WIND_SPEED, 257, [("19570101", 41, 0), ("19570102", 63, 0)])
    return ecad
