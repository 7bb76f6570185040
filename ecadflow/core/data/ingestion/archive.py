"""Access to ECA&D station files, extracted or still inside zip archives."""

from __future__ import annotations

import re
import zipfile
from collections import Counter
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import IO, TYPE_CHECKING, Protocol, runtime_checkable

from ecadflow.core.data.ingestion.catalog import CATALOG_FILE_NAME, load_catalog
from ecadflow.core.exceptions import CatalogError, FileUnavailableError
from ecadflow.core.logging import logger
from ecadflow.core.models import Metric

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from ecadflow.core.models import StationInfo

DATA_FILE_PATTERN = re.compile(r"^(?P<prefix>[A-Za-z]{2})_STAID(?P<station>\d+)\.txt$")


def parse_data_file_name(name: str) -> tuple[Metric, int] | None:
    """Return ``(metric, station_id)`` for names like ``TX_STAID000257.txt``."""

    match = DATA_FILE_PATTERN.match(PurePosixPath(name).name)
    if match is None:
        return None
    metric = Metric.from_prefix(match.group("prefix"))
    if metric is None:
        return None
    return metric, int(match.group("station"))


def data_file_name(metric: Metric, station_id: int) -> str:
    return f"{metric.prefix}_STAID{station_id:06d}.txt"


@runtime_checkable
class MetricSource(Protocol):
    """Collaborator handing out per-station metric streams and the catalog."""

    name: str

    def station_metrics(self) -> Mapping[int, frozenset[Metric]]:
        """Stations discovered from file names, with the metrics each one has."""

    def open_metric_stream(self, station_id: int, metric: Metric) -> IO[bytes]:
        """Open one metric file; raises :class:`FileUnavailableError`."""

    def load_catalog(self) -> Mapping[int, StationInfo]:
        """Load station metadata; raises :class:`CatalogError`."""


@dataclass(frozen=True)
class SourceManifest:
    """Summary of what a source contains."""

    name: str
    metrics: tuple[Metric, ...]
    file_counts: dict[Metric, int]
    station_count: int

    def to_rows(self) -> list[dict[str, object]]:
        return [
            {
                "metric": metric.value,
                "prefix": metric.prefix,
                "description": metric.display_name,
                "files": self.file_counts.get(metric, 0),
            }
            for metric in self.metrics
        ]


class _IndexedSource:
    """Shared discovery logic for sources addressed by member name."""

    name: str

    def __init__(self, members: Iterable[str]) -> None:
        self._members: dict[tuple[int, Metric], str] = {}
        self._catalog_member: str | None = None
        for member in sorted(members):
            base = PurePosixPath(member).name
            if base.lower() == CATALOG_FILE_NAME:
                # shallowest catalog wins
                if self._catalog_member is None or member.count("/") < self._catalog_member.count("/"):
                    self._catalog_member = member
                continue
            parsed = parse_data_file_name(base)
            if parsed is not None:
                metric, station_id = parsed
                self._members.setdefault((station_id, metric), member)

        grouped: dict[int, set[Metric]] = {}
        for station_id, metric in self._members:
            grouped.setdefault(station_id, set()).add(metric)
        self._station_metrics = {station_id: frozenset(metrics) for station_id, metrics in sorted(grouped.items())}

    def station_metrics(self) -> Mapping[int, frozenset[Metric]]:
        return self._station_metrics

    def _member_for(self, station_id: int, metric: Metric) -> str:
        try:
            return self._members[(station_id, metric)]
        except KeyError as exc:
            raise FileUnavailableError(
                f"no {metric.prefix} file for station {station_id} in {self.name}",
                station_id=station_id,
                metric=metric.value,
            ) from exc


class DirectorySource(_IndexedSource):
    """An extracted ECA&D archive directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)
        self.name = str(self.root)
        if not self.root.is_dir():
            raise FileUnavailableError(f"input directory '{self.root}' does not exist", path=self.name)
        super().__init__(path.name for path in self.root.iterdir() if path.is_file())

    def open_metric_stream(self, station_id: int, metric: Metric) -> IO[bytes]:
        path = self.root / self._member_for(station_id, metric)
        try:
            return path.open("rb")
        except OSError as exc:
            raise FileUnavailableError(
                f"unable to open '{path}': {exc}", station_id=station_id, metric=metric.value, path=str(path)
            ) from exc

    def load_catalog(self) -> Mapping[int, StationInfo]:
        if self._catalog_member is None:
            raise CatalogError(f"no {CATALOG_FILE_NAME} in '{self.root}'")
        return load_catalog(self.root / self._catalog_member)


class ZipArchiveSource(_IndexedSource):
    """Reads station files directly from a zip archive without extracting it."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.name = str(self.path)
        try:
            self._zip = zipfile.ZipFile(self.path)
        except (OSError, zipfile.BadZipFile) as exc:
            raise FileUnavailableError(f"unable to open archive '{self.path}': {exc}", path=self.name) from exc
        super().__init__(info.filename for info in self._zip.infolist() if not info.is_dir())

    def open_metric_stream(self, station_id: int, metric: Metric) -> IO[bytes]:
        member = self._member_for(station_id, metric)
        try:
            return self._zip.open(member)
        except (OSError, KeyError, zipfile.BadZipFile) as exc:
            raise FileUnavailableError(
                f"unable to open '{member}' in '{self.path}': {exc}",
                station_id=station_id,
                metric=metric.value,
                path=member,
            ) from exc

    def load_catalog(self) -> Mapping[int, StationInfo]:
        if self._catalog_member is None:
            raise CatalogError(f"no {CATALOG_FILE_NAME} in archive '{self.path}'")
        try:
            with self._zip.open(self._catalog_member) as handle:
                return load_catalog(handle)
        except (OSError, zipfile.BadZipFile) as exc:
            raise CatalogError(f"unable to read {CATALOG_FILE_NAME} from '{self.path}': {exc}") from exc

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> ZipArchiveSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class CompositeSource:
    """Several sources viewed as one, e.g. one ECA&D archive per metric.

    A ``(station, metric)`` file is served by the first source that has it;
    catalogs are merged with the first source winning on conflicts.
    """

    def __init__(self, sources: Sequence[MetricSource]) -> None:
        if not sources:
            raise FileUnavailableError("no input sources supplied")
        self.sources = tuple(sources)
        self.name = ", ".join(source.name for source in self.sources)
        self._routes: dict[tuple[int, Metric], MetricSource] = {}
        for source in self.sources:
            for station_id, metrics in source.station_metrics().items():
                for metric in metrics:
                    self._routes.setdefault((station_id, metric), source)
        grouped: dict[int, set[Metric]] = {}
        for station_id, metric in self._routes:
            grouped.setdefault(station_id, set()).add(metric)
        self._station_metrics = {station_id: frozenset(metrics) for station_id, metrics in sorted(grouped.items())}

    def station_metrics(self) -> Mapping[int, frozenset[Metric]]:
        return self._station_metrics

    def open_metric_stream(self, station_id: int, metric: Metric) -> IO[bytes]:
        source = self._routes.get((station_id, metric))
        if source is not None:
            return source.open_metric_stream(station_id, metric)
        raise FileUnavailableError(
            f"no {metric.prefix} file for station {station_id} in any input",
            station_id=station_id,
            metric=metric.value,
        )

    def load_catalog(self) -> Mapping[int, StationInfo]:
        merged: dict[int, StationInfo] = {}
        for source in self.sources:
            for station_id, station in source.load_catalog().items():
                merged.setdefault(station_id, station)
        return merged

    def close(self) -> None:
        for source in self.sources:
            close = getattr(source, "close", None)
            if close is not None:
                close()


def open_source(path: str | Path, *, file_pattern: str | None = None) -> MetricSource:
    """Build the right source for a zip file, a directory of zips or an extracted directory."""

    target = Path(path)
    if target.is_file():
        if target.suffix.lower() != ".zip":
            raise FileUnavailableError(f"'{target}' is neither a directory nor a zip archive", path=str(target))
        return ZipArchiveSource(target)
    if not target.is_dir():
        raise FileUnavailableError(f"input '{target}' does not exist", path=str(target))

    archives = sorted(
        candidate
        for candidate in target.iterdir()
        if candidate.is_file()
        and candidate.suffix.lower() == ".zip"
        and (file_pattern is None or file_pattern in candidate.name)
    )
    if not archives:
        return DirectorySource(target)
    logger.info("Discovered archives", directory=str(target), archives=[a.name for a in archives])
    if len(archives) == 1:
        return ZipArchiveSource(archives[0])
    return CompositeSource([ZipArchiveSource(archive) for archive in archives])


def inspect_source(source: MetricSource) -> SourceManifest:
    """Count metric files per metric and stations in a source."""

    station_metrics = source.station_metrics()
    counts: Counter[Metric] = Counter()
    for metrics in station_metrics.values():
        counts.update(metrics)
    present = tuple(metric for metric in Metric if counts[metric])
    return SourceManifest(
        name=source.name,
        metrics=present,
        file_counts=dict(counts),
        station_count=len(station_metrics),
    )


__all__ = [
    "CompositeSource",
    "DirectorySource",
    "MetricSource",
    "SourceManifest",
    "ZipArchiveSource",
    "data_file_name",
    "inspect_source",
    "open_source",
    "parse_data_file_name",
]
