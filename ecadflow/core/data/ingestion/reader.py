"""Streaming reader for per-station, per-metric ECA&D data files."""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import IO, TYPE_CHECKING

from ecadflow.core.exceptions import FileUnavailableError, MalformedRecordError
from ecadflow.core.logging import logger
from ecadflow.core.models import EcadFlag, Metric, RawObservation

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

MISSING_VALUE = -9999
HEADER_TOKENS = frozenset({"STAID", "SOUID"})


class MalformedPolicy(str, Enum):
    """What to do with a line that cannot be parsed."""

    SKIP = "skip"
    ABORT = "abort"


@dataclass(slots=True)
class ReadStats:
    """Counters for the most recent :meth:`MetricRecordReader.read` call."""

    lines_read: int = 0
    observations: int = 0
    skipped: int = 0
    errors: list[MalformedRecordError] = field(default_factory=list)


def _is_separator(line: str) -> bool:
    return not line.strip(" -,\t")


def looks_like_data_line(line: str) -> bool:
    """Shape test for a data line: a leading integer field followed by more fields.

    Whether the remaining fields parse is left to the caller, so a bad first
    data line of a headerless file is still reported instead of being taken
    for preamble.
    """

    parts = line.split(",")
    return len(parts) > 1 and parts[0].strip().lstrip("+-").isdigit()


def iter_data_lines(
    lines: Iterable[str],
    header_tokens: frozenset[str] = HEADER_TOKENS,
) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, line)`` for the data section of an ECA&D text file.

    ECA&D files open with a free-text preamble followed by a column header
    line. Data also starts at the first line shaped like data, so files
    without a preamble or header are read from the top.
    """

    in_data = False
    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line:
            continue
        if in_data:
            if not _is_separator(line):
                yield line_number, line
            continue
        first_token = line.split(",", 1)[0].strip().upper()
        if first_token in header_tokens:
            in_data = True
        elif looks_like_data_line(line):
            in_data = True
            yield line_number, line


class MetricRecordReader:
    """Turn one metric file into a lazy stream of :class:`RawObservation`.

    Data lines carry either ``STAID, SOUID, DATE, VALUE, Q`` or
    ``SOUID, DATE, VALUE, Q``; in the latter form the station comes from
    ``station_id``. The reader is restartable: each :meth:`read` call starts
    from the beginning of the stream it is given and resets :attr:`stats`.
    """

    def __init__(
        self,
        metric: Metric,
        *,
        station_id: int | None = None,
        policy: MalformedPolicy | str = MalformedPolicy.SKIP,
        encoding: str = "utf-8",
        source_name: str | None = None,
    ) -> None:
        self.metric = metric
        self.station_id = station_id
        self.policy = MalformedPolicy(policy)
        self.encoding = encoding
        self.source_name = source_name or f"{metric.prefix}_STAID{station_id or 0:06d}.txt"
        self.stats = ReadStats()

    def read(self, stream: IO[bytes] | IO[str] | Iterable[str]) -> Iterator[RawObservation]:
        """Yield observations in file order.

        Raises:
            MalformedRecordError: Under the ``abort`` policy, on the first bad line.
            FileUnavailableError: When the underlying stream fails mid-read.
        """

        self.stats = ReadStats()
        lines = self._text_lines(stream)
        try:
            for line_number, line in iter_data_lines(lines):
                self.stats.lines_read += 1
                try:
                    observation = self.parse_line(line, line_number)
                except MalformedRecordError as error:
                    self._handle_malformed(error)
                    continue
                self.stats.observations += 1
                yield observation
        except (OSError, UnicodeDecodeError, zipfile.BadZipFile) as exc:
            raise FileUnavailableError(
                f"failed reading {self.source_name}: {exc}",
                station_id=self.station_id,
                metric=self.metric.value,
                path=self.source_name,
            ) from exc

    def parse_line(self, line: str, line_number: int = 0) -> RawObservation:
        """Parse a single data line."""

        parts = [part.strip() for part in line.split(",")]
        if len(parts) == 5:
            station_text, source_text, date_text, value_text, flag_text = parts
        elif len(parts) == 4:
            station_text = None
            source_text, date_text, value_text, flag_text = parts
        else:
            raise MalformedRecordError(
                f"expected 4 or 5 fields, found {len(parts)}", line_number, line, {"file": self.source_name}
            )

        try:
            station_id = int(station_text) if station_text is not None else self.station_id
            source_id = int(source_text)
            observed = _parse_date(date_text)
            raw_value = int(value_text)
            flag = EcadFlag.from_code(int(flag_text))
        except ValueError as exc:
            raise MalformedRecordError(str(exc), line_number, line, {"file": self.source_name}) from exc

        if station_id is None:
            raise MalformedRecordError(
                "line has no station identifier and none was configured", line_number, line, {"file": self.source_name}
            )
        if self.station_id is not None and station_id != self.station_id:
            raise MalformedRecordError(
                f"line belongs to station {station_id}, expected {self.station_id}",
                line_number,
                line,
                {"file": self.source_name},
            )

        if raw_value == MISSING_VALUE:
            flag = EcadFlag.MISSING

        return RawObservation(
            station_id=station_id,
            source_id=source_id,
            date=observed,
            raw_value=raw_value,
            quality_flag=flag,
            line_number=line_number,
        )

    def _handle_malformed(self, error: MalformedRecordError) -> None:
        if self.policy is MalformedPolicy.ABORT:
            raise error
        self.stats.skipped += 1
        self.stats.errors.append(error)
        logger.bind(station_id=self.station_id, error_code=error.error_code).warning(
            "Skipping malformed line",
            file=self.source_name,
            line_number=error.line_number,
            reason=error.message,
        )

    def _text_lines(self, stream: IO[bytes] | IO[str] | Iterable[str]) -> Iterable[str]:
        if isinstance(stream, io.TextIOBase) or not hasattr(stream, "read"):
            return stream
        if isinstance(stream.read(0), str):
            return stream
        return io.TextIOWrapper(stream, encoding=self.encoding, newline="")


def _parse_date(text: str) -> date:
    if len(text) != 8 or not text.isdigit():
        raise ValueError(f"invalid date '{text}', expected YYYYMMDD")
    return datetime.strptime(text, "%Y%m%d").date()


__all__ = [
    "MISSING_VALUE",
    "MalformedPolicy",
    "MetricRecordReader",
    "ReadStats",
    "iter_data_lines",
    "looks_like_data_line",
]
