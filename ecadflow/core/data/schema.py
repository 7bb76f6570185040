"""DuckDB schema for consolidated weather records."""

from __future__ import annotations

from collections.abc import Sequence  # noqa: TC003
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ecadflow.core.models import Metric

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class ColumnDef:
    """Represents a DuckDB table column definition."""

    name: str
    data_type: str
    constraints: Sequence[str] = ()

    def render(self) -> str:
        parts = [self.name, self.data_type, *self.constraints]
        return " ".join(parts)


@dataclass(frozen=True)
class TableSchema:
    """Utility wrapper describing a DuckDB table schema."""

    name: str
    columns: Sequence[ColumnDef]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def create_ddl(self) -> str:
        # no primary key: (station_id, date) is unique by construction
        column_defs: list[str] = [column.render() for column in self.columns]
        columns_sql = ",\n                ".join(column_defs)
        return f"""
            CREATE TABLE IF NOT EXISTS {self.name} (
                {columns_sql}
            )
            """.strip()

    def ensure(self, conn: DuckDBPyConnection) -> None:
        """Create the table on the provided connection if it does not exist."""

        conn.execute(self.create_ddl())


def _metric_columns() -> list[ColumnDef]:
    columns: list[ColumnDef] = []
    for metric in Metric:
        columns.append(ColumnDef(metric.value, "DOUBLE"))
        columns.append(ColumnDef(f"{metric.value}_flag", "UTINYINT"))
        columns.append(ColumnDef(f"{metric.value}_verdict", "VARCHAR"))
    return columns


WEATHER_RECORDS_TABLE = TableSchema(
    name="weather_records",
    columns=(
        ColumnDef("station_id", "INTEGER", ("NOT NULL",)),
        ColumnDef("station_name", "VARCHAR", ("NOT NULL",)),
        ColumnDef("date", "DATE", ("NOT NULL",)),
        ColumnDef("latitude", "DOUBLE", ("NOT NULL",)),
        ColumnDef("longitude", "DOUBLE", ("NOT NULL",)),
        *_metric_columns(),
        ColumnDef("temp_quality", "VARCHAR"),
        ColumnDef("precip_quality", "VARCHAR"),
        ColumnDef("wind_quality", "VARCHAR"),
    ),
)


__all__ = ["WEATHER_RECORDS_TABLE", "ColumnDef", "TableSchema"]
