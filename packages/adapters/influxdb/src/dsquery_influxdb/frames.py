"""Column-oriented frame data and its conversion into row records."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import pyarrow as pa

from dsquery.common.errors import FrameDecodeError

RowRecord = Dict[str, Any]

_ARROW_NAME_KEY = b"name"


@dataclass
class ColumnData:
    """Named columns plus the number of logical rows they describe."""

    names: List[str] = field(default_factory=list)
    columns: List[Sequence[Any]] = field(default_factory=list)
    row_count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.row_count == 0 or not self.columns


def field_names_from_schema(schema: Any) -> List[str]:
    """Extracts ``schema.fields[*].name`` in order, skipping malformed entries."""
    if not isinstance(schema, dict):
        return []
    fields = schema.get("fields")
    if not isinstance(fields, list):
        return []
    return [f["name"] for f in fields if isinstance(f, dict) and isinstance(f.get("name"), str)]


def resolve_column_names(schema: Any, column_count: int) -> List[str]:
    """Schema names for the leading columns, ``col<index>`` for the rest."""
    names = field_names_from_schema(schema)
    return [names[c] if c < len(names) else f"col{c}" for c in range(column_count)]


def matrix_to_columns(values: List[List[Any]], schema: Any) -> ColumnData:
    """Wraps a column-major ``values[c][r]`` matrix; the first column sets the row count."""
    if not values or not values[0]:
        return ColumnData()
    return ColumnData(
        names=resolve_column_names(schema, len(values)),
        columns=values,
        row_count=len(values[0]),
    )


def _arrow_field_name(arrow_field: pa.Field) -> str:
    metadata = arrow_field.metadata or {}
    if _ARROW_NAME_KEY in metadata:
        return metadata[_ARROW_NAME_KEY].decode("utf-8")
    return arrow_field.name


def arrow_table_to_columns(table: pa.Table) -> ColumnData:
    return ColumnData(
        names=[_arrow_field_name(f) for f in table.schema],
        columns=[table.column(i).to_pylist() for i in range(table.num_columns)],
        row_count=table.num_rows,
    )


def materialize_rows(data: ColumnData) -> List[RowRecord]:
    """Turns column data into one record per row, preserving row order.

    Raises:
        FrameDecodeError: A column holds fewer values than the row count.
    """
    if data.is_empty:
        return []

    for name, column in zip(data.names, data.columns):
        if len(column) < data.row_count:
            raise FrameDecodeError(
                f"column '{name}' has {len(column)} values, expected {data.row_count}",
                details={"column": name, "length": len(column), "row_count": data.row_count},
            )

    return [
        {name: column[r] for name, column in zip(data.names, data.columns)}
        for r in range(data.row_count)
    ]
