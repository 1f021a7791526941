"""Weight column handling.

Loaders deliver weights either as numbers or as text such as ``"1.25%"``.
The kind is read from the column's declared type; converting between the
two is always an explicit call.
"""

from __future__ import annotations

import math
from enum import Enum

from etf_analyzer.engine.schema import ColumnType
from etf_analyzer.engine.table import Table
from etf_analyzer.errors import TypeMismatch


class WeightKind(str, Enum):
    NUMERIC = "numeric"
    TEXT = "text"


def weight_kind(table: Table, column: str = "weight") -> WeightKind:
    dtype = table.schema.dtype(column)
    if dtype.is_numeric:
        return WeightKind.NUMERIC
    if dtype is ColumnType.STRING:
        return WeightKind.TEXT
    raise TypeMismatch(f"Column '{column}' is {dtype.value}, not a weight column")


def parse_weight_text(text: str) -> float | None:
    """Parse ``"1,234.5"``, ``"1.25%"`` or ``" 3 "``; blank text is null."""
    cleaned = text.strip().replace(",", "")
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1].strip()
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        raise TypeMismatch(f"Cannot interpret weight {text!r} as a number") from None


def weights_to_numeric(table: Table, column: str = "weight") -> Table:
    """Return *table* with the weight column as FLOAT."""
    if weight_kind(table, column) is WeightKind.NUMERIC:
        if table.schema.dtype(column) is ColumnType.FLOAT:
            return table
        return table.with_column(column, table.numeric_column(column).values, ColumnType.FLOAT)

    values = [None if v is None else parse_weight_text(v)
              for v in table.column(column).to_list()]
    return table.with_column(column, values, ColumnType.FLOAT)


def weights_to_text(table: Table, column: str = "weight", precision: int = 2) -> Table:
    """Return *table* with the weight column rendered as percent text."""
    if weight_kind(table, column) is WeightKind.TEXT:
        return table
    values = [
        None if v is None or math.isnan(v) else f"{v:.{precision}f}%"
        for v in table.numeric_column(column).values.tolist()
    ]
    return table.with_column(column, values, ColumnType.STRING)
