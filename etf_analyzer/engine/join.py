"""Relational inner join."""

from __future__ import annotations

import numpy as np

from etf_analyzer.engine.schema import ColumnSpec, Schema
from etf_analyzer.engine.table import Table
from etf_analyzer.errors import JoinKeyMismatch

_LEFT_ROW = "__left_row"
_RIGHT_ROW = "__right_row"


def inner_join(left: Table, right: Table, on: str, suffix: str = "_right") -> Table:
    """Pair every left row with every right row sharing the *on* value.

    Rows without a match, and rows whose key is null, are dropped. Output
    follows left row order, then right row order within a fan-out. Right-hand
    non-key columns whose names clash with the left get *suffix* appended.
    """
    for side, table in (("left", left), ("right", right)):
        if on not in table.schema:
            raise JoinKeyMismatch(f"Join key '{on}' missing on {side} side")

    left_type, right_type = left.schema.dtype(on), right.schema.dtype(on)
    if left_type != right_type and not (left_type.is_numeric and right_type.is_numeric):
        raise JoinKeyMismatch(
            f"Join key '{on}' is {left_type.value} on the left but {right_type.value} on the right"
        )

    specs = list(left.schema.columns)
    for spec in right.schema.columns:
        if spec.name == on:
            continue
        name = spec.name + suffix if spec.name in left.schema else spec.name
        specs.append(ColumnSpec(name, spec.dtype))
    schema = Schema(tuple(specs))

    lf = left.frame[left.frame[on].notna()].assign(**{_LEFT_ROW: lambda f: np.arange(len(f))})
    rf = right.frame[right.frame[on].notna()].assign(**{_RIGHT_ROW: lambda f: np.arange(len(f))})
    merged = lf.merge(rf, on=on, how="inner", suffixes=("", suffix), sort=False)
    merged = merged.sort_values([_LEFT_ROW, _RIGHT_ROW], kind="stable")
    return Table(merged[list(schema.names)], schema)
