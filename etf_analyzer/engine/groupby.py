"""Group-by engine.

The same machinery answers "funds per asset" (key ``symbol``, members
``fund``) and "assets per fund" (key ``fund``, members ``symbol``); nothing
here is specific to either column.

Groups come out in first-seen key order and rows with a null key are
dropped. ``first`` is the value of the group's first row in table order,
so callers that need a particular pick should sort beforehand.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import pandas as pd

from etf_analyzer.engine.schema import ColumnSpec, ColumnType, Schema
from etf_analyzer.engine.table import Table


@dataclass(frozen=True)
class GroupAggregate:
    key: str
    first_name: str | None
    distinct_count: int
    members: tuple[str, ...]

    @property
    def member_set(self) -> frozenset[str]:
        return frozenset(self.members)


class ReducerKind(str, Enum):
    FIRST = "first"
    COUNT_DISTINCT = "count_distinct"
    COLLECT_UNIQUE_JOINED = "collect_unique_joined"


@dataclass(frozen=True)
class Reducer:
    kind: ReducerKind
    column: str
    alias: str
    separator: str = ", "


def first(value_col: str, alias: str | None = None) -> Reducer:
    return Reducer(ReducerKind.FIRST, value_col, alias or value_col)


def count_distinct(value_col: str, alias: str | None = None) -> Reducer:
    return Reducer(ReducerKind.COUNT_DISTINCT, value_col, alias or f"{value_col}_count")


def collect_unique_joined(
    value_col: str, separator: str = ", ", alias: str | None = None,
) -> Reducer:
    return Reducer(
        ReducerKind.COLLECT_UNIQUE_JOINED, value_col, alias or f"{value_col}_joined", separator,
    )


def _keyed_frame(table: Table, key_col: str) -> pd.DataFrame:
    table.require(key_col)
    frame = table.frame
    return frame[frame[key_col].notna()]


def _join_unique(values: pd.Series, separator: str) -> str:
    return separator.join(str(v) for v in pd.unique(values.dropna()))


def aggregate(table: Table, key_col: str, reducers: Sequence[Reducer]) -> Table:
    """Reduce *table* to one row per distinct *key_col* value.

    The result has the key column first, then one column per reducer named
    by its alias.
    """
    table.require(key_col, *(r.column for r in reducers))
    aliases = [key_col] + [r.alias for r in reducers]
    if len(set(aliases)) != len(aliases):
        raise ValueError(f"Reducer output names must be unique, got {aliases}")

    frame = _keyed_frame(table, key_col)
    keys = pd.unique(frame[key_col])
    grouped = frame.groupby(key_col, sort=False)

    data: dict[str, list] = {key_col: list(keys)}
    specs = [ColumnSpec(key_col, table.schema.dtype(key_col))]

    for reducer in reducers:
        if reducer.kind is ReducerKind.FIRST:
            firsts = frame.drop_duplicates(subset=[key_col], keep="first").set_index(key_col)
            values = firsts[reducer.column].reindex(keys)
            dtype = table.schema.dtype(reducer.column)
        elif reducer.kind is ReducerKind.COUNT_DISTINCT:
            values = grouped[reducer.column].nunique().reindex(keys)
            dtype = ColumnType.INTEGER
        else:
            values = grouped[reducer.column].agg(_join_unique, reducer.separator).reindex(keys)
            dtype = ColumnType.STRING
        data[reducer.alias] = values.tolist()
        specs.append(ColumnSpec(reducer.alias, dtype))

    return Table.from_columns(data, Schema(tuple(specs)))


def group_by(
    table: Table, key_col: str, member_col: str, name_col: str | None = "name",
) -> list[GroupAggregate]:
    """One ``GroupAggregate`` per distinct *key_col* value.

    ``members`` holds the distinct non-null *member_col* values in first-seen
    order and ``distinct_count`` is their number (not the row count).
    """
    table.require(key_col, member_col)
    if name_col is not None:
        table.require(name_col)

    frame = _keyed_frame(table, key_col)
    result = []
    for key, group in frame.groupby(key_col, sort=False):
        members = tuple(str(v) for v in pd.unique(group[member_col].dropna()))
        first_name = None
        if name_col is not None:
            value = group[name_col].iloc[0]
            first_name = None if pd.isna(value) else str(value)
        result.append(GroupAggregate(
            key=str(key),
            first_name=first_name,
            distinct_count=len(members),
            members=members,
        ))
    return result
