"""Unique vs overlapping assets across funds.

An asset is unique when exactly one distinct fund holds it and overlapping
when more than one does. Overlaps come in two shapes: collapsed (one row
per asset with the holding funds joined into one string) and expanded (one
row per holding row, with the asset's fund count attached).
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from etf_analyzer.engine.filters import filter_in
from etf_analyzer.engine.groupby import (
    GroupAggregate,
    aggregate,
    collect_unique_joined,
    count_distinct,
    first,
    group_by,
)
from etf_analyzer.engine.join import inner_join
from etf_analyzer.engine.sorting import SortMode, ordering_for, sort
from etf_analyzer.engine.table import Table

SYMBOL = "symbol"
NAME = "name"
WEIGHT = "weight"
FUND = "fund"
DISTINCT_COUNT = "distinct_count"
FUNDS_JOINED = "funds_joined"

UNIQUE_COLUMNS = [SYMBOL, NAME, WEIGHT, FUND]
COLLAPSED_COLUMNS = [SYMBOL, NAME, DISTINCT_COUNT, FUNDS_JOINED]
EXPANDED_COLUMNS = [SYMBOL, NAME, DISTINCT_COUNT, WEIGHT, FUND]


class OverlapShape(str, Enum):
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"

    @classmethod
    def parse(cls, value: str | OverlapShape | None) -> OverlapShape:
        if value is None:
            return cls.COLLAPSED
        if isinstance(value, OverlapShape):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(s.value for s in cls)
            raise ValueError(f"Unknown overlap shape '{value}' (choose from: {choices})") from None


def partition_symbols(aggregates: Sequence[GroupAggregate]) -> tuple[list[str], list[str]]:
    """Split symbol aggregates into (unique, overlapping) key lists."""
    unique = [a.key for a in aggregates if a.distinct_count == 1]
    overlap = [a.key for a in aggregates if a.distinct_count > 1]
    return unique, overlap


def unique_symbols(aggregates: Sequence[GroupAggregate]) -> list[str]:
    return partition_symbols(aggregates)[0]


def overlap_symbols(aggregates: Sequence[GroupAggregate]) -> list[str]:
    return partition_symbols(aggregates)[1]


def asset_counts(table: Table) -> Table:
    """One row per symbol: ``[symbol, name, distinct_count, funds_joined]``."""
    return aggregate(table, SYMBOL, [
        first(NAME),
        count_distinct(FUND, alias=DISTINCT_COUNT),
        collect_unique_joined(FUND, alias=FUNDS_JOINED),
    ])


def aggregate_assets(table: Table, sort_by: SortMode = SortMode.SYMBOL) -> Table:
    """Every asset with the number and list of funds holding it."""
    return sort(asset_counts(table), ordering_for(sort_by, SYMBOL, DISTINCT_COUNT))


def unique_assets(table: Table, sort_by: SortMode = SortMode.SYMBOL) -> Table:
    """Holding rows whose symbol appears in exactly one fund.

    Columns are ``[symbol, name, weight, fund]``. Every row has a fund count
    of one, so popularity ordering reduces to alphabetical.
    """
    table.require(*UNIQUE_COLUMNS)
    symbols = unique_symbols(group_by(table, SYMBOL, FUND, name_col=None))
    rows = filter_in(table, SYMBOL, symbols).select(UNIQUE_COLUMNS)
    return sort(rows, ordering_for(sort_by, SYMBOL))


def overlap_assets(
    table: Table,
    shape: OverlapShape = OverlapShape.COLLAPSED,
    sort_by: SortMode = SortMode.SYMBOL,
) -> Table:
    """Assets held by more than one fund, in the requested shape."""
    keys = ordering_for(sort_by, SYMBOL, DISTINCT_COUNT)

    if shape is OverlapShape.COLLAPSED:
        counts = asset_counts(table)
        overlapping = counts.take(counts.frame[DISTINCT_COUNT].to_numpy() > 1)
        return sort(overlapping.select(COLLAPSED_COLUMNS), keys)

    table.require(SYMBOL, NAME, WEIGHT, FUND)
    counts = aggregate(table, SYMBOL, [count_distinct(FUND, alias=DISTINCT_COUNT)])
    overlapping = counts.take(counts.frame[DISTINCT_COUNT].to_numpy() > 1)
    rows = filter_in(table, SYMBOL, overlapping.unique_values(SYMBOL))
    joined = inner_join(rows, overlapping, on=SYMBOL)
    return sort(joined.select(EXPANDED_COLUMNS), keys)
