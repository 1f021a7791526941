"""Row selection by set membership."""

from __future__ import annotations

from typing import Iterable

from etf_analyzer.engine.schema import ColumnType
from etf_analyzer.engine.table import Table


def filter_in(
    table: Table, column: str, values: Iterable[str], case_insensitive: bool = False,
) -> Table:
    """Rows whose *column* value is in *values*. An empty *values* selects nothing."""
    table.column(column, ColumnType.STRING)
    wanted = {str(v) for v in values}
    series = table.frame[column]
    if case_insensitive:
        wanted = {v.upper() for v in wanted}
        series = series.map(lambda v: v.upper() if isinstance(v, str) else v)
    return table.take(series.isin(wanted).to_numpy(dtype=bool))


def filter_by_set(
    table: Table,
    column: str = "fund",
    allowed: Iterable[str] = (),
    case_insensitive: bool = True,
) -> Table:
    """Keep rows whose *column* value is in *allowed*.

    An empty allow-list means "all rows" and returns *table* itself. Matching
    uppercases both sides by default; the stored values are left untouched.
    A zero-row result is valid.
    """
    allowed = set(allowed)
    if not allowed:
        return table
    return filter_in(table, column, allowed, case_insensitive=case_insensitive)
