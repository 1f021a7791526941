"""Deterministic multi-key sorting."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from etf_analyzer.engine.table import Table


class Direction(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortKey:
    column: str
    direction: Direction = Direction.ASC


class SortMode(str, Enum):
    """How reporting queries order their output."""

    SYMBOL = "symbol"
    COUNT = "count"

    @classmethod
    def parse(cls, value: str | SortMode | None) -> SortMode:
        if value is None:
            return cls.SYMBOL
        if isinstance(value, SortMode):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown sort mode '{value}' (choose from: {choices})") from None


def alphabetical(key: str = "symbol") -> list[SortKey]:
    return [SortKey(key, Direction.ASC)]


def by_popularity(count_col: str, key: str = "symbol") -> list[SortKey]:
    return [SortKey(count_col, Direction.DESC), SortKey(key, Direction.ASC)]


def ordering_for(mode: SortMode, key: str = "symbol", count_col: str | None = None) -> list[SortKey]:
    """Sort keys for *mode*; popularity without a count column is alphabetical."""
    if mode is SortMode.COUNT and count_col is not None:
        return by_popularity(count_col, key)
    return alphabetical(key)


def sort(table: Table, keys: Sequence[SortKey]) -> Table:
    """Stable sort on *keys* in priority order, nulls last.

    Rows that tie on every key keep their input order.
    """
    keys = list(keys)
    if not keys:
        return table
    table.require(*(k.column for k in keys))
    frame = table.frame.sort_values(
        by=[k.column for k in keys],
        ascending=[k.direction is Direction.ASC for k in keys],
        kind="stable",
        na_position="last",
    )
    return Table(frame, table.schema)
