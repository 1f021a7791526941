"""Typed column schema for engine tables.

A Table's schema is resolved once, when the table is built. Later lookups go
through the schema, so a missing column surfaces as ``ColumnNotFound`` and a
wrongly-typed request as ``TypeMismatch`` rather than a pandas ``KeyError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

from etf_analyzer.errors import ColumnNotFound, TypeMismatch


class ColumnType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"

    @property
    def is_numeric(self) -> bool:
        return self in (ColumnType.INTEGER, ColumnType.FLOAT)


NUMERIC_TYPES: tuple[ColumnType, ...] = (ColumnType.INTEGER, ColumnType.FLOAT)


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    dtype: ColumnType


@dataclass(frozen=True)
class Schema:
    """Ordered, name-unique collection of column specs."""

    columns: tuple[ColumnSpec, ...]

    def __post_init__(self) -> None:
        names = [c.name for c in self.columns]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise ValueError(f"Duplicate column names: {', '.join(dupes)}")

    @classmethod
    def of(cls, specs: Mapping[str, ColumnType] | Iterable[tuple[str, ColumnType]]) -> Schema:
        items = specs.items() if isinstance(specs, Mapping) else specs
        return cls(tuple(ColumnSpec(name, ColumnType(dtype)) for name, dtype in items))

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self.columns)

    def __len__(self) -> int:
        return len(self.columns)

    def get(self, name: str) -> ColumnSpec:
        for spec in self.columns:
            if spec.name == name:
                return spec
        raise ColumnNotFound(name, self.names)

    def dtype(self, name: str) -> ColumnType:
        return self.get(name).dtype

    def select(self, names: Iterable[str]) -> Schema:
        return Schema(tuple(self.get(n) for n in names))

    def with_column(self, spec: ColumnSpec) -> Schema:
        """Replace a same-named column in place, or append a new one."""
        if spec.name in self:
            return Schema(tuple(spec if c.name == spec.name else c for c in self.columns))
        return Schema(self.columns + (spec,))

    def rename(self, mapping: Mapping[str, str]) -> Schema:
        for old in mapping:
            self.get(old)
        return Schema(tuple(ColumnSpec(mapping.get(c.name, c.name), c.dtype) for c in self.columns))


def _is_number(value: object) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def infer_column_type(series: pd.Series) -> ColumnType:
    """Pick the column type for a pandas series.

    Object columns holding only numbers become FLOAT; any other object
    column (including an all-null one) is STRING.
    """
    if pd.api.types.is_bool_dtype(series.dtype):
        return ColumnType.BOOLEAN
    if pd.api.types.is_integer_dtype(series.dtype):
        return ColumnType.INTEGER
    if pd.api.types.is_float_dtype(series.dtype):
        return ColumnType.FLOAT
    values = series.dropna()
    if len(values) and all(_is_number(v) for v in values):
        return ColumnType.FLOAT
    return ColumnType.STRING


def coerce_series(series: pd.Series, dtype: ColumnType) -> pd.Series:
    """Return a copy of *series* stored in the canonical form for *dtype*."""
    name = series.name
    if dtype is ColumnType.STRING:
        out = series.astype(object).map(
            lambda v: v if isinstance(v, str) else str(v), na_action="ignore",
        )
        return out.where(out.notna(), None).astype(object).rename(name)

    if dtype is ColumnType.FLOAT:
        try:
            return pd.to_numeric(series.astype(object), errors="raise").astype("float64").rename(name)
        except (TypeError, ValueError) as exc:
            raise TypeMismatch(f"Column '{name}' cannot be stored as float: {exc}") from exc

    if series.isna().any():
        raise TypeMismatch(f"Column '{name}' contains nulls and cannot be stored as {dtype.value}")

    if dtype is ColumnType.INTEGER:
        try:
            return series.astype("int64").rename(name)
        except (TypeError, ValueError) as exc:
            raise TypeMismatch(f"Column '{name}' cannot be stored as integer: {exc}") from exc

    return series.astype(bool).rename(name)
