"""Record store: immutable, column-oriented holdings tables."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Iterator, Mapping, Sequence

import numpy as np
import pandas as pd

from etf_analyzer.engine.schema import (
    NUMERIC_TYPES,
    ColumnSpec,
    ColumnType,
    Schema,
    coerce_series,
    infer_column_type,
)
from etf_analyzer.errors import TypeMismatch

HOLDINGS_COLUMNS: tuple[str, ...] = ("fund", "symbol", "name", "weight", "shares")
REQUIRED_HOLDINGS_COLUMNS: tuple[str, ...] = ("fund", "symbol", "name", "weight")
IDENTIFIER_COLUMNS: tuple[str, ...] = ("fund", "symbol")

_FIXED_HOLDINGS_TYPES = {
    "fund": ColumnType.STRING,
    "symbol": ColumnType.STRING,
    "name": ColumnType.STRING,
    "shares": ColumnType.FLOAT,
}


@dataclass(frozen=True)
class HoldingRecord:
    """One asset held by one fund."""

    fund: str
    symbol: str
    name: str
    weight: str | float | None = None
    shares: float | None = None


@dataclass(frozen=True, eq=False)
class ColumnView:
    """Read-only view of one column's values."""

    name: str
    dtype: ColumnType
    values: np.ndarray

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def is_null(self) -> np.ndarray:
        return pd.isna(self.values)

    def to_list(self) -> list:
        return [None if pd.isna(v) else v for v in self.values.tolist()]


def _scalar(value: Any) -> Any:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return value.item() if isinstance(value, np.generic) else value


def _read_only(values: np.ndarray) -> np.ndarray:
    values = np.array(values, copy=True)
    values.flags.writeable = False
    return values


class Table:
    """Ordered set of equal-length, typed columns backed by a DataFrame.

    Tables are values: every transformation returns a new Table. The
    underlying frame is exposed through ``frame`` for engine code and must
    be treated as read-only.
    """

    __slots__ = ("_frame", "_schema")

    def __init__(self, frame: pd.DataFrame, schema: Schema | None = None):
        names = [str(c) for c in frame.columns]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate column names: {names}")
        frame = frame.copy()
        frame.columns = names
        frame = frame.reset_index(drop=True)

        if schema is None:
            schema = Schema(tuple(ColumnSpec(n, infer_column_type(frame[n])) for n in names))
        elif schema.names != tuple(names):
            raise ValueError(
                f"Schema columns {list(schema.names)} do not match frame columns {names}"
            )

        data = {spec.name: coerce_series(frame[spec.name], spec.dtype) for spec in schema.columns}
        self._frame = pd.DataFrame(data, columns=list(schema.names), index=frame.index)
        self._schema = schema

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, schema: Schema | None = None) -> Table:
        return cls(frame, schema)

    @classmethod
    def from_columns(
        cls, columns: Mapping[str, Sequence[Any]], schema: Schema | None = None,
    ) -> Table:
        lengths = {name: len(values) for name, values in columns.items()}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"All columns must have equal length, got {lengths}")
        frame = pd.DataFrame({name: list(values) for name, values in columns.items()})
        return cls(frame, schema)

    @classmethod
    def empty(cls, schema: Schema) -> Table:
        return cls.from_columns({name: [] for name in schema.names}, schema)

    # ------------------------------------------------------------------
    # Shape and metadata
    # ------------------------------------------------------------------

    @property
    def schema(self) -> Schema:
        return self._schema

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame

    @property
    def column_names(self) -> tuple[str, ...]:
        return self._schema.names

    @property
    def height(self) -> int:
        return len(self._frame)

    @property
    def width(self) -> int:
        return len(self._schema)

    def __len__(self) -> int:
        return self.height

    def __repr__(self) -> str:
        return f"Table(rows={self.height}, columns={list(self.column_names)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def equals(self, other: Table) -> bool:
        return self._schema == other._schema and self._frame.equals(other._frame)

    def require(self, *names: str) -> None:
        """Raise ``ColumnNotFound`` for the first name missing from the table."""
        for name in names:
            self._schema.get(name)

    # ------------------------------------------------------------------
    # Column access
    # ------------------------------------------------------------------

    def column(
        self, name: str, dtype: ColumnType | Sequence[ColumnType] | None = None,
    ) -> ColumnView:
        spec = self._schema.get(name)
        if dtype is not None:
            allowed = (dtype,) if isinstance(dtype, ColumnType) else tuple(dtype)
            if spec.dtype not in allowed:
                expected = " or ".join(t.value for t in allowed)
                raise TypeMismatch(
                    f"Column '{name}' is {spec.dtype.value}, expected {expected}"
                )
        return ColumnView(name, spec.dtype, _read_only(self._frame[name].to_numpy()))

    def numeric_column(self, name: str) -> ColumnView:
        """Integer or float column as float values, nulls as NaN."""
        view = self.column(name, NUMERIC_TYPES)
        values = _read_only(view.values.astype("float64"))
        return ColumnView(name, ColumnType.FLOAT, values)

    def unique_values(self, name: str) -> list:
        """Distinct non-null values of a column in first-seen order."""
        self._schema.get(name)
        return [v.item() if isinstance(v, np.generic) else v
                for v in pd.unique(self._frame[name].dropna())]

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def select(self, names: Iterable[str]) -> Table:
        names = list(names)
        schema = self._schema.select(names)
        return Table(self._frame[names], schema)

    def take(self, mask: np.ndarray | pd.Series) -> Table:
        """Rows where *mask* is true, original order preserved."""
        mask = np.asarray(mask, dtype=bool)
        if len(mask) != self.height:
            raise ValueError(f"Mask has {len(mask)} entries, table has {self.height} rows")
        return Table(self._frame[mask], self._schema)

    def head(self, n: int = 5) -> Table:
        return Table(self._frame.head(n), self._schema)

    def with_column(
        self, name: str, values: Sequence[Any], dtype: ColumnType | None = None,
    ) -> Table:
        """Append a column, or replace a same-named one, returning a new Table."""
        if len(values) != self.height:
            raise ValueError(
                f"Column '{name}' has {len(values)} values, table has {self.height} rows"
            )
        series = pd.Series(list(values), name=name, index=self._frame.index)
        if dtype is None:
            dtype = infer_column_type(series)
        frame = self._frame.copy()
        frame[name] = series
        schema = self._schema.with_column(ColumnSpec(name, dtype))
        return Table(frame[list(schema.names)], schema)

    def rename(self, mapping: Mapping[str, str]) -> Table:
        schema = self._schema.rename(mapping)
        return Table(self._frame.rename(columns=dict(mapping)), schema)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_frame(self) -> pd.DataFrame:
        return self._frame.copy()

    def to_records(self) -> list[dict[str, Any]]:
        return [{k: _scalar(v) for k, v in r.items()} for r in self._frame.to_dict("records")]


def load(rows: Iterable[HoldingRecord | Mapping[str, Any]]) -> Table:
    """Build a holdings Table from records.

    Rows must carry a fund and a symbol. Duplicate (fund, symbol) pairs
    stay as separate rows. Extra mapping keys become extra columns.
    """
    records = [asdict(r) if isinstance(r, HoldingRecord) else dict(r) for r in rows]

    names = list(HOLDINGS_COLUMNS)
    for record in records:
        for key in record:
            if key not in names:
                names.append(key)

    frame = pd.DataFrame.from_records(records, columns=names)
    check_identifiers(frame)
    return Table(frame, holdings_schema(frame))


def check_identifiers(frame: pd.DataFrame) -> None:
    """Every holding needs a fund and a symbol.

    Raises:
        TypeMismatch: if either identifier column has a null.
    """
    for name in IDENTIFIER_COLUMNS:
        if name not in frame.columns:
            continue
        nulls = int(frame[name].isna().sum())
        if nulls:
            raise TypeMismatch(f"Column '{name}' has {nulls} null value(s); holdings need a {name}")


def holdings_schema(frame: pd.DataFrame) -> Schema:
    """Schema for a holdings frame: text identifiers, float shares, inferred weight."""
    specs = []
    for name in (str(c) for c in frame.columns):
        dtype = _FIXED_HOLDINGS_TYPES.get(name) or infer_column_type(frame[name])
        specs.append(ColumnSpec(name, dtype))
    return Schema(tuple(specs))
