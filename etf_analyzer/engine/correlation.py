"""Pairwise Pearson correlation over named numeric columns.

Only the n(n-1)/2 pairs above the diagonal are computed. Each pair is an
independent task that reads two read-only column arrays and returns
``(i, j, r)``; the matrix is filled in a single pass once every task has
finished, writing each coefficient to both mirrored cells.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from typing import Iterator, Sequence

import numpy as np
import pandas as pd

from etf_analyzer.engine.schema import ColumnType, Schema
from etf_analyzer.engine.table import Table
from etf_analyzer.errors import ColumnNotFound, EmptyInput
from etf_analyzer.utils.task_pool import PairTaskPool


def pearson(x: Sequence[float] | np.ndarray, y: Sequence[float] | np.ndarray) -> float:
    """Pearson correlation coefficient of two series.

    Rows where either value is NaN are left out. Returns ``0.0`` instead of
    raising or producing NaN when the series differ in length, nothing is
    left after dropping nulls, either series has zero variance, or the
    deviations overflow.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if x.ndim != 1 or x.shape != y.shape:
        return 0.0

    keep = ~(np.isnan(x) | np.isnan(y))
    x, y = x[keep], y[keep]
    if x.size == 0 or x.min() == x.max() or y.min() == y.max():
        return 0.0

    with np.errstate(over="ignore", invalid="ignore"):
        dx = x - x.mean()
        dy = y - y.mean()
    # r is scale-invariant; rescaling keeps the dot products finite
    scale_x = np.abs(dx).max()
    scale_y = np.abs(dy).max()
    if not (np.isfinite(scale_x) and np.isfinite(scale_y)) or scale_x == 0.0 or scale_y == 0.0:
        return 0.0
    dx = dx / scale_x
    dy = dy / scale_y
    var_x = float(np.dot(dx, dx))
    var_y = float(np.dot(dy, dy))
    if var_x == 0.0 or var_y == 0.0:
        return 0.0

    r = float(np.dot(dx, dy) / np.sqrt(var_x * var_y))
    if not np.isfinite(r):
        return 0.0
    return float(np.clip(r, -1.0, 1.0))


def _pair_task(i: int, j: int, x: np.ndarray, y: np.ndarray) -> tuple[int, int, float]:
    return i, j, pearson(x, y)


@dataclass(frozen=True, eq=False)
class CorrelationMatrix:
    """Symmetric correlation matrix with a unit diagonal."""

    labels: tuple[str, ...]
    values: np.ndarray

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=float, copy=True)
        n = len(self.labels)
        if values.shape != (n, n):
            raise ValueError(f"Matrix shape {values.shape} does not match {n} labels")
        values.flags.writeable = False
        object.__setattr__(self, "values", values)

    @property
    def size(self) -> int:
        return len(self.labels)

    def __getitem__(self, idx: tuple[int, int]) -> float:
        i, j = idx
        return float(self.values[i, j])

    def index_of(self, label: str) -> int:
        try:
            return self.labels.index(label)
        except ValueError:
            raise ColumnNotFound(label, self.labels) from None

    def get(self, a: str, b: str) -> float:
        return self[self.index_of(a), self.index_of(b)]

    def pairs(self) -> Iterator[tuple[str, str, float]]:
        """Each unordered pair once, upper triangle in label order."""
        for i in range(self.size):
            for j in range(i + 1, self.size):
                yield self.labels[i], self.labels[j], float(self.values[i, j])

    def high_correlation_pairs(self, threshold: float = 0.7) -> list[dict]:
        """Pairs with ``|r| > threshold``, strongest first."""
        high = [
            {"pair": [a, b], "correlation": round(r, 4)}
            for a, b, r in self.pairs()
            if abs(r) > threshold
        ]
        high.sort(key=lambda x: abs(x["correlation"]), reverse=True)
        return high

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values.copy(), index=list(self.labels), columns=list(self.labels))

    def to_table(self, label_col: str = "column") -> Table:
        """Tabular form for export: a label column followed by one column per label."""
        data: dict[str, list] = {label_col: list(self.labels)}
        specs = [(label_col, ColumnType.STRING)]
        for j, label in enumerate(self.labels):
            data[label] = self.values[:, j].tolist()
            specs.append((label, ColumnType.FLOAT))
        return Table.from_columns(data, Schema.of(specs))


def correlation_matrix(
    table: Table, columns: Sequence[str], pool: PairTaskPool | None = None,
) -> CorrelationMatrix:
    """Correlation of every pair of *columns* in *table*.

    Raises:
        EmptyInput: if *columns* is empty.
        ColumnNotFound: if a column is absent.
        TypeMismatch: if a column is not integer or float.
    """
    columns = list(columns)
    if not columns:
        raise EmptyInput("Correlation requires at least one column")

    series = [table.numeric_column(name).values for name in columns]
    n = len(columns)
    tasks = [
        partial(_pair_task, i, j, series[i], series[j])
        for i in range(n)
        for j in range(i + 1, n)
    ]

    results = (pool or PairTaskPool()).run(tasks)

    matrix = np.eye(n)
    for i, j, r in results:
        matrix[i, j] = r
        matrix[j, i] = r
    return CorrelationMatrix(tuple(columns), matrix)
