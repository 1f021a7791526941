"""Fund portfolio with weights."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

import numpy as np

from etf_analyzer.engine.table import Table

WEIGHT_TOLERANCE = 1e-6


def _equal_weights(n: int) -> tuple[float, ...]:
    return tuple([1.0 / n] * n) if n else ()


@dataclass(frozen=True)
class Portfolio:
    """A set of funds and the fraction of capital held in each.

    ``data`` optionally carries a table of per-fund series (for example
    daily returns, one column per fund) for metrics and correlation.
    """

    funds: tuple[str, ...]
    weights: tuple[float, ...]
    data: Table | None = field(default=None, compare=False)

    @classmethod
    def equal_weight(cls, funds: Sequence[str]) -> Portfolio:
        funds = tuple(funds)
        return cls(funds, _equal_weights(len(funds)))

    @classmethod
    def with_weights(cls, funds: Sequence[str], weights: Sequence[float]) -> Portfolio:
        funds, weights = tuple(funds), tuple(float(w) for w in weights)
        if len(funds) != len(weights):
            raise ValueError("Number of funds must match number of weights")
        total = sum(weights)
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ValueError(f"Weights must sum to 1.0, got {total}")
        return cls(funds, weights)

    def load_data(self, data: Table) -> Portfolio:
        return replace(self, data=data)

    def portfolio_return(self, returns: Sequence[float]) -> float:
        """Weighted sum of per-fund returns, given in fund order."""
        if len(returns) != len(self.weights):
            raise ValueError("Returns length must match weights length")
        return float(np.dot(np.asarray(returns, dtype=float), np.asarray(self.weights)))

    def return_series(self) -> np.ndarray:
        """Portfolio return for each row of ``data``, one column per fund.

        Rows missing a value for any fund are skipped rather than read as a
        zero return.
        """
        if self.data is None:
            raise ValueError("No data loaded; call load_data first")
        if not self.funds:
            return np.empty(0)
        matrix = np.column_stack([self.data.numeric_column(fund).values for fund in self.funds])
        complete = ~np.isnan(matrix).any(axis=1)
        return matrix[complete] @ np.asarray(self.weights)

    def rebalance_equal(self) -> Portfolio:
        return replace(self, weights=_equal_weights(len(self.funds)))

    def summary(self) -> str:
        lines = ["Portfolio Summary:", f"ETFs: {len(self.funds)}"]
        lines += [f"  {fund} - {weight * 100:.2f}%" for fund, weight in zip(self.funds, self.weights)]
        return "\n".join(lines) + "\n"
