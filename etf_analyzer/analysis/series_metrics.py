"""Risk metrics over return and price columns - volatility, Sharpe, drawdown."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from functools import partial
from typing import Callable, Sequence

import numpy as np

from etf_analyzer.engine.table import Table
from etf_analyzer.utils.logger import setup_logger
from etf_analyzer.utils.task_pool import PairTaskPool

logger = setup_logger("series_metrics")

TRADING_DAYS = 252


def _clean(values: Sequence[float] | np.ndarray) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    return arr[~np.isnan(arr)]


def volatility(values: Sequence[float] | np.ndarray) -> float:
    """Sample standard deviation (ddof=1); 0.0 with fewer than two values or a constant series."""
    arr = _clean(values)
    if arr.size < 2 or arr.min() == arr.max():
        return 0.0
    return float(np.std(arr, ddof=1))


def sharpe_ratio(values: Sequence[float] | np.ndarray, risk_free_rate: float = 0.0) -> float:
    """Annualized Sharpe ratio of daily returns against an annual risk-free rate."""
    arr = _clean(values)
    if arr.size == 0 or arr.min() == arr.max():
        return 0.0
    annual_return = float(arr.mean()) * TRADING_DAYS
    annual_vol = volatility(arr) * np.sqrt(TRADING_DAYS)
    if annual_vol == 0.0:
        return 0.0
    return float((annual_return - risk_free_rate) / annual_vol)


def max_drawdown(prices: Sequence[float] | np.ndarray) -> float:
    """Largest peak-to-trough decline as a fraction of the peak."""
    arr = _clean(prices)
    if arr.size == 0:
        return 0.0
    peaks = np.maximum.accumulate(arr)
    with np.errstate(divide="ignore", invalid="ignore"):
        drawdowns = np.where(peaks > 0, (peaks - arr) / peaks, 0.0)
    return float(max(drawdowns.max(), 0.0))


@dataclass(frozen=True)
class AnalysisMetrics:
    volatility: float
    sharpe_ratio: float
    max_drawdown: float

    def to_dict(self) -> dict:
        return asdict(self)


def compute_metrics(
    table: Table,
    returns_col: str,
    price_col: str | None = None,
    risk_free_rate: float = 0.0,
) -> AnalysisMetrics:
    """Volatility and Sharpe from *returns_col*, drawdown from *price_col*.

    Without a price column the drawdown is 0.0.
    """
    returns = table.numeric_column(returns_col).values
    drawdown = max_drawdown(table.numeric_column(price_col).values) if price_col else 0.0
    return AnalysisMetrics(
        volatility=volatility(returns),
        sharpe_ratio=sharpe_ratio(returns, risk_free_rate),
        max_drawdown=drawdown,
    )


def compare_columns(
    table: Table,
    columns: Sequence[str],
    metric: Callable[[np.ndarray], float],
    pool: PairTaskPool | None = None,
) -> list[float]:
    """Apply *metric* to each column on the task pool; results in column order."""
    series = [table.numeric_column(name).values for name in columns]
    tasks = [partial(metric, values) for values in series]
    results = (pool or PairTaskPool()).run(tasks)
    logger.debug("Computed %s for %d columns", getattr(metric, "__name__", "metric"), len(columns))
    return [float(r) for r in results]
