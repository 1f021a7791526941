"""Plain-text rendering of engine results for the terminal."""

from __future__ import annotations

import numpy as np
import pandas as pd

from etf_analyzer.engine.correlation import CorrelationMatrix
from etf_analyzer.engine.table import Table

PREVIEW_ROWS = 5


def fmt_pct(val, precision: int = 2) -> str:
    """Fraction as a percentage: ``0.125`` -> ``"12.50%"``."""
    if val is None:
        return "N/A"
    try:
        val = float(val)
    except (TypeError, ValueError):
        return str(val)
    if np.isnan(val):
        return "N/A"
    return f"{val * 100:.{precision}f}%"


def fmt_ratio(val, precision: int = 4) -> str:
    if val is None:
        return "N/A"
    try:
        val = float(val)
    except (TypeError, ValueError):
        return str(val)
    if np.isnan(val):
        return "N/A"
    return f"{val:.{precision}f}"


def _render(frame: pd.DataFrame, limit: int | None = None) -> str:
    if frame.empty:
        return "  (no rows)"
    if limit is not None:
        frame = frame.head(limit)
    return frame.to_string(index=False, na_rep="-")


def describe_table(table: Table, rows: int = PREVIEW_ROWS) -> str:
    lines = [
        "Table Summary:",
        f"  Shape: ({table.height}, {table.width})",
        f"  Columns: {', '.join(table.column_names)}",
        "",
        f"First {rows} rows:",
        _render(table.frame, rows),
    ]
    return "\n".join(lines)


def summarize_assets(table: Table, limit: int | None = None) -> str:
    """Aggregated assets: one line per symbol with the funds holding it."""
    header = f"Assets: {table.height} distinct symbols"
    return f"{header}\n{_render(table.frame, limit)}"


def summarize_unique(table: Table, limit: int | None = None) -> str:
    funds = len(table.unique_values("fund")) if "fund" in table.schema else 0
    header = f"Unique assets: {table.height} rows held by a single fund ({funds} funds)"
    return f"{header}\n{_render(table.frame, limit)}"


def summarize_overlap(table: Table, limit: int | None = None) -> str:
    symbols = len(table.unique_values("symbol")) if "symbol" in table.schema else 0
    header = f"Overlapping assets: {symbols} symbols held by more than one fund"
    if table.height != symbols:
        header += f" ({table.height} holding rows)"
    return f"{header}\n{_render(table.frame, limit)}"


def format_fund_summary(table: Table) -> str:
    frame = table.to_frame()
    if "total_weight" in frame:
        frame["total_weight"] = frame["total_weight"].map(lambda v: fmt_ratio(v, 2))
    return f"Funds: {table.height}\n{_render(frame)}"


def format_fund_comparison(table: Table, limit: int | None = None) -> str:
    frame = table.to_frame()
    for col in ("jaccard", "weighted_overlap"):
        if col in frame:
            frame[col] = frame[col].map(fmt_ratio)
    return f"Fund overlap ({table.height} pairs):\n{_render(frame, limit)}"


def format_correlation_matrix(matrix: CorrelationMatrix) -> str:
    """Fixed-width matrix: 10-wide right-aligned labels and 4-decimal values."""
    lines = ["", "Correlation Matrix:"]
    lines.append(f"{'':>10}" + "".join(f"{label:>10}" for label in matrix.labels))
    for i, label in enumerate(matrix.labels):
        values = "".join(f"{matrix[i, j]:>10.4f}" for j in range(matrix.size))
        lines.append(f"{label:>10}{values}")
    return "\n".join(lines) + "\n"


def format_high_correlations(pairs: list[dict]) -> str:
    if not pairs:
        return "No highly correlated pairs."
    lines = ["Highly correlated pairs:"]
    for item in pairs:
        a, b = item["pair"]
        lines.append(f"  {a} / {b}: {item['correlation']:+.4f}")
    return "\n".join(lines)
