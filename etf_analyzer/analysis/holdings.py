"""Cross-fund holdings views built on the engine.

Per-fund summaries, pairwise fund similarity (Jaccard on symbol sets plus
weight overlap) and the symbol-by-fund weight matrix used for fund-level
correlation.
"""

from __future__ import annotations

from itertools import combinations

import numpy as np
import pandas as pd

from etf_analyzer.engine.groupby import group_by
from etf_analyzer.engine.schema import ColumnType, Schema
from etf_analyzer.engine.sorting import Direction, SortKey, sort
from etf_analyzer.engine.table import Table
from etf_analyzer.engine.weights import weights_to_numeric
from etf_analyzer.errors import TypeMismatch
from etf_analyzer.utils.logger import setup_logger

logger = setup_logger("holdings_analysis")

FUND_SUMMARY_SCHEMA = Schema.of([
    ("fund", ColumnType.STRING),
    ("holdings", ColumnType.INTEGER),
    ("distinct_assets", ColumnType.INTEGER),
    ("unique_assets", ColumnType.INTEGER),
    ("overlapping_assets", ColumnType.INTEGER),
    ("total_weight", ColumnType.FLOAT),
])

FUND_COMPARISON_SCHEMA = Schema.of([
    ("fund_a", ColumnType.STRING),
    ("fund_b", ColumnType.STRING),
    ("common_assets", ColumnType.INTEGER),
    ("jaccard", ColumnType.FLOAT),
    ("weighted_overlap", ColumnType.FLOAT),
])


def _numeric_weights(table: Table) -> pd.Series | None:
    """Weight column as floats, or None when some weight text is not a number."""
    try:
        return weights_to_numeric(table).frame["weight"]
    except TypeMismatch as exc:
        logger.warning("Weights are not numeric, weight totals unavailable: %s", exc)
        return None


def _symbol_weights(table: Table) -> dict[str, dict[str, float]]:
    """fund -> {symbol: summed weight}; empty when weights are not numeric."""
    weights = _numeric_weights(table)
    if weights is None:
        return {}
    frame = table.frame[["fund", "symbol"]].assign(weight=weights.to_numpy())
    frame = frame[frame["fund"].notna() & frame["symbol"].notna()]
    sums = frame.groupby(["fund", "symbol"], sort=False)["weight"].sum(min_count=1)
    out: dict[str, dict[str, float]] = {}
    for (fund, symbol), value in sums.items():
        out.setdefault(fund, {})[symbol] = float(value)
    return out


def list_funds(table: Table) -> list[str]:
    """Distinct fund symbols, sorted."""
    return sorted(table.unique_values("fund"))


def fund_summary(table: Table) -> Table:
    """One row per fund with holding, asset and weight totals."""
    table.require("fund", "symbol", "weight")
    asset_funds = {a.key: a.distinct_count for a in group_by(table, "symbol", "fund", name_col=None)}
    fund_assets = {a.key: a.members for a in group_by(table, "fund", "symbol", name_col=None)}
    row_counts = table.frame.groupby("fund", sort=False).size()

    weights = _numeric_weights(table)
    if weights is not None:
        totals = weights.groupby(table.frame["fund"], sort=False).sum(min_count=1)
    else:
        totals = pd.Series(dtype=float)

    rows = []
    for fund in list_funds(table):
        members = fund_assets.get(fund, ())
        unique = sum(1 for symbol in members if asset_funds.get(symbol) == 1)
        rows.append({
            "fund": fund,
            "holdings": int(row_counts.get(fund, 0)),
            "distinct_assets": len(members),
            "unique_assets": unique,
            "overlapping_assets": len(members) - unique,
            "total_weight": float(totals.get(fund, np.nan)),
        })

    if not rows:
        return Table.empty(FUND_SUMMARY_SCHEMA)
    return Table(pd.DataFrame(rows, columns=list(FUND_SUMMARY_SCHEMA.names)), FUND_SUMMARY_SCHEMA)


def compare_funds(table: Table) -> Table:
    """Similarity of every pair of funds, most similar first.

    ``jaccard`` is shared symbols over the union of both funds' symbols.
    ``weighted_overlap`` sums the smaller of the two weights over shared
    symbols and is NaN when weights are not numeric.
    """
    members = {a.key: a.member_set for a in group_by(table, "fund", "symbol", name_col=None)}
    weights = _symbol_weights(table)

    rows = []
    for fund_a, fund_b in combinations(sorted(members), 2):
        set_a, set_b = members[fund_a], members[fund_b]
        common = set_a & set_b
        union = set_a | set_b
        jaccard = len(common) / len(union) if union else 0.0
        if weights:
            wa, wb = weights.get(fund_a, {}), weights.get(fund_b, {})
            overlap = float(np.nansum([
                np.minimum(wa.get(s, np.nan), wb.get(s, np.nan)) for s in common
            ]))
        else:
            overlap = np.nan
        rows.append({
            "fund_a": fund_a,
            "fund_b": fund_b,
            "common_assets": len(common),
            "jaccard": jaccard,
            "weighted_overlap": overlap,
        })

    if not rows:
        return Table.empty(FUND_COMPARISON_SCHEMA)
    result = Table(pd.DataFrame(rows, columns=list(FUND_COMPARISON_SCHEMA.names)), FUND_COMPARISON_SCHEMA)
    return sort(result, [
        SortKey("jaccard", Direction.DESC),
        SortKey("fund_a"),
        SortKey("fund_b"),
    ])


def weight_matrix(table: Table) -> Table:
    """Numeric weight per symbol (rows) and fund (columns), NaN where not held.

    Raises:
        TypeMismatch: if a weight cannot be read as a number.
    """
    table.require("fund", "symbol", "weight")
    numeric = weights_to_numeric(table)
    frame = numeric.frame
    frame = frame[frame["fund"].notna() & frame["symbol"].notna()]
    pivot = (
        frame.groupby(["symbol", "fund"], sort=True)["weight"]
        .sum(min_count=1)
        .unstack("fund")
    )
    funds = list_funds(table)
    pivot = pivot.reindex(columns=funds)

    data: dict[str, list] = {"symbol": [str(s) for s in pivot.index]}
    specs = [("symbol", ColumnType.STRING)]
    for fund in funds:
        data[fund] = pivot[fund].astype(float).tolist()
        specs.append((fund, ColumnType.FLOAT))
    return Table.from_columns(data, Schema.of(specs))
