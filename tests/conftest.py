"""Shared pytest fixtures for the ETF Analyzer test suite.

Provides small in-memory holdings tables, numeric series tables and
on-disk holdings directories. Nothing here touches the network.
"""

import numpy as np
import pytest

from etf_analyzer.engine.table import HoldingRecord, Table, load


# ---------------------------------------------------------------------------
# 1. Holdings tables
# ---------------------------------------------------------------------------

@pytest.fixture
def three_row_holdings():
    """SPY and QQQ both hold AAPL; only SPY holds MSFT."""
    return load([
        HoldingRecord("SPY", "AAPL", "Apple Inc", 7.0, 100.0),
        HoldingRecord("QQQ", "AAPL", "Apple Inc", 9.0, 120.0),
        HoldingRecord("SPY", "MSFT", "Microsoft Corp", 6.5, 80.0),
    ])


@pytest.fixture
def holdings():
    """Three funds with a mix of unique and shared symbols.

    AAPL: SPY, QQQ, VTI | MSFT: SPY, QQQ | NVDA: QQQ | XOM: SPY | BRK.B: VTI
    """
    return load([
        {"fund": "SPY", "symbol": "AAPL", "name": "Apple Inc", "weight": 7.0, "shares": 10.0},
        {"fund": "SPY", "symbol": "MSFT", "name": "Microsoft Corp", "weight": 6.0, "shares": 8.0},
        {"fund": "SPY", "symbol": "XOM", "name": "Exxon Mobil", "weight": 1.0, "shares": 5.0},
        {"fund": "QQQ", "symbol": "AAPL", "name": "Apple Inc", "weight": 9.0, "shares": 12.0},
        {"fund": "QQQ", "symbol": "MSFT", "name": "Microsoft Corp", "weight": 8.0, "shares": 11.0},
        {"fund": "QQQ", "symbol": "NVDA", "name": "NVIDIA Corp", "weight": 5.0, "shares": 4.0},
        {"fund": "VTI", "symbol": "AAPL", "name": "Apple Inc", "weight": 6.0, "shares": 20.0},
        {"fund": "VTI", "symbol": "BRK.B", "name": "Berkshire Hathaway", "weight": 1.5, "shares": 3.0},
    ])


@pytest.fixture
def text_weight_holdings():
    """Same shape as ``three_row_holdings`` but weights delivered as text."""
    return load([
        {"fund": "SPY", "symbol": "AAPL", "name": "Apple Inc", "weight": "7.00%"},
        {"fund": "QQQ", "symbol": "AAPL", "name": "Apple Inc", "weight": "9.00%"},
        {"fund": "SPY", "symbol": "MSFT", "name": "Microsoft Corp", "weight": "6.50%"},
    ])


# ---------------------------------------------------------------------------
# 2. Numeric series
# ---------------------------------------------------------------------------

@pytest.fixture
def linear_series():
    """A=[1..5], B=2A, C=6-A: perfect positive and negative correlation."""
    a = [1.0, 2.0, 3.0, 4.0, 5.0]
    return Table.from_columns({
        "A": a,
        "B": [2 * v for v in a],
        "C": [6 - v for v in a],
    })


@pytest.fixture
def random_returns():
    """Four daily return series with 252 observations, seeded at 42."""
    rng = np.random.default_rng(42)
    base = rng.normal(0.0004, 0.015, 252)
    return Table.from_columns({
        "SPY": base.tolist(),
        "QQQ": (base * 1.2 + rng.normal(0, 0.005, 252)).tolist(),
        "TLT": (-0.3 * base + rng.normal(0.0001, 0.01, 252)).tolist(),
        "GLD": rng.normal(0.0002, 0.012, 252).tolist(),
    })


# ---------------------------------------------------------------------------
# 3. Holdings files on disk
# ---------------------------------------------------------------------------

SPY_CSV = """No.,Symbol,Name,% Weight,Shares
1,AAPL,Apple Inc,7.00%,"1,000"
2,MSFT,Microsoft Corp,6.50%,900
3,,Cash & Other,0.50%,
"""

QQQ_CSV = """No.,Symbol,Name,% Weight,Shares
1,AAPL,Apple Inc,9.00%,500
2,NVDA,NVIDIA Corp,5.00%,300
3,,US Dollar,0.25%,
4,,Futures,0.10%,
"""


@pytest.fixture
def holdings_dir(tmp_path):
    """Directory with spy- and qqq- holdings files plus an unrelated file."""
    (tmp_path / "spy-etf-holdings.csv").write_text(SPY_CSV)
    (tmp_path / "qqq-etf-holdings.csv").write_text(QQQ_CSV)
    (tmp_path / "notes.txt").write_text("not a holdings file")
    return tmp_path
