"""Tests for etf_analyzer.engine.correlation -- Pearson and the pairwise matrix."""

from unittest.mock import patch

import numpy as np
import pytest
from scipy.stats import pearsonr

from etf_analyzer.engine.correlation import CorrelationMatrix, correlation_matrix, pearson
from etf_analyzer.engine.table import Table
from etf_analyzer.errors import ColumnNotFound, EmptyInput, TypeMismatch
from etf_analyzer.utils.task_pool import PairTaskPool


# ---------------------------------------------------------------------------
# pearson
# ---------------------------------------------------------------------------

class TestPearson:

    def test_perfect_positive_and_negative(self):
        a = [1.0, 2.0, 3.0, 4.0, 5.0]
        assert pearson(a, [2 * v for v in a]) == pytest.approx(1.0)
        assert pearson(a, [6 - v for v in a]) == pytest.approx(-1.0)

    def test_matches_scipy(self, random_returns):
        x = random_returns.numeric_column("SPY").values
        y = random_returns.numeric_column("TLT").values
        expected, _ = pearsonr(x, y)
        assert pearson(x, y) == pytest.approx(expected, abs=1e-10)

    def test_zero_variance_returns_zero(self):
        assert pearson([1.0, 1.0, 1.0], [1.0, 2.0, 3.0]) == 0.0
        assert pearson([0.1] * 50, np.arange(50.0)) == 0.0

    def test_length_mismatch_returns_zero(self):
        assert pearson([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_empty_returns_zero(self):
        assert pearson([], []) == 0.0

    def test_nan_rows_dropped_pairwise(self):
        x = [1.0, 2.0, np.nan, 4.0]
        y = [2.0, 4.0, 100.0, 8.0]
        assert pearson(x, y) == pytest.approx(1.0)

    def test_bounded(self, random_returns):
        x = random_returns.numeric_column("SPY").values
        assert -1.0 <= pearson(x, x * 3.0 + 1.0) <= 1.0

    def test_large_magnitudes_do_not_overflow(self):
        x = [1e200, 2e200, 3e200]
        assert pearson(x, x) == pytest.approx(1.0)
        assert pearson(x, [3e200, 2e200, 1e200]) == pytest.approx(-1.0)

    def test_overflowing_mean_returns_zero(self):
        assert pearson([1e308, 1.5e308, 1e308], [1.0, 2.0, 3.0]) == 0.0


# ---------------------------------------------------------------------------
# correlation_matrix
# ---------------------------------------------------------------------------

class TestCorrelationMatrix:

    def test_linear_example(self, linear_series):
        m = correlation_matrix(linear_series, ["A", "B", "C"])
        assert m.get("A", "B") == pytest.approx(1.0)
        assert m.get("A", "C") == pytest.approx(-1.0)
        assert m.get("A", "A") == 1.0

    def test_symmetric_with_unit_diagonal(self, random_returns):
        cols = list(random_returns.column_names)
        m = correlation_matrix(random_returns, cols)
        assert np.array_equal(m.values, m.values.T)
        assert np.all(np.diag(m.values) == 1.0)
        assert np.all(np.abs(m.values) <= 1.0)

    def test_matches_pandas(self, random_returns):
        cols = list(random_returns.column_names)
        m = correlation_matrix(random_returns, cols, PairTaskPool(max_workers=4))
        expected = random_returns.frame[cols].corr().to_numpy()
        assert m.values == pytest.approx(expected, abs=1e-10)

    def test_single_column(self, linear_series):
        m = correlation_matrix(linear_series, ["A"])
        assert m.values.tolist() == [[1.0]]

    def test_empty_columns(self, linear_series):
        with pytest.raises(EmptyInput):
            correlation_matrix(linear_series, [])

    def test_missing_column(self, linear_series):
        with pytest.raises(ColumnNotFound):
            correlation_matrix(linear_series, ["A", "Z"])

    def test_string_column_rejected(self, three_row_holdings):
        with pytest.raises(TypeMismatch):
            correlation_matrix(three_row_holdings, ["weight", "symbol"])

    def test_integer_columns_accepted(self):
        t = Table.from_columns({"x": [1, 2, 3], "y": [3, 2, 1]})
        assert correlation_matrix(t, ["x", "y"]).get("x", "y") == pytest.approx(-1.0)

    def test_sequential_matches_parallel(self, random_returns):
        cols = list(random_returns.column_names)
        sequential = correlation_matrix(random_returns, cols, PairTaskPool(max_workers=1))
        parallel = correlation_matrix(random_returns, cols, PairTaskPool(max_workers=8))
        assert np.array_equal(sequential.values, parallel.values)

    def test_pool_failure_falls_back_to_sequential(self, random_returns):
        cols = list(random_returns.column_names)
        expected = correlation_matrix(random_returns, cols, PairTaskPool(max_workers=1))
        pool = PairTaskPool(max_workers=4)
        with patch(
            "etf_analyzer.utils.task_pool.ThreadPoolExecutor.submit",
            side_effect=RuntimeError("can't start new thread"),
        ):
            result = correlation_matrix(random_returns, cols, pool)
        assert pool.last_run_sequential
        assert np.array_equal(result.values, expected.values)


# ---------------------------------------------------------------------------
# CorrelationMatrix helpers
# ---------------------------------------------------------------------------

class TestMatrixHelpers:

    def test_values_read_only(self, linear_series):
        m = correlation_matrix(linear_series, ["A", "B"])
        with pytest.raises(ValueError):
            m.values[0, 1] = 0.0

    def test_shape_validation(self):
        with pytest.raises(ValueError):
            CorrelationMatrix(("A", "B"), np.eye(3))

    def test_high_correlation_pairs(self, linear_series):
        m = correlation_matrix(linear_series, ["A", "B", "C"])
        pairs = m.high_correlation_pairs(0.7)
        assert len(pairs) == 3
        assert {tuple(p["pair"]) for p in pairs} == {("A", "B"), ("A", "C"), ("B", "C")}
        assert all(abs(p["correlation"]) == pytest.approx(1.0) for p in pairs)

    def test_to_table(self, linear_series):
        t = correlation_matrix(linear_series, ["A", "C"]).to_table()
        assert t.column_names == ("column", "A", "C")
        assert t.column("column").to_list() == ["A", "C"]
        assert t.numeric_column("C").values.tolist() == pytest.approx([-1.0, 1.0])

    def test_pairs_upper_triangle(self, linear_series):
        m = correlation_matrix(linear_series, ["A", "B", "C"])
        assert [(a, b) for a, b, _ in m.pairs()] == [("A", "B"), ("A", "C"), ("B", "C")]
