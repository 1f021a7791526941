"""Tests for etf_analyzer.analysis.holdings -- fund summaries, comparisons, weight matrix."""

import math

import pytest

from etf_analyzer.analysis.holdings import compare_funds, fund_summary, list_funds, weight_matrix
from etf_analyzer.engine.filters import filter_by_set
from etf_analyzer.engine.table import load
from etf_analyzer.errors import TypeMismatch


@pytest.fixture
def unparseable_weights():
    return load([
        {"fund": "SPY", "symbol": "AAPL", "name": "Apple Inc", "weight": "n/a"},
        {"fund": "QQQ", "symbol": "AAPL", "name": "Apple Inc", "weight": "9.0%"},
    ])


class TestListFunds:

    def test_sorted_distinct(self, holdings):
        assert list_funds(holdings) == ["QQQ", "SPY", "VTI"]


class TestFundSummary:

    def test_counts(self, holdings):
        rows = {r["fund"]: r for r in fund_summary(holdings).to_records()}
        assert list(rows) == ["QQQ", "SPY", "VTI"]
        assert rows["SPY"] == {
            "fund": "SPY", "holdings": 3, "distinct_assets": 3,
            "unique_assets": 1, "overlapping_assets": 2, "total_weight": 14.0,
        }
        assert rows["VTI"]["total_weight"] == pytest.approx(7.5)
        assert rows["VTI"]["overlapping_assets"] == 1

    def test_text_weights_are_summed(self, text_weight_holdings):
        rows = {r["fund"]: r for r in fund_summary(text_weight_holdings).to_records()}
        assert rows["SPY"]["total_weight"] == pytest.approx(13.5)

    def test_unparseable_weights_give_no_total(self, unparseable_weights):
        rows = fund_summary(unparseable_weights).to_records()
        assert all(r["total_weight"] is None for r in rows)

    def test_empty_table(self, holdings):
        empty = filter_by_set(holdings, "fund", ["IWM"])
        assert fund_summary(empty).height == 0


class TestCompareFunds:

    def test_pairs_sorted_by_jaccard(self, holdings):
        rows = compare_funds(holdings).to_records()
        assert [(r["fund_a"], r["fund_b"]) for r in rows] == [
            ("QQQ", "SPY"), ("QQQ", "VTI"), ("SPY", "VTI"),
        ]
        top = rows[0]
        assert top["common_assets"] == 2
        assert top["jaccard"] == pytest.approx(0.5)
        assert top["weighted_overlap"] == pytest.approx(13.0)
        assert rows[1]["jaccard"] == pytest.approx(0.25)
        assert rows[1]["weighted_overlap"] == pytest.approx(6.0)

    def test_single_fund_has_no_pairs(self, holdings):
        assert compare_funds(filter_by_set(holdings, "fund", ["SPY"])).height == 0

    def test_unparseable_weights_give_nan_overlap(self, unparseable_weights):
        (row,) = compare_funds(unparseable_weights).to_records()
        assert row["jaccard"] == pytest.approx(1.0)
        assert row["weighted_overlap"] is None


class TestWeightMatrix:

    def test_shape_and_values(self, holdings):
        m = weight_matrix(holdings)
        assert m.column_names == ("symbol", "QQQ", "SPY", "VTI")
        assert m.column("symbol").to_list() == ["AAPL", "BRK.B", "MSFT", "NVDA", "XOM"]
        aapl = m.to_records()[0]
        assert (aapl["QQQ"], aapl["SPY"], aapl["VTI"]) == (9.0, 7.0, 6.0)
        assert math.isnan(m.numeric_column("QQQ").values[1])

    def test_text_weights_parsed(self, text_weight_holdings):
        m = weight_matrix(text_weight_holdings)
        assert m.to_records()[0] == {"symbol": "AAPL", "QQQ": 9.0, "SPY": 7.0}

    def test_unparseable_weights_raise(self, unparseable_weights):
        with pytest.raises(TypeMismatch):
            weight_matrix(unparseable_weights)
