"""Tests for etf_analyzer.data_sources.holdings_loader -- CSV loading, import and export."""

import json

import pandas as pd
import pytest

from etf_analyzer.config import ColumnConfig
from etf_analyzer.data_sources.holdings_loader import (
    discover_holdings_files,
    export_table,
    import_table,
    load_holdings_directory,
    normalize_holdings,
)
from etf_analyzer.engine.schema import ColumnType
from etf_analyzer.engine.table import load
from etf_analyzer.engine.weights import weights_to_numeric
from etf_analyzer.errors import LoaderError, TypeMismatch


# ---------------------------------------------------------------------------
# Discovery and loading
# ---------------------------------------------------------------------------

class TestDiscovery:

    def test_finds_holdings_files_only(self, holdings_dir):
        files = discover_holdings_files(holdings_dir)
        assert list(files) == ["QQQ", "SPY"]
        assert files["SPY"].name == "spy-etf-holdings.csv"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(LoaderError):
            discover_holdings_files(tmp_path / "absent")

    def test_empty_directory(self, tmp_path):
        with pytest.raises(LoaderError):
            load_holdings_directory(tmp_path)


class TestLoadDirectory:

    def test_combined_table(self, holdings_dir):
        table = load_holdings_directory(holdings_dir)
        assert table.column_names == ("fund", "symbol", "name", "weight", "shares")
        assert table.height == 7
        assert table.unique_values("fund") == ["QQQ", "SPY"]

    def test_percent_weights_load_as_text(self, holdings_dir):
        table = load_holdings_directory(holdings_dir)
        assert table.schema.dtype("weight") is ColumnType.STRING
        numeric = weights_to_numeric(table).numeric_column("weight").values
        assert numeric[:2].tolist() == pytest.approx([9.0, 5.0])

    def test_shares_parsed_with_thousands(self, holdings_dir):
        table = load_holdings_directory(holdings_dir)
        spy = table.frame[table.frame["fund"] == "SPY"]
        assert spy["shares"].tolist()[:2] == [1000.0, 900.0]

    def test_synthetic_symbols_per_fund(self, holdings_dir):
        symbols = load_holdings_directory(holdings_dir).column("symbol").to_list()
        assert "QQQ-UNLISTED-1" in symbols
        assert "QQQ-UNLISTED-2" in symbols
        assert "SPY-UNLISTED-1" in symbols
        assert None not in symbols

    def test_custom_column_names(self, tmp_path):
        (tmp_path / "iwm-etf-holdings.csv").write_text(
            "Ticker,Holding,Weight\nAAPL,Apple Inc,1.5\nMSFT,Microsoft Corp,2.5\n"
        )
        cols = ColumnConfig(symbol_col="Ticker", name_col="Holding", weight_col="Weight")
        table = load_holdings_directory(tmp_path, cols)
        assert table.schema.dtype("weight") is ColumnType.FLOAT
        assert table.column("name").to_list() == ["Apple Inc", "Microsoft Corp"]
        assert table.column("shares").is_null().all()

    def test_missing_source_column(self, tmp_path):
        (tmp_path / "iwm-etf-holdings.csv").write_text("Ticker,Name\nAAPL,Apple\n")
        with pytest.raises(LoaderError):
            load_holdings_directory(tmp_path)


class TestNormalize:

    def test_strips_and_blanks(self):
        raw = pd.DataFrame({
            "Symbol": [" AAPL ", ""],
            "Name": ["Apple ", "  "],
            "% Weight": ["1.0", "2.0"],
        })
        frame = normalize_holdings(raw, "SPY")
        assert frame["symbol"].tolist() == ["AAPL", "SPY-UNLISTED-1"]
        assert frame["name"].tolist()[0] == "Apple"
        assert pd.isna(frame["name"].tolist()[1])
        assert frame["weight"].tolist() == [1.0, 2.0]
        assert (frame["fund"] == "SPY").all()

    def test_row_number_column_dropped(self):
        raw = pd.DataFrame({"#": ["1", "2"], "Symbol": ["AAPL", "MSFT"],
                            "Name": ["Apple", "Microsoft"], "% Weight": ["1.0", "2.0"]})
        frame = normalize_holdings(raw, "SPY", ColumnConfig(number_col="#"))
        assert list(frame.columns) == ["fund", "symbol", "name", "weight", "shares"]

    def test_row_number_column_cannot_be_a_data_column(self):
        raw = pd.DataFrame({"#": ["1"], "Name": ["Apple"], "% Weight": ["1.0"]})
        with pytest.raises(LoaderError, match="row-number"):
            normalize_holdings(raw, "SPY", ColumnConfig(symbol_col="#", number_col="#"))


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------

class TestExportImport:

    def test_csv_adds_extension(self, holdings, tmp_path):
        written = export_table(holdings, tmp_path / "out")
        assert written == tmp_path / "out.csv"
        assert written.exists()

    def test_refuses_overwrite_without_force(self, holdings, tmp_path):
        path = tmp_path / "out.csv"
        path.write_text("keep me")
        assert export_table(holdings, path) is None
        assert path.read_text() == "keep me"
        assert export_table(holdings, path, force=True) == path
        assert path.read_text() != "keep me"

    def test_csv_roundtrip_keeps_identifiers_as_text(self, tmp_path):
        table = load([{"fund": "SPY", "symbol": "1234", "name": "Numeric Ticker", "weight": 1.0}])
        path = export_table(table, tmp_path / "out.csv")
        imported = import_table(path)
        assert imported.schema.dtype("symbol") is ColumnType.STRING
        assert imported.column("symbol").to_list() == ["1234"]

    def test_parquet_roundtrip(self, holdings, tmp_path):
        path = export_table(holdings, tmp_path / "out.parquet")
        assert import_table(path) == holdings

    def test_json_export(self, three_row_holdings, tmp_path):
        path = export_table(three_row_holdings, tmp_path / "out.json")
        records = json.loads(path.read_text())
        assert [r["symbol"] for r in records] == ["AAPL", "AAPL", "MSFT"]

    def test_unsupported_formats(self, holdings, tmp_path):
        with pytest.raises(LoaderError):
            export_table(holdings, tmp_path / "out.xlsx")
        (tmp_path / "in.txt").write_text("x")
        with pytest.raises(LoaderError):
            import_table(tmp_path / "in.txt")

    def test_import_missing_file(self, tmp_path):
        with pytest.raises(LoaderError):
            import_table(tmp_path / "absent.csv")

    def test_import_rejects_holding_without_fund(self, tmp_path):
        path = tmp_path / "in.csv"
        path.write_text("fund,symbol,name,weight\nSPY,AAPL,Apple,1.0\n,ZZZ,Orphan,2.0\n")
        with pytest.raises(TypeMismatch, match="fund"):
            import_table(path)
