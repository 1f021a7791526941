#!/usr/bin/env python3
"""ETF Analyzer: holdings aggregation, overlap and correlation across ETFs.

Usage:
    python main.py -d data/ summary                       # funds, shape, preview
    python main.py -d data/ list                          # fund symbols found
    python main.py -d data/ assets --sort-by count        # funds per asset
    python main.py -d data/ --etfs SPY,QQQ unique         # single-fund assets
    python main.py -d data/ overlap --shape expanded      # shared assets
    python main.py -d data/ compare                       # pairwise fund overlap
    python main.py -d data/ correlation                   # fund weight correlation
    python main.py correlation --returns returns.csv      # return series correlation
    python main.py -d data/ -o holdings.parquet export    # save combined table
    python main.py -i holdings.parquet assets             # reuse an export
"""

import argparse
import sys

import numpy as np

from etf_analyzer.analysis.holdings import compare_funds, fund_summary, list_funds, weight_matrix
from etf_analyzer.analysis.portfolio import Portfolio
from etf_analyzer.analysis.series_metrics import compare_columns, compute_metrics, sharpe_ratio, volatility
from etf_analyzer.config import (
    SETTINGS,
    AppConfig,
    ColumnConfig,
    Env,
    load_config_file,
    load_default_config,
    merge_configs,
)
from etf_analyzer.data_sources.holdings_loader import export_table, import_table, load_holdings_directory
from etf_analyzer.engine.classifier import OverlapShape, aggregate_assets, overlap_assets, unique_assets
from etf_analyzer.engine.correlation import correlation_matrix
from etf_analyzer.engine.filters import filter_by_set
from etf_analyzer.engine.schema import ColumnType, Schema
from etf_analyzer.engine.sorting import SortMode
from etf_analyzer.engine.table import Table
from etf_analyzer.errors import ConfigError, EngineError, LoaderError
from etf_analyzer.reports import formatter
from etf_analyzer.reports.renderer import ReportRenderer
from etf_analyzer.utils.logger import set_level, setup_logger
from etf_analyzer.utils.task_pool import PairTaskPool

logger = setup_logger("main")

CORRELATION_SETTINGS = SETTINGS.get("correlation", {}) or {}
REPORT_SETTINGS = SETTINGS.get("reports", {}) or {}


def _split_list(value: str | None) -> tuple[str, ...] | None:
    if not value:
        return None
    return tuple(v.strip() for v in value.split(",") if v.strip())


def _config_from_args(args) -> AppConfig:
    """CLI layer of the configuration; unset options stay None."""
    return AppConfig(
        data_dir=args.data_dir,
        function=args.command,
        output=args.output,
        sort_by=getattr(args, "sort_by", None),
        overlap_shape=getattr(args, "shape", None),
        etfs=_split_list(args.etfs),
        force=True if args.force else None,
        verbose=True if args.verbose else None,
        max_workers=getattr(args, "workers", None),
        columns=ColumnConfig(
            symbol_col=args.symbol_col,
            name_col=args.name_col,
            weight_col=args.weight_col,
            shares_col=args.shares_col,
            number_col=args.number_col,
        ),
    )


def _log_level(cfg: AppConfig) -> str:
    if cfg.verbose:
        return "DEBUG"
    return Env.LOG_LEVEL or SETTINGS.get("app", {}).get("log_level") or "INFO"


def _load_holdings(args, cfg: AppConfig) -> Table:
    """Holdings from --import or the data directory, narrowed to --etfs."""
    if args.import_path:
        table = import_table(args.import_path)
    elif cfg.data_dir:
        table = load_holdings_directory(cfg.data_dir, cfg.columns)
    else:
        raise ConfigError("Either --data-dir or --import is required")

    if cfg.etfs:
        logger.info("Filtering to ETFs: %s", ", ".join(cfg.etfs))
        table = filter_by_set(table, "fund", cfg.etfs)
        if table.height == 0:
            raise LoaderError(f"No holdings left after filtering to: {', '.join(cfg.etfs)}")
        logger.info("Filtered table contains %d rows", table.height)
    return table


def _pool(cfg: AppConfig) -> PairTaskPool:
    return PairTaskPool(cfg.max_workers or CORRELATION_SETTINGS.get("max_workers"))


# ============================================================
# COMMANDS
# ============================================================

def cmd_summary(args, cfg: AppConfig) -> Table:
    """Funds found, table shape and per-fund totals."""
    table = _load_holdings(args, cfg)
    funds = list_funds(table)
    summary = fund_summary(table)
    print(f"Found {len(funds)} ETFs: {', '.join(funds)}")
    print(formatter.describe_table(table))
    print()
    print(formatter.format_fund_summary(summary))
    print()
    print(Portfolio.equal_weight(funds).summary())
    return summary


def cmd_list(args, cfg: AppConfig) -> Table:
    """Fund symbols present in the data."""
    funds = list_funds(_load_holdings(args, cfg))
    print(f"Found {len(funds)} ETFs: {', '.join(funds)}")
    for fund in funds:
        print(f"  {fund}")
    return Table.from_columns({"fund": funds}, Schema.of([("fund", ColumnType.STRING)]))


def cmd_assets(args, cfg: AppConfig) -> Table:
    """Every asset with the number of funds holding it."""
    logger.info("Aggregating assets by symbol...")
    result = aggregate_assets(_load_holdings(args, cfg), SortMode.parse(cfg.sort_by))
    print(formatter.summarize_assets(result))
    return result


def cmd_unique(args, cfg: AppConfig) -> Table:
    """Assets held by exactly one fund."""
    result = unique_assets(_load_holdings(args, cfg), SortMode.parse(cfg.sort_by))
    print(formatter.summarize_unique(result))
    return result


def cmd_overlap(args, cfg: AppConfig) -> Table:
    """Assets held by more than one fund."""
    result = overlap_assets(
        _load_holdings(args, cfg),
        OverlapShape.parse(cfg.overlap_shape),
        SortMode.parse(cfg.sort_by),
    )
    print(formatter.summarize_overlap(result))
    return result


def cmd_compare(args, cfg: AppConfig) -> Table:
    """Pairwise fund similarity."""
    result = compare_funds(_load_holdings(args, cfg))
    print(formatter.format_fund_comparison(result, REPORT_SETTINGS.get("top_n")))
    return result


def _returns_report(table: Table, columns: list[str], pool: PairTaskPool) -> None:
    """Per-series metrics plus an equal-weight portfolio report."""
    vols = compare_columns(table, columns, volatility, pool)
    sharpes = compare_columns(table, columns, sharpe_ratio, pool)
    print("\nSeries metrics:")
    for col, vol, sharpe in zip(columns, vols, sharpes):
        print(f"  {col:>10}  volatility {formatter.fmt_ratio(vol)}  sharpe {formatter.fmt_ratio(sharpe)}")

    portfolio = Portfolio.equal_weight(columns).load_data(table)
    port_returns = portfolio.return_series()
    skipped = table.height - len(port_returns)
    if skipped:
        logger.info("Skipped %d rows with missing returns", skipped)
    series = Table.from_columns(
        {"returns": port_returns.tolist(), "value": np.cumprod(1.0 + port_returns).tolist()},
        Schema.of([("returns", ColumnType.FLOAT), ("value", ColumnType.FLOAT)]),
    )
    metrics = compute_metrics(series, "returns", "value")
    print(ReportRenderer().render(portfolio, metrics))


def cmd_correlation(args, cfg: AppConfig) -> Table:
    """Correlation between return series, or between fund weight vectors."""
    pool = _pool(cfg)
    returns_path = getattr(args, "returns", None)
    requested = _split_list(getattr(args, "columns", None))
    if returns_path:
        table = import_table(returns_path)
        columns = list(requested or [
            name for name in table.column_names if table.schema.dtype(name).is_numeric
        ])
    else:
        table = weight_matrix(_load_holdings(args, cfg))
        columns = list(requested or table.column_names[1:])

    matrix = correlation_matrix(table, columns, pool)
    print(formatter.format_correlation_matrix(matrix))
    threshold = CORRELATION_SETTINGS.get("high_threshold", 0.7)
    print(formatter.format_high_correlations(matrix.high_correlation_pairs(threshold)))

    if returns_path:
        _returns_report(table, columns, pool)
    return matrix.to_table()


def cmd_export(args, cfg: AppConfig) -> Table:
    """Write the combined holdings table to --output."""
    if not cfg.output:
        raise ConfigError("export requires --output")
    table = _load_holdings(args, cfg)
    print(formatter.describe_table(table))
    return table


COMMANDS = {
    "summary": cmd_summary,
    "list": cmd_list,
    "assets": cmd_assets,
    "unique": cmd_unique,
    "overlap": cmd_overlap,
    "compare": cmd_compare,
    "correlation": cmd_correlation,
    "export": cmd_export,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="ETF Analyzer: holdings aggregation and correlation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("-d", "--data-dir", default=None, help="Directory of *-etf-holdings.csv files")
    parser.add_argument("-i", "--import", dest="import_path", default=None,
                        help="Load a previously exported table (.csv / .parquet)")
    parser.add_argument("--etfs", default=None, help="Comma-separated funds to keep")
    parser.add_argument("-o", "--output", default=None, help="Export the result (.csv, .parquet, .json)")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing output file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", default=None, help="Config file (YAML)")
    parser.add_argument("--symbol-col", default=None, help="Source column holding the symbol")
    parser.add_argument("--name-col", default=None, help="Source column holding the asset name")
    parser.add_argument("--weight-col", default=None, help="Source column holding the weight")
    parser.add_argument("--shares-col", default=None, help="Source column holding the share count")
    parser.add_argument("--number-col", default=None, help="Source row-number column (dropped)")

    sub = parser.add_subparsers(dest="command", help="Commands")
    sort_choices = [m.value for m in SortMode]

    # summary / list
    sub.add_parser("summary", help="Funds, table shape and per-fund totals")
    sub.add_parser("list", help="List funds")

    # assets
    p = sub.add_parser("assets", help="All assets with the funds holding them")
    p.add_argument("--sort-by", choices=sort_choices, default=None)

    # unique
    p = sub.add_parser("unique", help="Assets held by exactly one fund")
    p.add_argument("--sort-by", choices=sort_choices, default=None)

    # overlap
    p = sub.add_parser("overlap", help="Assets held by more than one fund")
    p.add_argument("--sort-by", choices=sort_choices, default=None)
    p.add_argument("--shape", choices=[s.value for s in OverlapShape], default=None,
                   help="collapsed: one row per asset; expanded: one row per holding")

    # compare
    sub.add_parser("compare", help="Pairwise fund overlap")

    # correlation
    p = sub.add_parser("correlation", help="Pairwise Pearson correlation")
    p.add_argument("--returns", default=None, help="Table of return series (.csv / .parquet)")
    p.add_argument("--columns", default=None, help="Comma-separated columns to correlate")
    p.add_argument("--workers", type=int, default=None, help="Worker threads")

    # export
    sub.add_parser("export", help="Export the combined holdings table")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        file_config = load_config_file(args.config) if args.config else load_default_config()
        cfg = merge_configs(_config_from_args(args), file_config)
        set_level(_log_level(cfg))

        command = COMMANDS.get(cfg.function or "")
        if command is None:
            raise ConfigError(
                f"Unknown function '{cfg.function}' (choose from: {', '.join(COMMANDS)})"
            )

        result = command(args, cfg)
        if cfg.output and result is not None:
            written = export_table(result, cfg.output, force=bool(cfg.force))
            if written is None:
                print(f"Not overwriting existing file: {cfg.output} (use --force)")
            else:
                print(f"Saved to: {written}")
    except (EngineError, ConfigError, LoaderError) as exc:
        logger.error("%s", exc)
        return 1
    except ValueError as exc:
        logger.error("Invalid option: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
