"""Holdings file loading and table export.

Each fund ships one CSV named ``{fund}-etf-holdings.csv``. Files are read
as text, their configured source columns are renamed to the canonical
``symbol`` / ``name`` / ``weight`` / ``shares`` names, and the rows are
stacked into a single holdings Table tagged with the fund symbol.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd

from etf_analyzer.config import DEFAULT_COLUMNS, ColumnConfig, merge_columns
from etf_analyzer.engine.table import REQUIRED_HOLDINGS_COLUMNS, Table, check_identifiers, holdings_schema
from etf_analyzer.errors import LoaderError
from etf_analyzer.utils.logger import setup_logger

logger = setup_logger("holdings_loader")

HOLDINGS_FILE_SUFFIX = "-etf-holdings.csv"
_IDENTIFIER_COLUMNS = ("fund", "symbol", "name")


def _clean_text(series: pd.Series) -> pd.Series:
    cleaned = series.map(lambda v: v.strip() if isinstance(v, str) else v)
    return cleaned.where(cleaned.notna() & (cleaned != ""), None)


def _numeric_or_text(series: pd.Series) -> pd.Series:
    """Numbers when every non-blank value parses as one, otherwise the text."""
    stripped = series.map(lambda v: v.replace(",", "") if isinstance(v, str) else v)
    converted = pd.to_numeric(stripped, errors="coerce")
    if converted.notna().sum() == series.notna().sum():
        return converted
    return series


def discover_holdings_files(data_dir: Path | str) -> dict[str, Path]:
    """Map fund symbol (upper case) to its holdings CSV, sorted by fund."""
    data_dir = Path(data_dir)
    if not data_dir.is_dir():
        raise LoaderError(f"Data directory not found: {data_dir}")

    files: dict[str, Path] = {}
    for path in sorted(data_dir.glob(f"*{HOLDINGS_FILE_SUFFIX}")):
        fund = path.name[: -len(HOLDINGS_FILE_SUFFIX)].strip().upper()
        if fund:
            files[fund] = path
    return dict(sorted(files.items()))


def normalize_holdings(
    frame: pd.DataFrame, fund: str, columns: ColumnConfig | None = None,
) -> pd.DataFrame:
    """Rename source columns, tag the fund, and fill in blank symbols.

    Blank symbols (cash lines, unlisted positions) get a synthetic
    ``{FUND}-UNLISTED-{n}`` symbol so they never merge with each other or
    with real tickers across funds.
    """
    cols = merge_columns(columns, DEFAULT_COLUMNS)
    frame = frame.rename(columns=lambda c: str(c).strip())

    required = {"symbol": cols.symbol_col, "name": cols.name_col, "weight": cols.weight_col}
    if cols.number_col in required.values():
        raise LoaderError(f"{fund}: row-number column '{cols.number_col}' is also mapped as a data column")
    if cols.number_col in frame.columns:
        frame = frame.drop(columns=[cols.number_col])

    missing = [src for src in required.values() if src not in frame.columns]
    if missing:
        raise LoaderError(
            f"{fund}: missing columns {missing} (found: {', '.join(frame.columns)})"
        )

    symbols = _clean_text(frame[cols.symbol_col])
    blank = symbols.isna().to_numpy()
    if blank.any():
        synthetic = [f"{fund}-UNLISTED-{n}" for n in range(1, int(blank.sum()) + 1)]
        symbols = symbols.astype(object)
        symbols[blank] = synthetic
        logger.info("%s: generated %d synthetic symbols for blank entries", fund, len(synthetic))

    if cols.shares_col in frame.columns:
        shares = pd.to_numeric(
            frame[cols.shares_col].map(lambda v: v.replace(",", "") if isinstance(v, str) else v),
            errors="coerce",
        )
    else:
        shares = pd.Series(np.nan, index=frame.index)

    return pd.DataFrame({
        "fund": fund,
        "symbol": symbols,
        "name": _clean_text(frame[cols.name_col]),
        "weight": _numeric_or_text(_clean_text(frame[cols.weight_col])),
        "shares": shares.astype("float64"),
    }, index=frame.index)


def load_holdings_csv(
    path: Path | str, fund: str, columns: ColumnConfig | None = None,
) -> pd.DataFrame:
    path = Path(path)
    try:
        raw = pd.read_csv(path, dtype=str, skipinitialspace=True)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise LoaderError(f"Cannot read holdings file {path}: {exc}") from exc
    frame = normalize_holdings(raw, fund, columns)
    logger.debug("Loaded %d holdings for %s from %s", len(frame), fund, path.name)
    return frame


def holdings_table(frame: pd.DataFrame) -> Table:
    """Wrap a normalized holdings frame in a Table with the holdings schema."""
    missing = [c for c in REQUIRED_HOLDINGS_COLUMNS if c not in frame.columns]
    if missing:
        raise LoaderError(f"Holdings data is missing columns: {', '.join(missing)}")
    check_identifiers(frame)
    return Table(frame, holdings_schema(frame))


def load_holdings_directory(
    data_dir: Path | str, columns: ColumnConfig | None = None,
) -> Table:
    """Load every ``*-etf-holdings.csv`` in *data_dir* into one Table."""
    files = discover_holdings_files(data_dir)
    if not files:
        raise LoaderError(f"No '*{HOLDINGS_FILE_SUFFIX}' files found in {data_dir}")

    frames = [load_holdings_csv(path, fund, columns) for fund, path in files.items()]
    combined = pd.concat(frames, ignore_index=True)
    logger.info("Loaded %d holdings rows from %d funds", len(combined), len(files))
    return holdings_table(combined)


def import_table(path: Path | str) -> Table:
    """Read a previously exported table (CSV or Parquet)."""
    path = Path(path)
    if not path.is_file():
        raise LoaderError(f"Import file not found: {path}")

    suffix = path.suffix.lower()
    try:
        if suffix == ".csv":
            header = pd.read_csv(path, nrows=0).columns
            dtype = {c: str for c in _IDENTIFIER_COLUMNS if c in header}
            frame = pd.read_csv(path, dtype=dtype)
        elif suffix == ".parquet":
            frame = pd.read_parquet(path)
        else:
            raise LoaderError(f"Unsupported import format '{suffix}' (use .csv or .parquet)")
    except (OSError, ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise LoaderError(f"Cannot import {path}: {exc}") from exc

    logger.info("Imported %d rows from %s", len(frame), path)
    if all(c in frame.columns for c in REQUIRED_HOLDINGS_COLUMNS):
        return holdings_table(frame)
    return Table(frame)


def export_table(table: Table, path: Path | str, force: bool = False) -> Path | None:
    """Write *table* as CSV, Parquet or JSON, chosen by file extension.

    A path without an extension gets ``.csv``. An existing file is only
    replaced when *force* is set; otherwise nothing is written and ``None``
    is returned.
    """
    path = Path(path)
    if not path.suffix:
        path = path.with_suffix(".csv")
    suffix = path.suffix.lower()
    if suffix not in (".csv", ".parquet", ".json"):
        raise LoaderError(f"Unsupported export format '{suffix}' (use .csv, .parquet or .json)")

    if path.exists() and not force:
        logger.warning("%s already exists; use --force to overwrite", path)
        return None

    path.parent.mkdir(parents=True, exist_ok=True)
    frame = table.to_frame()
    if suffix == ".csv":
        frame.to_csv(path, index=False)
    elif suffix == ".parquet":
        frame.to_parquet(path, index=False)
    else:
        frame.to_json(path, orient="records", indent=2)

    logger.info("Exported %d rows to %s", table.height, path)
    return path
