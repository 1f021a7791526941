"""Central configuration loader for ETF Analyzer.

Three layers feed the effective configuration: explicit overrides (the
command line), a user config file, and the built-in defaults below.
``merge_configs`` combines them field by field and touches no files, so
precedence can be tested on its own.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from etf_analyzer.errors import ConfigError

# Project root is the parent of the etf_analyzer/ package directory
PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def load_settings(path: Path | None = None) -> dict:
    """Load application settings from configs/settings.yaml."""
    settings_path = path or PROJECT_ROOT / "configs" / "settings.yaml"
    if not settings_path.exists():
        return {}
    with open(settings_path) as f:
        return yaml.safe_load(f) or {}


SETTINGS = load_settings()


# --- Environment ---
class Env:
    LOG_LEVEL = os.getenv("ETF_ANALYZER_LOG_LEVEL", "")
    CONFIG = os.getenv("ETF_ANALYZER_CONFIG", "")


# --- Paths ---
class Paths:
    ROOT = PROJECT_ROOT
    CONFIGS = PROJECT_ROOT / "configs"
    REPORTS_TEMPLATES = Path(__file__).resolve().parent / "reports" / "templates"


CONFIG_FILE_NAME = ".etf_analyzer.yaml"


@dataclass(frozen=True)
class ColumnConfig:
    """Source column names in the holdings files."""

    symbol_col: str | None = None
    name_col: str | None = None
    weight_col: str | None = None
    shares_col: str | None = None
    number_col: str | None = None


@dataclass(frozen=True)
class AppConfig:
    data_dir: str | None = None
    function: str | None = None
    output: str | None = None
    sort_by: str | None = None
    overlap_shape: str | None = None
    etfs: tuple[str, ...] | None = None
    force: bool | None = None
    verbose: bool | None = None
    max_workers: int | None = None
    columns: ColumnConfig = field(default_factory=ColumnConfig)


DEFAULT_COLUMNS = ColumnConfig(
    symbol_col="Symbol",
    name_col="Name",
    weight_col="% Weight",
    shares_col="Shares",
    number_col="No.",
)

BUILTIN_DEFAULTS = AppConfig(
    function="summary",
    sort_by="symbol",
    overlap_shape="collapsed",
    force=False,
    verbose=False,
    columns=DEFAULT_COLUMNS,
)


def _first_set(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def merge_columns(*layers: ColumnConfig | None) -> ColumnConfig:
    """Field-wise merge; earlier layers win."""
    present = [layer for layer in layers if layer is not None]
    return ColumnConfig(**{
        f.name: _first_set(*(getattr(layer, f.name) for layer in present))
        for f in fields(ColumnConfig)
    })


def merge_configs(
    override: AppConfig | None = None,
    file_config: AppConfig | None = None,
    defaults: AppConfig | None = BUILTIN_DEFAULTS,
) -> AppConfig:
    """Combine config layers: override > config file > defaults.

    Each field takes the first non-None value; the ``columns`` block is
    merged field by field the same way.
    """
    layers = [layer for layer in (override, file_config, defaults) if layer is not None]
    merged = {
        f.name: _first_set(*(getattr(layer, f.name) for layer in layers))
        for f in fields(AppConfig)
        if f.name != "columns"
    }
    merged["columns"] = merge_columns(*(layer.columns for layer in layers))
    return AppConfig(**merged)


# ---------------------------------------------------------------------------
# Config file parsing
# ---------------------------------------------------------------------------

_STR_FIELDS = {"data_dir", "function", "output", "sort_by", "overlap_shape"}
_BOOL_FIELDS = {"force", "verbose"}
_COLUMN_FIELDS = {f.name for f in fields(ColumnConfig)}


def config_from_mapping(data: Mapping[str, Any] | None) -> AppConfig:
    """Validate a parsed config mapping and build an ``AppConfig``."""
    data = dict(data or {})
    known = {f.name for f in fields(AppConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for key, value in data.items():
        if value is None or key == "columns":
            continue
        if key in _STR_FIELDS:
            if not isinstance(value, str):
                raise ConfigError(f"'{key}' must be a string, got {type(value).__name__}")
            values[key] = value
        elif key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ConfigError(f"'{key}' must be true or false, got {value!r}")
            values[key] = value
        elif key == "max_workers":
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigError(f"'max_workers' must be a positive integer, got {value!r}")
            values[key] = value
        elif key == "etfs":
            if isinstance(value, str):
                value = value.split(",")
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigError("'etfs' must be a list of fund symbols")
            values[key] = tuple(v.strip() for v in value if v.strip())

    columns = data.get("columns") or {}
    if not isinstance(columns, Mapping):
        raise ConfigError("'columns' must be a mapping")
    unknown_cols = sorted(set(columns) - _COLUMN_FIELDS)
    if unknown_cols:
        raise ConfigError(f"Unknown column keys: {', '.join(unknown_cols)}")
    for key, value in columns.items():
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"'columns.{key}' must be a string")

    return AppConfig(columns=ColumnConfig(**columns), **values)


def load_config_file(path: Path | str) -> AppConfig:
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
    if data is not None and not isinstance(data, Mapping):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return config_from_mapping(data)


def config_search_paths(
    cwd: Path | None = None, environ: Mapping[str, str] | None = None,
) -> list[Path]:
    """Candidate config files in lookup order."""
    environ = os.environ if environ is None else environ
    cwd = cwd or Path.cwd()
    paths: list[Path] = []

    explicit = environ.get("ETF_ANALYZER_CONFIG") or Env.CONFIG
    if explicit:
        paths.append(Path(explicit).expanduser())

    paths.append(cwd / CONFIG_FILE_NAME)

    home = environ.get("HOME") or environ.get("USERPROFILE")
    xdg = environ.get("XDG_CONFIG_HOME")
    if xdg:
        paths.append(Path(xdg) / "etf_analyzer" / "config.yaml")
    elif home:
        paths.append(Path(home) / ".config" / "etf_analyzer" / "config.yaml")
    if home:
        paths.append(Path(home) / CONFIG_FILE_NAME)
    return paths


def find_config_file(
    cwd: Path | None = None, environ: Mapping[str, str] | None = None,
) -> Path | None:
    for path in config_search_paths(cwd, environ):
        if path.is_file():
            return path
    return None


def load_default_config(
    cwd: Path | None = None, environ: Mapping[str, str] | None = None,
) -> AppConfig | None:
    path = find_config_file(cwd, environ)
    return load_config_file(path) if path else None
