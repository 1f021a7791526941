"""ETF Analyzer: cross-fund holdings overlap and correlation analytics."""

__version__ = "0.1.0"
