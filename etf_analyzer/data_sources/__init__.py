"""Holdings data sources."""

from .holdings_loader import (
    discover_holdings_files,
    export_table,
    import_table,
    load_holdings_directory,
)
