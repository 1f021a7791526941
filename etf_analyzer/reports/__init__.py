from .formatter import fmt_pct, fmt_ratio, format_correlation_matrix
from .renderer import ReportRenderer
