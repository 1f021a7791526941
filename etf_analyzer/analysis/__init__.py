from .holdings import compare_funds, fund_summary, list_funds, weight_matrix
from .portfolio import Portfolio
from .series_metrics import AnalysisMetrics, compare_columns, compute_metrics, max_drawdown, sharpe_ratio, volatility
