"""Jinja2-based text report renderer."""

from __future__ import annotations
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from etf_analyzer.analysis.portfolio import Portfolio
from etf_analyzer.analysis.series_metrics import AnalysisMetrics
from etf_analyzer.config import Paths
from etf_analyzer.engine.correlation import CorrelationMatrix
from etf_analyzer.reports.formatter import fmt_pct, fmt_ratio, format_correlation_matrix
from etf_analyzer.utils.logger import setup_logger

logger = setup_logger("renderer")

DEFAULT_TEMPLATE = "analysis_report.txt.j2"


class ReportRenderer:
    """Render a portfolio, its metrics and correlations using Jinja2 templates."""

    def __init__(self, template_dir: Path | None = None):
        tpl_dir = template_dir or Paths.REPORTS_TEMPLATES
        self.env = Environment(
            loader=FileSystemLoader(str(tpl_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self.env.filters["fmt_pct"] = fmt_pct
        self.env.filters["fmt_ratio"] = fmt_ratio
        self.env.filters["corr_matrix"] = format_correlation_matrix

    def render(
        self,
        portfolio: Portfolio,
        metrics: AnalysisMetrics | None = None,
        correlation: CorrelationMatrix | None = None,
        template_name: str = DEFAULT_TEMPLATE,
        now: datetime | None = None,
    ) -> str:
        template = self.env.get_template(template_name)
        logger.debug("Rendering %s for %d funds", template_name, len(portfolio.funds))
        return template.render(
            portfolio=portfolio,
            metrics=metrics,
            correlation=correlation,
            now=now or datetime.now(),
        )
