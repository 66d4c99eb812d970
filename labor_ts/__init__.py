"""
labor_ts - Monthly sector employment time-series analysis

Forecasts, decomposition, structural breaks, growth risk, growth regimes
and cross-sector causality for a panel of monthly sector series.

Architecture:
    - engines: One engine per analysis (series, decomposition, forecast,
      changepoint, volatility, regime, causality, summary)
    - orchestration: Pipeline over a panel, report tables
    - config: YAML-backed analysis parameters and capabilities
    - utils: Logging setup, per-sector parallel execution

Quick Start:
    from labor_ts import AnalysisPipeline, ObservationPanel, build_tables

    panel = ObservationPanel(df)   # columns: sector, year, month, value
    result = AnalysisPipeline().run(panel)
    tables = build_tables(result)
"""

__version__ = "0.1.0"

from labor_ts.config import AnalysisConfig, Capabilities, load_capabilities, load_config
from labor_ts.engines import ObservationPanel, Outcome, Status
from labor_ts.errors import LaborTSError
from labor_ts.orchestration import AnalysisPipeline, PipelineResult, SectorResult, build_tables
from labor_ts.utils.logging import setup_logging

__all__ = [
    "__version__",
    "AnalysisConfig",
    "Capabilities",
    "load_config",
    "load_capabilities",
    "ObservationPanel",
    "Outcome",
    "Status",
    "LaborTSError",
    "AnalysisPipeline",
    "PipelineResult",
    "SectorResult",
    "build_tables",
    "setup_logging",
]
