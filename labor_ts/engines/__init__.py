"""
Labor TS Engines Module

Registry of all analysis engines.

Usage:
    from labor_ts.engines import get_engine, list_engines

    # Get specific engine
    forecast = get_engine("forecast")
    outcome = forecast.execute(series)

    # List available engines
    for name, info in list_engines().items():
        print(f"{name}: {info['description']}")
"""

from typing import Any, Dict, Optional, Type

from labor_ts.config import AnalysisConfig

from .base import BaseEngine, Outcome, Status, run_step
from .series import (
    FixedFrequencySeries,
    GrowthSeries,
    ObservationPanel,
    SeriesBuilder,
    compute_growth,
    mom_growth,
    yoy_growth,
)
from .decomposition import (
    CycleDecomposition,
    CycleEngine,
    DecompositionEngine,
    DecompositionResult,
    seasonal_index,
)
from .forecast import ForecastEngine, ForecastResult
from .changepoint import ChangepointEngine, ChangepointSet
from .volatility import VolatilityRiskEngine, VolatilityRiskMetrics
from .regime import RegimeAssignment, RegimeClassifier
from .causality import (
    CausalityEngine,
    CausalityGraph,
    CorrelationEngine,
    LeadingIndicatorEngine,
    LeadingIndicatorResult,
    LeadLagEngine,
    align_sectors,
    ccf,
    cross_correlate,
)
from .summary import AnnualGrowthEngine, AnnualGrowthSummary, LevelSummary, LevelSummaryEngine


# Engine registry
ENGINE_REGISTRY: Dict[str, Type[BaseEngine]] = {
    "series": SeriesBuilder,
    "decomposition": DecompositionEngine,
    "cycle": CycleEngine,
    "forecast": ForecastEngine,
    "changepoint": ChangepointEngine,
    "volatility": VolatilityRiskEngine,
    "regime": RegimeClassifier,
    "causality": CausalityEngine,
    "leading_indicator": LeadingIndicatorEngine,
    "lead_lag": LeadLagEngine,
    "correlation": CorrelationEngine,
    "annual_growth": AnnualGrowthEngine,
    "level_summary": LevelSummaryEngine,
}


# Engine metadata
ENGINE_INFO: Dict[str, Dict[str, Any]] = {
    "series": {
        "scope": "sector",
        "input": "panel",
        "description": "Dense monthly series from the observation panel",
    },
    "decomposition": {
        "scope": "sector",
        "input": "levels",
        "description": "Additive trend / seasonal / residual decomposition",
    },
    "cycle": {
        "scope": "sector",
        "input": "levels",
        "description": "HP-filter business cycle with turning points",
    },
    "forecast": {
        "scope": "sector",
        "input": "levels",
        "description": "Automatically selected seasonal ARIMA forecast",
    },
    "changepoint": {
        "scope": "sector",
        "input": "levels",
        "description": "Structural breaks in mean level (PELT)",
    },
    "volatility": {
        "scope": "sector",
        "input": "growth",
        "description": "Volatility, VaR, expected shortfall, losing runs",
    },
    "regime": {
        "scope": "sector",
        "input": "growth",
        "description": "Low / moderate / high growth regimes (k-means)",
    },
    "causality": {
        "scope": "panel",
        "input": "levels",
        "description": "VAR Granger causality and impulse responses",
    },
    "leading_indicator": {
        "scope": "sector",
        "input": "levels",
        "description": "Cross-correlation against the sector's own lagged copy",
    },
    "lead_lag": {
        "scope": "panel",
        "input": "levels",
        "description": "Cross-sector lead/lag from differenced cross-correlation",
    },
    "correlation": {
        "scope": "panel",
        "input": "levels",
        "description": "Contemporaneous correlation matrix of sector levels",
    },
    "annual_growth": {
        "scope": "sector",
        "input": "levels",
        "description": "Annual-average growth and its summary statistics",
    },
    "level_summary": {
        "scope": "sector",
        "input": "levels",
        "description": "Level statistics with peak and trough dates",
    },
}


def get_engine(name: str, config: Optional[AnalysisConfig] = None, **options: Any) -> BaseEngine:
    """
    Get an engine instance by name.

    Args:
        name: Engine name (see ENGINE_REGISTRY)
        config: Analysis configuration (defaults when omitted)
        **options: Extra constructor arguments, e.g. enabled=False for
            the changepoint engine
    """
    if name not in ENGINE_REGISTRY:
        available = list(ENGINE_REGISTRY.keys())
        raise ValueError(f"Unknown engine: {name}. Available: {available}")

    engine_class = ENGINE_REGISTRY[name]
    return engine_class(config, **options)


def list_engines() -> Dict[str, Dict[str, Any]]:
    return ENGINE_INFO.copy()


def get_engines_by_scope(scope: str) -> list:
    return [name for name, info in ENGINE_INFO.items() if info["scope"] == scope]


__all__ = [
    "BaseEngine",
    "Outcome",
    "Status",
    "run_step",
    "ObservationPanel",
    "FixedFrequencySeries",
    "GrowthSeries",
    "SeriesBuilder",
    "compute_growth",
    "yoy_growth",
    "mom_growth",
    "DecompositionEngine",
    "DecompositionResult",
    "CycleEngine",
    "CycleDecomposition",
    "seasonal_index",
    "ForecastEngine",
    "ForecastResult",
    "ChangepointEngine",
    "ChangepointSet",
    "VolatilityRiskEngine",
    "VolatilityRiskMetrics",
    "RegimeClassifier",
    "RegimeAssignment",
    "CausalityEngine",
    "CausalityGraph",
    "LeadingIndicatorEngine",
    "LeadingIndicatorResult",
    "LeadLagEngine",
    "CorrelationEngine",
    "AnnualGrowthEngine",
    "AnnualGrowthSummary",
    "LevelSummaryEngine",
    "LevelSummary",
    "align_sectors",
    "cross_correlate",
    "ccf",
    "ENGINE_REGISTRY",
    "ENGINE_INFO",
    "get_engine",
    "list_engines",
    "get_engines_by_scope",
]
