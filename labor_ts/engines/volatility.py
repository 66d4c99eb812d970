"""
Labor TS Volatility & Risk Engine

Dispersion and downside-risk statistics of a growth-rate series.

Measures:
- Volatility (sample std), mean growth, coefficient of variation
- Downside / upside volatility
- Maximum drawdown
- Sharpe-style ratio (mean / volatility)
- Value-at-Risk and Expected Shortfall per configured level
- Probability of negative growth, longest run of negative growth
- Distribution summary (median, min, max, positive / negative counts)

Input: GrowthSeries (only defined entries are used)

Arithmetic edge cases (zero mean, zero volatility, empty subsets) are
reported as NaN, never as 0 or an exception.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

import numpy as np

from labor_ts.utils.logging import get_logger
from labor_ts.errors import InsufficientLengthError
from .base import BaseEngine, defined_values


logger = get_logger(__name__)

# |mean| or volatility below this is treated as zero for ratios
RATIO_EPS = 1e-12


@dataclass(frozen=True)
class VolatilityRiskMetrics:
    """Volatility and tail-risk metrics for one sector's growth series."""
    sector: str
    n_obs: int
    volatility: float
    mean_growth: float
    coefficient_of_variation: float
    downside_volatility: float
    upside_volatility: float
    max_drawdown: float
    sharpe_ratio: float
    value_at_risk: Dict[float, float] = field(default_factory=dict)
    expected_shortfall: Dict[float, float] = field(default_factory=dict)
    probability_negative: float = float("nan")
    max_consecutive_losses: int = 0
    median_growth: float = float("nan")
    min_growth: float = float("nan")
    max_growth: float = float("nan")
    n_positive: int = 0
    n_negative: int = 0

    def volatility_record(self) -> Dict[str, Any]:
        return {
            "sector": self.sector,
            "n_obs": self.n_obs,
            "volatility": self.volatility,
            "mean_growth": self.mean_growth,
            "cv": self.coefficient_of_variation,
            "downside_volatility": self.downside_volatility,
            "upside_volatility": self.upside_volatility,
            "max_drawdown": self.max_drawdown,
            "sharpe_ratio": self.sharpe_ratio,
            "median_growth": self.median_growth,
            "min_growth": self.min_growth,
            "max_growth": self.max_growth,
            "n_positive": self.n_positive,
            "n_negative": self.n_negative,
        }

    def risk_record(self) -> Dict[str, Any]:
        record = {"sector": self.sector}
        for level, value in self.value_at_risk.items():
            record[f"var_{_pct(level)}pct"] = value
        for level, value in self.expected_shortfall.items():
            record[f"es_{_pct(level)}pct"] = value
        record["prob_negative"] = self.probability_negative
        record["max_consecutive_losses"] = self.max_consecutive_losses
        return record


def _pct(level: float) -> str:
    return f"{level * 100:g}"


# =============================================================================
# Metric functions
# =============================================================================

def sample_std(x: np.ndarray) -> float:
    """Sample standard deviation (ddof=1); NaN with fewer than 2 values."""
    x = np.asarray(x, dtype=float)
    if len(x) < 2:
        return float("nan")
    return float(np.std(x, ddof=1))


def safe_ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator, NaN when the denominator is ~0 or undefined."""
    if not np.isfinite(numerator) or not np.isfinite(denominator):
        return float("nan")
    if abs(denominator) < RATIO_EPS:
        return float("nan")
    return float(numerator / denominator)


def max_drawdown(x: np.ndarray) -> float:
    """Largest fall from a running maximum: max_t (max_{s<=t} x_s - x_t)."""
    x = np.asarray(x, dtype=float)
    if len(x) == 0:
        return float("nan")
    return float(np.max(np.maximum.accumulate(x) - x))


def value_at_risk(x: np.ndarray, alpha: float) -> float:
    """alpha-quantile with linear interpolation between order statistics."""
    x = np.asarray(x, dtype=float)
    if len(x) == 0:
        return float("nan")
    return float(np.quantile(x, alpha, method="linear"))


def expected_shortfall(x: np.ndarray, alpha: float) -> float:
    """Mean of all observations at or below the alpha-quantile."""
    x = np.asarray(x, dtype=float)
    if len(x) == 0:
        return float("nan")
    tail = x[x <= value_at_risk(x, alpha)]
    if len(tail) == 0:
        return float("nan")
    return float(tail.mean())


def max_consecutive_losses(x: np.ndarray) -> int:
    """Longest run of consecutive negative values (0 if none)."""
    negative = np.asarray(x, dtype=float) < 0
    if not negative.any():
        return 0

    # Run-length encode the boolean series
    padded = np.concatenate(([False], negative, [False])).astype(int)
    edges = np.diff(padded)
    starts = np.where(edges == 1)[0]
    ends = np.where(edges == -1)[0]
    return int((ends - starts).max())


class VolatilityRiskEngine(BaseEngine):
    """
    Volatility and tail-risk metrics on defined growth values.

    Outputs:
        - VolatilityRiskMetrics
    """

    name = "volatility"

    def run(self, growth) -> VolatilityRiskMetrics:
        """
        Args:
            growth: GrowthSeries, pandas Series or sequence of growth rates
                (NaN entries are ignored)

        Raises:
            InsufficientLengthError: No defined growth values
        """
        sector = getattr(growth, "sector", None) or getattr(growth, "name", None) or "series"
        x = defined_values(growth)

        if len(x) == 0:
            raise InsufficientLengthError(f"{sector}: no defined growth values")

        volatility = sample_std(x)
        mean_growth = float(np.mean(x))
        negatives = x[x < 0]
        positives = x[x > 0]

        levels = tuple(self.config.risk.var_levels)
        var = {level: value_at_risk(x, level) for level in levels}
        es = {level: expected_shortfall(x, level) for level in levels}

        metrics = VolatilityRiskMetrics(
            sector=str(sector),
            n_obs=int(len(x)),
            volatility=volatility,
            mean_growth=mean_growth,
            coefficient_of_variation=abs(safe_ratio(volatility, mean_growth)),
            downside_volatility=sample_std(negatives),
            upside_volatility=sample_std(positives),
            max_drawdown=max_drawdown(x),
            sharpe_ratio=safe_ratio(mean_growth, volatility),
            value_at_risk=var,
            expected_shortfall=es,
            probability_negative=float(np.mean(x < 0)),
            max_consecutive_losses=max_consecutive_losses(x),
            median_growth=float(np.median(x)),
            min_growth=float(np.min(x)),
            max_growth=float(np.max(x)),
            n_positive=int(len(positives)),
            n_negative=int(len(negatives)),
        )

        logger.info(
            f"Volatility {metrics.sector}: vol={volatility:.3f}, mean={mean_growth:.3f}, "
            f"P(neg)={metrics.probability_negative:.2f}, "
            f"max losing run={metrics.max_consecutive_losses}"
        )
        return metrics
