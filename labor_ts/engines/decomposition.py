"""
Labor TS Decomposition Engines

Splits a monthly series into interpretable components.

Measures:
- Additive trend / seasonal / residual decomposition
- Seasonal strength (share of non-trend variance explained by seasonality)
- Hodrick-Prescott trend and cycle
- Cycle peaks, troughs, mean cycle length and amplitude
- Seasonal index per calendar month

Input: FixedFrequencySeries (levels, not growth)
"""

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
import pandas as pd
from statsmodels.tsa.filters.hp_filter import hpfilter
from statsmodels.tsa.seasonal import seasonal_decompose

from labor_ts.utils.logging import get_logger
from labor_ts.errors import DecompositionUnavailable, InsufficientLengthError
from .base import BaseEngine, frozen_array
from .series import FixedFrequencySeries


logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class DecompositionResult:
    """Additive components; trend + seasonal + residual == observed."""
    sector: str
    trend: np.ndarray
    seasonal: np.ndarray
    residual: np.ndarray
    seasonal_factors: Dict[int, float]
    seasonal_strength: float

    def to_frame(self, periods: pd.PeriodIndex) -> pd.DataFrame:
        return pd.DataFrame(
            {"trend": self.trend, "seasonal": self.seasonal, "residual": self.residual},
            index=periods,
        )


@dataclass(frozen=True, eq=False)
class CycleDecomposition:
    """Hodrick-Prescott trend/cycle split with turning points."""
    sector: str
    trend: np.ndarray
    cycle: np.ndarray
    peaks: np.ndarray
    troughs: np.ndarray
    cycle_length: float
    amplitude: float
    hp_lambda: float

    @property
    def n_peaks(self) -> int:
        return len(self.peaks)

    @property
    def n_troughs(self) -> int:
        return len(self.troughs)


def seasonal_strength(seasonal: np.ndarray, residual: np.ndarray, observed: np.ndarray) -> float:
    """
    Strength of seasonality: max(0, 1 - Var(R) / Var(S + R)).

    Returns 0.0 when the detrended series carries no variance at all
    (relative to the observed variance).
    """
    denom = np.var(seasonal + residual)
    scale = np.var(observed)
    if denom <= 1e-10 * max(scale, np.finfo(float).tiny):
        return 0.0
    return float(max(0.0, 1.0 - np.var(residual) / denom))


def find_turning_points(cycle: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Local peaks and troughs of a cycle.

    A peak is where the sign of the first difference flips from + to -,
    a trough where it flips from - to +. Flat stretches (zero difference)
    break the pattern and are not counted.

    Returns:
        (peak_indices, trough_indices) into the cycle array
    """
    cycle = np.asarray(cycle, dtype=float)
    if len(cycle) < 3:
        empty = np.array([], dtype=int)
        return empty, empty

    change = np.diff(np.sign(np.diff(cycle)))
    peaks = np.where(change == -2)[0] + 1
    troughs = np.where(change == 2)[0] + 1
    return peaks.astype(int), troughs.astype(int)


def seasonal_index(series: FixedFrequencySeries) -> pd.Series:
    """
    Average level per calendar month relative to the mean of the monthly
    averages, scaled to 100.

    Returns:
        Series indexed by month 1..12 (NaN for months with no data)
    """
    s = series.to_series()
    monthly = s.groupby(s.index.month).mean().reindex(range(1, 13))
    base = monthly.mean()
    if not np.isfinite(base) or abs(base) < 1e-12:
        return pd.Series(np.nan, index=monthly.index, name="seasonal_index")
    index = monthly / base * 100.0
    index.index.name = "month"
    index.name = "seasonal_index"
    return index


class DecompositionEngine(BaseEngine):
    """
    Additive seasonal decomposition.

    Requires at least two full seasonal cycles (24 monthly points).
    Trend edges are extrapolated so every component covers the full
    input length.
    """

    name = "decomposition"

    def run(self, series: FixedFrequencySeries) -> DecompositionResult:
        period = series.seasonal_period
        n = len(series)
        if n < 2 * period:
            raise DecompositionUnavailable(
                f"{series.sector}: decomposition needs {2 * period} points, got {n}"
            )

        observed = np.asarray(series.values, dtype=float)
        result = seasonal_decompose(
            observed,
            model="additive",
            period=period,
            extrapolate_trend=period - 1,
        )

        trend = np.asarray(result.trend, dtype=float)
        seasonal = np.asarray(result.seasonal, dtype=float)
        residual = observed - trend - seasonal

        months = series.periods.month
        factors = {
            int(m): float(seasonal[np.argmax(months == m)])
            for m in range(1, 13)
            if (months == m).any()
        }
        strength = seasonal_strength(seasonal, residual, observed)

        logger.debug(f"Decomposed {series.sector}: seasonal strength={strength:.3f}")

        return DecompositionResult(
            sector=series.sector,
            trend=frozen_array(trend),
            seasonal=frozen_array(seasonal),
            residual=frozen_array(residual),
            seasonal_factors=factors,
            seasonal_strength=strength,
        )


class CycleEngine(BaseEngine):
    """
    Hodrick-Prescott business-cycle extraction.

    Solves min sum (y - tau)^2 + lambda * sum (second difference of tau)^2;
    cycle = y - tau.
    """

    name = "cycle"

    def run(self, series: FixedFrequencySeries) -> CycleDecomposition:
        n = len(series)
        if n < 3:
            raise InsufficientLengthError(f"{series.sector}: HP filter needs 3 points, got {n}")

        lamb = float(self.config.decomposition.hp_lambda)
        cycle, trend = hpfilter(np.asarray(series.values, dtype=float), lamb=lamb)
        cycle = np.asarray(cycle, dtype=float)
        trend = np.asarray(trend, dtype=float)

        peaks, troughs = find_turning_points(cycle)
        cycle_length = float(np.mean(np.diff(peaks))) if len(peaks) >= 2 else float("nan")
        amplitude = float(np.std(cycle, ddof=1)) if n >= 2 else float("nan")

        logger.debug(
            f"HP cycle {series.sector}: {len(peaks)} peaks, {len(troughs)} troughs, "
            f"length={cycle_length:.1f}, amplitude={amplitude:.3f}"
        )

        return CycleDecomposition(
            sector=series.sector,
            trend=frozen_array(trend),
            cycle=frozen_array(cycle),
            peaks=frozen_array(peaks, dtype=int),
            troughs=frozen_array(troughs, dtype=int),
            cycle_length=cycle_length,
            amplitude=amplitude,
            hp_lambda=lamb,
        )
