"""
Labor TS Summary Engines

Descriptive statistics of one sector's level series.

Measures:
- Annual averages, annual growth (%) and annual change
- Growth summary over annual growth: mean, median, min, max, sd, cv,
  years of positive and negative growth
- Level summary: mean, median, min, max, sd
- Peak and trough levels with the month they occurred in

Annual averages use the months present in each calendar year, so a
partial first or last year is averaged over what it has.
"""

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
import pandas as pd

from labor_ts.utils.logging import get_logger
from labor_ts.errors import InsufficientLengthError
from .base import BaseEngine
from .series import FixedFrequencySeries
from .volatility import safe_ratio, sample_std


logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class AnnualGrowthSummary:
    """
    Year-over-year growth of annual average levels.

    `annual` has one row per calendar year: year, n_months, average,
    growth_pct and change. The first year has no growth.
    """
    sector: str
    annual: pd.DataFrame
    n_years: int
    mean_growth: float
    median_growth: float
    min_growth: float
    max_growth: float
    sd_growth: float
    cv: float
    years_positive: int
    years_negative: int

    def summary_record(self) -> Dict[str, Any]:
        return {
            "sector": self.sector,
            "n_years": self.n_years,
            "mean_growth": self.mean_growth,
            "median_growth": self.median_growth,
            "min_growth": self.min_growth,
            "max_growth": self.max_growth,
            "sd_growth": self.sd_growth,
            "cv": self.cv,
            "years_positive": self.years_positive,
            "years_negative": self.years_negative,
        }


@dataclass(frozen=True)
class LevelSummary:
    """Level statistics with peak and trough for one sector."""
    sector: str
    n_obs: int
    mean: float
    median: float
    min: float
    max: float
    sd: float
    peak_value: float
    peak_period: pd.Period
    trough_value: float
    trough_period: pd.Period

    def record(self) -> Dict[str, Any]:
        return {
            "sector": self.sector,
            "n_obs": self.n_obs,
            "mean": self.mean,
            "median": self.median,
            "min": self.min,
            "max": self.max,
            "sd": self.sd,
            "peak_value": self.peak_value,
            "peak_date": self.peak_period.start_time,
            "trough_value": self.trough_value,
            "trough_date": self.trough_period.start_time,
        }


def annual_averages(series: FixedFrequencySeries) -> pd.DataFrame:
    """Annual average level, growth (%) and change from the previous year."""
    s = series.to_series()
    grouped = s.groupby(s.index.year)
    annual = pd.DataFrame({
        "n_months": grouped.size(),
        "average": grouped.mean(),
    })
    annual.index.name = "year"

    previous = annual["average"].shift(1)
    annual["growth_pct"] = [
        safe_ratio(cur - prev, prev) * 100 if np.isfinite(prev) else float("nan")
        for cur, prev in zip(annual["average"], previous)
    ]
    annual["change"] = annual["average"] - previous
    return annual.reset_index()


class AnnualGrowthEngine(BaseEngine):
    """
    Annual-average growth summary.

    Raises:
        InsufficientLengthError: Fewer than two calendar years, or no
            defined annual growth
    """

    name = "annual_growth"

    def run(self, series: FixedFrequencySeries) -> AnnualGrowthSummary:
        annual = annual_averages(series)
        if len(annual) < 2:
            raise InsufficientLengthError(
                f"{series.sector}: annual growth needs 2 calendar years, got {len(annual)}"
            )

        growth = annual["growth_pct"].dropna().to_numpy(dtype=float)
        if len(growth) == 0:
            raise InsufficientLengthError(f"{series.sector}: no defined annual growth")

        mean = float(np.mean(growth))
        sd = sample_std(growth)
        summary = AnnualGrowthSummary(
            sector=series.sector,
            annual=annual,
            n_years=len(growth),
            mean_growth=mean,
            median_growth=float(np.median(growth)),
            min_growth=float(np.min(growth)),
            max_growth=float(np.max(growth)),
            sd_growth=sd,
            cv=safe_ratio(sd, abs(mean)),
            years_positive=int(np.sum(growth > 0)),
            years_negative=int(np.sum(growth < 0)),
        )

        logger.debug(
            f"Annual growth {series.sector}: {summary.n_years} years, "
            f"mean {mean:.2f}%, {summary.years_negative} negative"
        )
        return summary


class LevelSummaryEngine(BaseEngine):
    """Level statistics, peak and trough (first occurrence on ties)."""

    name = "level_summary"

    def run(self, series: FixedFrequencySeries) -> LevelSummary:
        values = np.asarray(series.values, dtype=float)
        if len(values) == 0:
            raise InsufficientLengthError(f"{series.sector}: empty series")

        peak = int(np.argmax(values))
        trough = int(np.argmin(values))
        return LevelSummary(
            sector=series.sector,
            n_obs=len(values),
            mean=float(np.mean(values)),
            median=float(np.median(values)),
            min=float(values[trough]),
            max=float(values[peak]),
            sd=sample_std(values),
            peak_value=float(values[peak]),
            peak_period=series.period_at(peak),
            trough_value=float(values[trough]),
            trough_period=series.period_at(trough),
        )
