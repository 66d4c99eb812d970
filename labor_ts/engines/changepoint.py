"""
Labor TS Changepoint Engine

Detects shifts in the mean level of a series (structural breaks).

Measures:
- Break indices (first observation of each new segment)
- Break periods
- Segment means

Method: PELT search with an L2 (within-segment variance) cost. The penalty
scales with log(n) and with the noise variance, estimated robustly from
first differences so a single level shift does not inflate it.

Input: FixedFrequencySeries levels (not growth)
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import ruptures as rpt

from labor_ts.utils.logging import get_logger
from labor_ts.config import AnalysisConfig
from .base import BaseEngine, Outcome
from .series import FixedFrequencySeries


logger = get_logger(__name__)

# Consistency constant turning a MAD into a normal standard deviation
MAD_SCALE = 1.4826


@dataclass(frozen=True, eq=False)
class ChangepointSet:
    """Ordered break indices and periods; empty when no break is found."""
    sector: str
    indices: Tuple[int, ...]
    periods: Tuple[pd.Period, ...]
    segment_means: Tuple[float, ...] = ()
    penalty: float = float("nan")

    def __len__(self) -> int:
        return len(self.indices)

    @property
    def n_breaks(self) -> int:
        return len(self.indices)

    @classmethod
    def empty(cls, sector: str, segment_mean: Optional[float] = None) -> "ChangepointSet":
        means = () if segment_mean is None else (float(segment_mean),)
        return cls(sector=sector, indices=(), periods=(), segment_means=means)


def noise_variance(values: np.ndarray) -> float:
    """
    Noise variance estimated from first differences.

    Uses the MAD of the differences (robust to a handful of level shifts);
    falls back to their plain variance when the MAD is zero. Differences of
    white noise carry twice its variance, hence the division by 2.
    """
    diffs = np.diff(np.asarray(values, dtype=float))
    if len(diffs) == 0:
        return 0.0

    mad = np.median(np.abs(diffs - np.median(diffs)))
    sigma2 = (MAD_SCALE * mad) ** 2 / 2.0
    if sigma2 <= 0 and len(diffs) > 1:
        sigma2 = float(np.var(diffs, ddof=1)) / 2.0
    return float(sigma2)


class ChangepointEngine(BaseEngine):
    """
    Mean-shift detection with PELT.

    When constructed with enabled=False (the caller's capabilities exclude
    changepoint detection) execute() is a no-op that reports the step as
    unavailable and hands back an empty ChangepointSet.
    """

    name = "changepoint"

    def __init__(self, config: Optional[AnalysisConfig] = None, enabled: bool = True):
        super().__init__(config)
        self.enabled = enabled

    def execute(self, series: FixedFrequencySeries) -> Outcome:
        if not self.enabled:
            logger.info(f"Changepoint detection disabled; skipping {series.sector}")
            return Outcome.unavailable(
                "changepoint detection disabled by capabilities",
                value=ChangepointSet.empty(series.sector),
            )
        return super().execute(series)

    def run(self, series: FixedFrequencySeries) -> ChangepointSet:
        cfg = self.config.changepoint
        values = np.asarray(series.values, dtype=float)
        n = len(values)

        if n < 2 * cfg.min_size:
            return ChangepointSet.empty(series.sector, float(np.mean(values)))

        sigma2 = noise_variance(values)
        if sigma2 <= 0:
            # Constant series: nothing can shift
            return ChangepointSet.empty(series.sector, float(np.mean(values)))

        penalty = cfg.penalty_beta * sigma2 * np.log(n)

        algo = rpt.Pelt(model="l2", min_size=cfg.min_size, jump=1).fit(values.reshape(-1, 1))
        breakpoints = algo.predict(pen=penalty)

        indices = tuple(int(b) for b in breakpoints if b < n)
        bounds = (0,) + indices + (n,)
        means = tuple(float(values[a:b].mean()) for a, b in zip(bounds[:-1], bounds[1:]))
        periods = tuple(series.period_at(i) for i in indices)

        logger.info(
            f"Changepoints {series.sector}: {len(indices)} break(s)"
            + (f" at {', '.join(str(p) for p in periods)}" if periods else "")
        )

        return ChangepointSet(
            sector=series.sector,
            indices=indices,
            periods=periods,
            segment_means=means,
            penalty=float(penalty),
        )
