"""
Labor TS Causality Engines

Cross-sector dynamics: who helps predict whom, and who leads whom.

Measures:
- VAR lag order (AIC) and fitted VAR with constant
- Pairwise Granger F-statistic and p-value for every ordered sector pair
- Impulse responses (response of each sector to a unit shock in each sector)
- Leading-indicator scan: cross-correlation of a sector with its own
  lagged copy over a bounded lag window
- Cross-sector lead/lag: lag maximising |correlation| per sector pair
- Contemporaneous correlation matrix of sector levels

Granger results are predictive-strength statistics, not claims of
physical causation.

Normalization: first differences by default (stationarity for the F-test)
"""

import warnings
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.tsa.api import VAR

from labor_ts.utils.logging import get_logger
from labor_ts.errors import FeatureUnavailable, InsufficientLengthError
from .base import BaseEngine, frozen_array
from .series import FixedFrequencySeries


logger = get_logger(__name__)


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True, eq=False)
class CausalityGraph:
    """
    Dense Granger-causality graph over sectors.

    Matrices are indexed [source, target] in `sectors` order; the diagonal
    is NaN. impulse_responses[h, target, source] is the response of target
    h steps after a unit shock to source.
    """
    sectors: Tuple[str, ...]
    lag_order: int
    n_obs: int
    f_statistic: np.ndarray
    p_value: np.ndarray
    significance: float
    impulse_responses: np.ndarray
    differenced: bool
    degraded: bool = False
    degraded_reason: Optional[str] = None

    def _index(self, sector: str) -> int:
        try:
            return self.sectors.index(sector)
        except ValueError:
            raise KeyError(f"Unknown sector: {sector}. Available: {list(self.sectors)}") from None

    @property
    def significant(self) -> np.ndarray:
        """Boolean [source, target] matrix of p < significance."""
        with np.errstate(invalid="ignore"):
            mask = self.p_value < self.significance
        np.fill_diagonal(mask, False)
        return mask

    def p(self, source: str, target: str) -> float:
        return float(self.p_value[self._index(source), self._index(target)])

    def f(self, source: str, target: str) -> float:
        return float(self.f_statistic[self._index(source), self._index(target)])

    def is_significant(self, source: str, target: str) -> bool:
        return bool(self.significant[self._index(source), self._index(target)])

    def edges(self) -> List[Tuple[str, str]]:
        """Significant (source, target) pairs."""
        rows, cols = np.nonzero(self.significant)
        return [(self.sectors[i], self.sectors[j]) for i, j in zip(rows, cols)]

    def to_frame(self) -> pd.DataFrame:
        """Long table, one row per ordered pair."""
        records = []
        significant = self.significant
        for i, source in enumerate(self.sectors):
            for j, target in enumerate(self.sectors):
                if i == j:
                    continue
                records.append({
                    "source": source,
                    "target": target,
                    "lag_order": self.lag_order,
                    "f_statistic": float(self.f_statistic[i, j]),
                    "p_value": float(self.p_value[i, j]),
                    "significant": bool(significant[i, j]),
                })
        return pd.DataFrame(records)

    def irf_frame(self) -> pd.DataFrame:
        """Long table of impulse responses (step, shock, response, value)."""
        records = []
        horizon = self.impulse_responses.shape[0]
        for h in range(horizon):
            for j, shock in enumerate(self.sectors):
                for i, response in enumerate(self.sectors):
                    records.append({
                        "step": h,
                        "shock": shock,
                        "response": response,
                        "value": float(self.impulse_responses[h, i, j]),
                    })
        return pd.DataFrame(records)


@dataclass(frozen=True, eq=False)
class LeadingIndicatorResult:
    """Cross-correlation of a sector against its own lagged copy."""
    sector: str
    indicator_lag: int
    optimal_lag: int
    max_correlation: float
    correlations: pd.DataFrame


# =============================================================================
# Helpers
# =============================================================================

def align_sectors(series: Mapping[str, FixedFrequencySeries]) -> pd.DataFrame:
    """
    Wide panel (periods x sectors) on common periods.

    Rows where any sector is missing are dropped.
    """
    if not series:
        return pd.DataFrame()
    wide = pd.concat({name: s.to_series() for name, s in series.items()}, axis=1)
    return wide.sort_index().dropna(how="any")


def cross_correlate(x: np.ndarray, y: np.ndarray, max_lag: int) -> pd.DataFrame:
    """
    Normalized cross-correlation at lags -max_lag..max_lag.

    Positive lag means x leads y (x_t paired with y_{t+lag}).
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    correlations = []

    for lag in range(-max_lag, max_lag + 1):
        if lag < 0:
            x_slice = x[-lag:]
            y_slice = y[:lag]
        elif lag > 0:
            x_slice = x[:-lag]
            y_slice = y[lag:]
        else:
            x_slice = x
            y_slice = y

        corr = np.nan
        if len(x_slice) > 1 and np.ptp(x_slice) > 0 and np.ptp(y_slice) > 0:
            with np.errstate(invalid="ignore", divide="ignore"):
                corr = np.corrcoef(x_slice, y_slice)[0, 1]

        correlations.append({"lag": lag, "correlation": float(corr)})

    return pd.DataFrame(correlations)


def ccf(x: np.ndarray, y: np.ndarray, max_lag: int) -> pd.DataFrame:
    """
    Cross-correlation with lag k pairing x[t + k] with y[t].

    Same values as cross_correlate with the lag sign reversed.
    """
    xcorr = cross_correlate(x, y, max_lag)
    xcorr["lag"] = -xcorr["lag"]
    return xcorr.sort_values("lag").reset_index(drop=True)


def best_lag(xcorr: pd.DataFrame) -> Tuple[int, float]:
    """
    Lag with the largest |correlation| (first one on ties).

    Raises:
        FeatureUnavailable: Every correlation is undefined
    """
    magnitude = xcorr["correlation"].abs()
    if magnitude.isna().all():
        raise FeatureUnavailable("cross-correlation undefined (constant input)")
    pos = int(np.nanargmax(magnitude.to_numpy()))
    return int(xcorr["lag"].iloc[pos]), float(xcorr["correlation"].iloc[pos])


def _lag_design(data: np.ndarray, lags: int) -> np.ndarray:
    """[1, Y_{t-1}, ..., Y_{t-p}] for t = p..T-1; lag-major column order."""
    n = data.shape[0]
    blocks = [np.ones((n - lags, 1))]
    for lag in range(1, lags + 1):
        blocks.append(data[lags - lag:n - lag, :])
    return np.hstack(blocks)


def _rss(design: np.ndarray, target: np.ndarray) -> float:
    beta = np.linalg.lstsq(design, target, rcond=None)[0]
    resid = target - design @ beta
    return float(resid @ resid)


def granger_f_test(data: np.ndarray, source: int, target: int, lags: int) -> Tuple[float, float]:
    """
    Does source's history improve prediction of target?

    Compares:
    - Unrestricted: target_t on a constant and `lags` lags of every series
    - Restricted:   the same without source's lags

    F = ((RSS_r - RSS_u) / lags) / (RSS_u / df_den)

    An exact unrestricted fit that the restricted model cannot match gives
    F = inf, p = 0.

    Returns:
        (F-statistic, p-value)
    """
    k = data.shape[1]
    design = _lag_design(data, lags)
    y = data[lags:, target]

    drop = [1 + (lag - 1) * k + source for lag in range(1, lags + 1)]
    keep = [c for c in range(design.shape[1]) if c not in drop]

    df_num = lags
    df_den = design.shape[0] - design.shape[1]
    if df_den <= 0:
        raise InsufficientLengthError(
            f"not enough observations for {lags} lags across {k} series"
        )

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        rss_u = _rss(design, y)
        rss_r = _rss(design[:, keep], y)

    tss = float(np.sum((y - y.mean()) ** 2))
    tol = 1e-12 * max(tss, np.finfo(float).tiny)

    if rss_u <= tol:
        if rss_r - rss_u > tol:
            return float("inf"), 0.0
        return 0.0, 1.0

    f_stat = max(((rss_r - rss_u) / df_num) / (rss_u / df_den), 0.0)
    p_value = float(stats.f.sf(f_stat, df_num, df_den))
    return float(f_stat), p_value


# =============================================================================
# Engines
# =============================================================================

class CausalityEngine(BaseEngine):
    """
    VAR-based Granger causality across sectors.

    Outputs:
        - CausalityGraph (shared by every sector pair)
    """

    name = "causality"

    def run(self, wide: pd.DataFrame) -> CausalityGraph:
        """
        Args:
            wide: Periods x sectors; rows with missing values are dropped

        Raises:
            FeatureUnavailable: Fewer than 2 aligned sectors
            InsufficientLengthError: Too few rows for even one lag
        """
        cfg = self.config.causality
        data = wide.dropna(how="any")
        sectors = tuple(str(c) for c in data.columns)
        k = len(sectors)

        if k < 2:
            raise FeatureUnavailable(f"causality needs 2 aligned sectors, got {k}")

        if cfg.difference:
            data = data.diff().dropna(how="any")

        n = len(data)
        max_lag = min(cfg.max_lag, (n - 2) // (k + 1))
        if max_lag < 1:
            raise InsufficientLengthError(
                f"causality needs more aligned observations ({n} rows for {k} sectors)"
            )

        values = data.to_numpy(dtype=float)
        model = VAR(pd.DataFrame(values, columns=list(sectors)))

        lags, degraded_reason = self._select_lag_order(model, max_lag)

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            results = model.fit(maxlags=lags, trend="c")
            irf = np.asarray(results.ma_rep(maxn=cfg.irf_horizon), dtype=float)

        f_matrix = np.full((k, k), np.nan)
        p_matrix = np.full((k, k), np.nan)
        for i in range(k):
            for j in range(k):
                if i == j:
                    continue
                f_matrix[i, j], p_matrix[i, j] = granger_f_test(values, i, j, lags)

        graph = CausalityGraph(
            sectors=sectors,
            lag_order=lags,
            n_obs=n,
            f_statistic=frozen_array(f_matrix),
            p_value=frozen_array(p_matrix),
            significance=cfg.significance,
            impulse_responses=frozen_array(irf),
            differenced=cfg.difference,
            degraded=degraded_reason is not None,
            degraded_reason=degraded_reason,
        )

        logger.info(
            f"Granger causality complete: {len(graph.edges())}/{k * (k - 1)} "
            f"significant pairs at p<{cfg.significance} (VAR lag {lags}, {n} obs)"
        )
        return graph

    def _select_lag_order(self, model: VAR, max_lag: int) -> Tuple[int, Optional[str]]:
        """AIC lag order (at least 1); lag 1 if selection breaks down numerically."""
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                selection = model.select_order(maxlags=max_lag, trend="c")
            lags = selection.aic
        except (np.linalg.LinAlgError, ValueError) as e:
            logger.warning(f"VAR lag selection failed ({e}); falling back to lag 1")
            return 1, f"lag selection failed, lag 1 used: {e}"

        if lags is None or not np.isfinite(lags):
            return 1, "lag selection returned no order, lag 1 used"
        return max(1, int(lags)), None


class LeadingIndicatorEngine(BaseEngine):
    """
    Leading-indicator scan for one sector.

    The indicator is the sector's own series lagged `indicator_lag`
    periods; the scan reports the lag within +/- ccf_max_lag where its
    correlation with the live series peaks in magnitude. This is one
    internal lag examined over a window, not a search over candidate
    indicator lags.

    Lags follow the ccf convention: lag k correlates indicator[t + k] with
    series[t], so the lagged copy lines up with the series at
    k = +indicator_lag.
    """

    name = "leading_indicator"

    def run(self, series: FixedFrequencySeries) -> LeadingIndicatorResult:
        cfg = self.config.causality
        s = series.to_series()
        frame = pd.concat({"indicator": s.shift(cfg.indicator_lag), "target": s}, axis=1).dropna()

        if len(frame) <= cfg.ccf_max_lag + 2:
            raise InsufficientLengthError(
                f"{series.sector}: leading-indicator scan needs more than "
                f"{cfg.ccf_max_lag + 2} aligned points, got {len(frame)}"
            )

        xcorr = ccf(frame["indicator"].to_numpy(), frame["target"].to_numpy(), cfg.ccf_max_lag)
        lag, corr = best_lag(xcorr)

        logger.debug(f"Leading indicator {series.sector}: optimal lag {lag}, r={corr:.3f}")
        return LeadingIndicatorResult(
            sector=series.sector,
            indicator_lag=cfg.indicator_lag,
            optimal_lag=lag,
            max_correlation=corr,
            correlations=xcorr,
        )


class LeadLagEngine(BaseEngine):
    """
    Cross-sector lead/lag structure from cross-correlations of first
    differences.

    Outputs:
        - DataFrame, one row per unordered sector pair
    """

    name = "lead_lag"

    def run(self, wide: pd.DataFrame) -> pd.DataFrame:
        cfg = self.config.causality
        data = wide.dropna(how="any")
        sectors = [str(c) for c in data.columns]

        if len(sectors) < 2:
            raise FeatureUnavailable(f"lead/lag needs 2 aligned sectors, got {len(sectors)}")

        changes = data.diff().dropna(how="any")
        if len(changes) <= cfg.ccf_max_lag + 2:
            raise InsufficientLengthError(
                f"lead/lag needs more than {cfg.ccf_max_lag + 2} aligned changes, got {len(changes)}"
            )

        records: List[Dict] = []
        for i, first in enumerate(sectors):
            for j, second in enumerate(sectors):
                if i >= j:
                    continue
                x = changes[first].to_numpy()
                y = changes[second].to_numpy()
                xcorr = cross_correlate(x, y, cfg.ccf_max_lag)
                lag0 = float(xcorr.loc[xcorr["lag"] == 0, "correlation"].iloc[0])
                try:
                    lag, corr = best_lag(xcorr)
                except FeatureUnavailable:
                    lag, corr = None, float("nan")

                records.append({
                    "sector_1": first,
                    "sector_2": second,
                    "optimal_lag": lag,
                    "optimal_correlation": corr,
                    "lag_0_correlation": lag0,
                })

        table = pd.DataFrame(
            records,
            columns=["sector_1", "sector_2", "optimal_lag", "optimal_correlation", "lag_0_correlation"],
        )
        leading = int((table["optimal_lag"].fillna(0) > 0).sum())
        logger.info(f"Lead/lag complete: {len(table)} pairs, {leading} with sector_1 leading")
        return table


class CorrelationEngine(BaseEngine):
    """
    Contemporaneous correlation matrix of sector levels.

    Uses the complete rows only: a period missing in any sector is dropped
    for every pair.
    """

    name = "correlation"

    def run(self, wide: pd.DataFrame) -> pd.DataFrame:
        data = wide.dropna(how="any")
        if data.shape[1] < 2:
            raise FeatureUnavailable(f"correlation needs 2 aligned sectors, got {data.shape[1]}")
        if len(data) < 3:
            raise InsufficientLengthError(f"correlation needs at least 3 aligned rows, got {len(data)}")

        matrix = data.astype(float).corr()
        matrix.columns = [str(c) for c in matrix.columns]
        matrix.index = [str(c) for c in matrix.index]
        matrix.index.name = "sector"
        logger.info(f"Correlation matrix complete: {data.shape[1]} sectors, {len(data)} periods")
        return matrix
