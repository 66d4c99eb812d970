"""
Labor TS Forecast Engine

Automatic seasonal ARIMA forecasting for one monthly series.

Measures:
- ADF unit-root statistic (informational only)
- Differencing orders: seasonal D from seasonal strength, d from KPSS
- (p, q)(P, Q) chosen by AIC over a bounded grid
- 12-step point forecast with 80% / 95% interval bounds

Fallbacks:
- Deterministic series (zero-variance after differencing): exact drift
  extension with collapsed bounds
- No candidate fits: seasonal random walk, flagged degraded

Input: FixedFrequencySeries of at least two seasonal cycles
"""

import warnings
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.stattools import adfuller, kpss

from labor_ts.utils.logging import get_logger
from labor_ts.errors import InsufficientLengthError, ModelFitFailure
from .base import BaseEngine, frozen_array
from .decomposition import DecompositionEngine
from .series import FixedFrequencySeries


logger = get_logger(__name__)

Z_80 = float(stats.norm.ppf(0.90))
Z_95 = float(stats.norm.ppf(0.975))


@dataclass(frozen=True, eq=False)
class ForecastResult:
    """Forecast with model provenance and interval bounds."""
    sector: str
    method: str
    order: Tuple[int, int, int]
    seasonal_order: Tuple[int, int, int, int]
    trend: str
    aic: float
    bic: float
    periods: pd.PeriodIndex
    mean: np.ndarray
    lower_80: np.ndarray
    upper_80: np.ndarray
    lower_95: np.ndarray
    upper_95: np.ndarray
    adf_statistic: float
    adf_pvalue: float
    n_candidates: int = 0
    degraded: bool = False
    degraded_reason: Optional[str] = None

    @property
    def horizon(self) -> int:
        return len(self.mean)

    @property
    def model_label(self) -> str:
        p, d, q = self.order
        P, D, Q, s = self.seasonal_order
        label = f"ARIMA({p},{d},{q})({P},{D},{Q})[{s}]"
        if self.trend == "t" and d + D == 1:
            label += " with drift"
        elif self.trend == "c":
            label += " with mean"
        return label

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "forecast": self.mean,
                "lower_80": self.lower_80,
                "upper_80": self.upper_80,
                "lower_95": self.lower_95,
                "upper_95": self.upper_95,
            },
            index=self.periods,
        )


class ForecastEngine(BaseEngine):
    """
    Seasonal ARIMA order search and forecasting.

    Candidate ranking key: (AIC, p+q+P+Q, enumeration index), enumeration
    being nested ascending loops over p, q, P, Q. The search is a pure
    function of the input, so refitting gives the same order.
    """

    name = "forecast"

    def run(self, series: FixedFrequencySeries) -> ForecastResult:
        cfg = self.config.forecast
        period = series.seasonal_period
        y = np.asarray(series.values, dtype=float)
        n = len(y)

        if n < 2 * period:
            raise InsufficientLengthError(
                f"{series.sector}: forecasting needs {2 * period} points, got {n}"
            )

        adf_stat, adf_p = self._adf(y)
        periods = pd.period_range(series.end + 1, periods=cfg.horizon, freq="M")

        D = self._seasonal_differences(series)
        work = y[period:] - y[:-period] if D else y
        d, work = self._nonseasonal_differences(work)

        if _is_constant(work, scale=y):
            return self._deterministic(series, y, d, D, periods, adf_stat, adf_p)

        try:
            fitted, order, seasonal_order, trend, n_candidates = self._search(y, d, D, period)
            mean, ci80, ci95 = self._forecast(fitted, cfg.horizon)
        except ModelFitFailure as e:
            logger.warning(f"Forecast {series.sector}: {e}; using seasonal naive fallback")
            return self._seasonal_naive(series, y, periods, adf_stat, adf_p, reason=str(e))

        lower_80, upper_80, lower_95, upper_95 = _ordered_bounds(mean, ci80, ci95)

        result = ForecastResult(
            sector=series.sector,
            method="arima",
            order=order,
            seasonal_order=seasonal_order,
            trend=trend,
            aic=float(fitted.aic),
            bic=float(fitted.bic),
            periods=periods,
            mean=frozen_array(mean),
            lower_80=frozen_array(lower_80),
            upper_80=frozen_array(upper_80),
            lower_95=frozen_array(lower_95),
            upper_95=frozen_array(upper_95),
            adf_statistic=adf_stat,
            adf_pvalue=adf_p,
            n_candidates=n_candidates,
        )

        logger.info(
            f"Forecast {series.sector}: {result.model_label}, AIC={result.aic:.2f}, "
            f"{n_candidates} candidates"
        )
        return result

    # -------------------------------------------------------------------------
    # Differencing
    # -------------------------------------------------------------------------

    def _adf(self, y: np.ndarray) -> Tuple[float, float]:
        """ADF statistic and p-value; NaN when the test cannot run."""
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                result = adfuller(y, autolag="AIC")
            return float(result[0]), float(result[1])
        except (ValueError, np.linalg.LinAlgError) as e:
            logger.debug(f"ADF test skipped: {e}")
            return float("nan"), float("nan")

    def _seasonal_differences(self, series: FixedFrequencySeries) -> int:
        """D = 1 when seasonality is strong, else 0."""
        decomposition = DecompositionEngine(self.config).run(series)
        threshold = self.config.forecast.seasonal_strength_threshold
        return 1 if decomposition.seasonal_strength > threshold else 0

    def _nonseasonal_differences(self, work: np.ndarray) -> Tuple[int, np.ndarray]:
        """Difference while KPSS rejects level stationarity, up to max_d."""
        cfg = self.config.forecast
        d = 0
        while d < cfg.max_d and len(work) > 3 and not _is_constant(work):
            if not self._kpss_rejects(work, cfg.kpss_alpha):
                break
            work = np.diff(work)
            d += 1
        return d, work

    def _kpss_rejects(self, work: np.ndarray, alpha: float) -> bool:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                _, p_value, _, _ = kpss(work, regression="c", nlags="auto")
        except (ValueError, OverflowError, ZeroDivisionError) as e:
            logger.debug(f"KPSS test skipped: {e}")
            return False
        return p_value < alpha

    # -------------------------------------------------------------------------
    # Model search
    # -------------------------------------------------------------------------

    def _search(self, y: np.ndarray, d: int, D: int, period: int):
        """
        Fit every candidate and keep the best by (AIC, total order, index).

        Raises:
            ModelFitFailure: No candidate produced a finite AIC
        """
        cfg = self.config.forecast
        trend = _trend_for(d + D)

        best = None
        best_key = None
        n_candidates = 0
        failures: List[str] = []

        index = 0
        for p in range(cfg.max_p + 1):
            for q in range(cfg.max_q + 1):
                for P in range(cfg.max_P + 1):
                    for Q in range(cfg.max_Q + 1):
                        order = (p, d, q)
                        seasonal_order = (P, D, Q, period) if (P or D or Q) else (0, 0, 0, 0)
                        key_index = index
                        index += 1

                        fitted = self._fit(y, order, seasonal_order, trend, failures)
                        if fitted is None:
                            continue
                        n_candidates += 1

                        key = (round(float(fitted.aic), 8), p + q + P + Q, key_index)
                        if best_key is None or key < best_key:
                            best_key = key
                            best = (fitted, order, (P, D, Q, period), trend)

        if best is None:
            detail = failures[-1] if failures else "no candidates"
            raise ModelFitFailure(f"no ARIMA candidate could be fitted ({detail})")

        fitted, order, seasonal_order, trend = best
        return fitted, order, seasonal_order, trend, n_candidates

    def _fit(self, y, order, seasonal_order, trend, failures: List[str]):
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                model = ARIMA(y, order=order, seasonal_order=seasonal_order, trend=trend)
                fitted = model.fit(method_kwargs={"maxiter": self.config.forecast.maxiter})
        except (ValueError, np.linalg.LinAlgError, IndexError) as e:
            failures.append(f"{order}x{seasonal_order}: {e}")
            return None

        if not np.isfinite(fitted.aic):
            failures.append(f"{order}x{seasonal_order}: non-finite AIC")
            return None
        return fitted

    def _forecast(self, fitted, horizon: int):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            forecast = fitted.get_forecast(steps=horizon)
            mean = np.asarray(forecast.predicted_mean, dtype=float)
            ci80 = np.asarray(forecast.conf_int(alpha=0.20), dtype=float)
            ci95 = np.asarray(forecast.conf_int(alpha=0.05), dtype=float)

        if not (np.isfinite(mean).all() and np.isfinite(ci80).all() and np.isfinite(ci95).all()):
            raise ModelFitFailure("selected model produced non-finite forecasts")
        return mean, ci80, ci95

    # -------------------------------------------------------------------------
    # Fallbacks
    # -------------------------------------------------------------------------

    def _deterministic(self, series, y, d, D, periods, adf_stat, adf_p) -> ForecastResult:
        """Exact extension of a series with no stochastic component."""
        period = series.seasonal_period
        horizon = len(periods)

        base = y[period:] - y[:-period] if D else y
        levels = [base]
        for _ in range(d):
            levels.append(np.diff(levels[-1]))

        # Highest difference is constant; integrate it back down
        future = np.full(horizon, levels[-1][-1])
        for level in reversed(levels[:-1]):
            future = level[-1] + np.cumsum(future)

        if D:
            extended = list(y)
            for step in range(horizon):
                extended.append(extended[-period] + future[step])
            future = np.asarray(extended[len(y):])

        mean = frozen_array(future)
        logger.info(f"Forecast {series.sector}: deterministic series, drift extension (d={d}, D={D})")

        return ForecastResult(
            sector=series.sector,
            method="deterministic-drift",
            order=(0, d, 0),
            seasonal_order=(0, D, 0, period),
            trend=_trend_for(d + D),
            aic=float("nan"),
            bic=float("nan"),
            periods=periods,
            mean=mean,
            lower_80=mean,
            upper_80=mean,
            lower_95=mean,
            upper_95=mean,
            adf_statistic=adf_stat,
            adf_pvalue=adf_p,
        )

    def _seasonal_naive(self, series, y, periods, adf_stat, adf_p, reason: str) -> ForecastResult:
        """Repeat the last seasonal cycle; widen bounds by seasonal-difference spread."""
        period = series.seasonal_period
        horizon = len(periods)

        steps = np.arange(horizon)
        mean = y[-period:][steps % period]

        seasonal_diff = y[period:] - y[:-period]
        sigma = float(np.std(seasonal_diff, ddof=1)) if len(seasonal_diff) > 1 else 0.0
        se = sigma * np.sqrt(steps // period + 1)

        return ForecastResult(
            sector=series.sector,
            method="seasonal-naive",
            order=(0, 0, 0),
            seasonal_order=(0, 1, 0, period),
            trend="n",
            aic=float("nan"),
            bic=float("nan"),
            periods=periods,
            mean=frozen_array(mean),
            lower_80=frozen_array(mean - Z_80 * se),
            upper_80=frozen_array(mean + Z_80 * se),
            lower_95=frozen_array(mean - Z_95 * se),
            upper_95=frozen_array(mean + Z_95 * se),
            adf_statistic=adf_stat,
            adf_pvalue=adf_p,
            degraded=True,
            degraded_reason=f"seasonal naive fallback: {reason}",
        )


def _trend_for(total_differences: int) -> str:
    """Constant without differencing, drift with one difference, none beyond."""
    if total_differences == 0:
        return "c"
    if total_differences == 1:
        return "t"
    return "n"


def _is_constant(values: np.ndarray, scale: Optional[np.ndarray] = None) -> bool:
    values = np.asarray(values, dtype=float)
    if len(values) == 0:
        return True
    reference = np.abs(scale if scale is not None else values).max()
    return float(np.ptp(values)) <= 1e-9 * max(1.0, float(reference))


def _ordered_bounds(mean, ci80, ci95):
    lower_80 = np.minimum(ci80[:, 0], mean)
    upper_80 = np.maximum(ci80[:, 1], mean)
    lower_95 = np.minimum(ci95[:, 0], lower_80)
    upper_95 = np.maximum(ci95[:, 1], upper_80)
    return lower_80, upper_80, lower_95, upper_95
