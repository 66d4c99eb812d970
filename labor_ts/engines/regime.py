"""
Labor TS Regime Classifier

Groups growth observations into three growth regimes.

Measures:
- Regime per observation (1 = Low, 2 = Moderate, 3 = High Growth)
- Regime centroids
- Occupancy, mean growth and duration (years) per regime
- Dominant regime (longest total duration)

Method: 1-D k-means with a fixed seed and multiple restarts.

Input: GrowthSeries (only defined entries are used)
"""

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans

from labor_ts.utils.logging import get_logger
from labor_ts.errors import InsufficientVarietyError
from .base import BaseEngine, frozen_array


logger = get_logger(__name__)

N_REGIMES = 3
LOW, MODERATE, HIGH = "Low Growth", "Moderate Growth", "High Growth"
REGIME_LABELS = {1: LOW, 2: MODERATE, 3: HIGH}


@dataclass(frozen=True, eq=False)
class RegimeAssignment:
    """Per-observation regimes plus centroid and occupancy tables."""
    sector: str
    periods: pd.PeriodIndex
    growth: np.ndarray
    regimes: np.ndarray
    centroids: Dict[str, float]
    summary: pd.DataFrame
    dominant_regime: str
    inertia: float

    @property
    def labels(self) -> Tuple[str, ...]:
        return tuple(REGIME_LABELS[int(r)] for r in self.regimes)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"growth": self.growth, "regime": self.regimes, "regime_label": self.labels},
            index=self.periods,
        )


def rank_clusters(centers: np.ndarray) -> Dict[int, int]:
    """
    Map raw k-means cluster ids to ordinal regimes (1 = Low .. 3 = High).

    The highest centroid is High; among equal highest centroids the lowest
    cluster index wins. The lowest remaining centroid is Low, again with
    the lowest index winning ties. The remaining cluster is Moderate.
    """
    centers = np.asarray(centers, dtype=float).ravel()
    high = int(np.argmax(centers))
    remaining = [k for k in range(len(centers)) if k != high]
    low = min(remaining, key=lambda k: (centers[k], k))
    moderate = next(k for k in remaining if k != low)
    return {low: 1, moderate: 2, high: 3}


class RegimeClassifier(BaseEngine):
    """
    Three-regime k-means classifier for growth rates.

    Deterministic: the same input and seed always give the same labels.
    """

    name = "regime"

    def run(self, growth) -> RegimeAssignment:
        """
        Args:
            growth: GrowthSeries

        Raises:
            InsufficientVarietyError: Fewer than 3 distinct defined values
        """
        cfg = self.config.regime
        defined = growth.defined()
        x = defined.to_numpy(dtype=float)

        n_distinct = len(np.unique(x))
        if n_distinct < N_REGIMES:
            raise InsufficientVarietyError(
                f"{growth.sector}: need {N_REGIMES} distinct growth values, got {n_distinct}"
            )

        model = KMeans(
            n_clusters=N_REGIMES,
            n_init=cfg.n_init,
            max_iter=cfg.max_iter,
            random_state=cfg.seed,
        )
        raw = model.fit_predict(x.reshape(-1, 1))
        centers = model.cluster_centers_.ravel()

        ranking = rank_clusters(centers)
        regimes = np.array([ranking[int(c)] for c in raw], dtype=int)
        centroids = {REGIME_LABELS[ranking[k]]: float(centers[k]) for k in range(N_REGIMES)}

        summary = self._summarize(x, regimes, centroids)
        dominant = self._dominant(summary)

        logger.info(
            f"Regimes {growth.sector}: "
            + ", ".join(f"{label}={centroids[label]:.2f}" for label in (LOW, MODERATE, HIGH))
            + f"; dominant={dominant}"
        )

        return RegimeAssignment(
            sector=growth.sector,
            periods=defined.index,
            growth=frozen_array(x),
            regimes=frozen_array(regimes, dtype=int),
            centroids=centroids,
            summary=summary,
            dominant_regime=dominant,
            inertia=float(model.inertia_),
        )

    def _summarize(self, x: np.ndarray, regimes: np.ndarray, centroids: Dict[str, float]) -> pd.DataFrame:
        rows = []
        for regime, label in REGIME_LABELS.items():
            members = x[regimes == regime]
            rows.append({
                "regime": regime,
                "regime_label": label,
                "centroid": centroids[label],
                "count": int(len(members)),
                "avg_growth": float(members.mean()) if len(members) else float("nan"),
                "duration_years": len(members) / 12.0,
            })
        return pd.DataFrame(rows)

    def _dominant(self, summary: pd.DataFrame) -> str:
        # Ties resolve towards the higher regime
        ordered = summary.sort_values(["duration_years", "regime"], ascending=[False, False])
        return str(ordered.iloc[0]["regime_label"])
