"""
Labor TS Series Builder

Turns the tidy observation panel into dense monthly series, one per
sector, and derives growth rates from them.

Input panel columns:
    sector - sector identifier
    year   - calendar year
    month  - calendar month (1-12)
    value  - scaled value (already unit-scaled upstream)

A sector with a missing month, a duplicate month or a non-finite value is
rejected with IrregularSeriesError. Nothing is interpolated.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import numpy as np
import pandas as pd

from labor_ts.utils.logging import get_logger
from labor_ts.errors import InsufficientLengthError, IrregularSeriesError
from .base import BaseEngine, Outcome, frozen_array, run_step


logger = get_logger(__name__)

SEASONAL_PERIOD = 12
PANEL_COLUMNS = ("sector", "year", "month", "value")


# =============================================================================
# Data model
# =============================================================================

@dataclass(frozen=True, eq=False)
class ObservationPanel:
    """
    Long-format monthly panel: one row per (sector, year, month).

    Usage:
        panel = ObservationPanel.from_records([
            ("Information", 2020, 1, 1510.2),
            ("Information", 2020, 2, 1512.9),
        ])
        panel.sectors          # ('Information',)
        panel.slice("Information")
    """
    frame: pd.DataFrame

    def __post_init__(self):
        missing = [c for c in PANEL_COLUMNS if c not in self.frame.columns]
        if missing:
            raise ValueError(f"Panel is missing columns: {missing}")

        df = self.frame.loc[:, list(PANEL_COLUMNS)].copy()
        df["sector"] = df["sector"].astype(str)
        df["year"] = df["year"].astype(int)
        df["month"] = df["month"].astype(int)
        df["value"] = pd.to_numeric(df["value"], errors="coerce").astype(float)

        bad_months = df.loc[~df["month"].between(1, 12), "month"]
        if not bad_months.empty:
            raise ValueError(f"Month out of range 1-12: {sorted(bad_months.unique())}")

        df = df.sort_values(["sector", "year", "month"], kind="mergesort").reset_index(drop=True)
        object.__setattr__(self, "frame", df)

    @classmethod
    def from_records(cls, records: Iterable[Tuple[str, int, int, float]]) -> "ObservationPanel":
        """Build a panel from (sector, year, month, value) tuples."""
        return cls(pd.DataFrame(list(records), columns=list(PANEL_COLUMNS)))

    @property
    def sectors(self) -> Tuple[str, ...]:
        """Sector identifiers in sorted order."""
        return tuple(sorted(self.frame["sector"].unique()))

    def slice(self, sector: str) -> pd.DataFrame:
        """Rows for one sector, sorted by period."""
        return self.frame[self.frame["sector"] == sector].reset_index(drop=True)

    def __len__(self) -> int:
        return len(self.frame)


@dataclass(frozen=True, eq=False)
class FixedFrequencySeries:
    """Dense monthly series for one sector with a known start period."""
    sector: str
    start: pd.Period
    values: np.ndarray
    seasonal_period: int = SEASONAL_PERIOD

    def __post_init__(self):
        object.__setattr__(self, "values", frozen_array(self.values))
        object.__setattr__(self, "start", pd.Period(self.start, freq="M"))

    def __len__(self) -> int:
        return len(self.values)

    @property
    def periods(self) -> pd.PeriodIndex:
        return pd.period_range(self.start, periods=len(self.values), freq="M")

    @property
    def end(self) -> pd.Period:
        return self.start + (len(self.values) - 1)

    def period_at(self, index: int) -> pd.Period:
        return self.start + int(index)

    def to_series(self) -> pd.Series:
        """pandas view indexed by monthly PeriodIndex."""
        return pd.Series(np.array(self.values), index=self.periods, name=self.sector)

    @classmethod
    def from_values(cls, values, start="2011-01", sector: str = "series") -> "FixedFrequencySeries":
        """Convenience constructor for already-dense data."""
        return cls(sector=sector, start=pd.Period(start, freq="M"), values=values)


@dataclass(frozen=True, eq=False)
class GrowthSeries:
    """
    Percentage change over `lag` periods.

    Entries without a defined base (the first `lag` entries, or a zero base
    value) are NaN, meaning absent.
    """
    sector: str
    start: pd.Period
    lag: int
    values: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "values", frozen_array(self.values))
        object.__setattr__(self, "start", pd.Period(self.start, freq="M"))

    def __len__(self) -> int:
        return len(self.values)

    @property
    def periods(self) -> pd.PeriodIndex:
        return pd.period_range(self.start, periods=len(self.values), freq="M")

    @property
    def defined_mask(self) -> np.ndarray:
        return np.isfinite(self.values)

    def defined(self) -> pd.Series:
        """Defined entries only, indexed by period."""
        s = self.to_series()
        return s[self.defined_mask]

    def to_series(self) -> pd.Series:
        return pd.Series(np.array(self.values), index=self.periods, name=self.sector)

    @classmethod
    def from_values(cls, values, start="2012-01", sector: str = "series", lag: int = 12) -> "GrowthSeries":
        """Wrap precomputed growth values (NaN = undefined)."""
        return cls(sector=sector, start=pd.Period(start, freq="M"), lag=lag, values=values)


def compute_growth(series: FixedFrequencySeries, lag: int = SEASONAL_PERIOD) -> GrowthSeries:
    """
    Period-over-period percentage change: (v_t / v_{t-lag} - 1) * 100.

    Args:
        series: Source series
        lag: 12 for year-over-year, 1 for month-over-month
    """
    if lag < 1:
        raise ValueError(f"Growth lag must be >= 1, got {lag}")

    values = np.asarray(series.values, dtype=float)
    growth = np.full(len(values), np.nan)

    if len(values) > lag:
        with np.errstate(divide="ignore", invalid="ignore"):
            change = (values[lag:] / values[:-lag] - 1.0) * 100.0
        change[~np.isfinite(change)] = np.nan
        growth[lag:] = change

    return GrowthSeries(sector=series.sector, start=series.start, lag=lag, values=growth)


def yoy_growth(series: FixedFrequencySeries) -> GrowthSeries:
    """Year-over-year growth (lag 12)."""
    return compute_growth(series, SEASONAL_PERIOD)


def mom_growth(series: FixedFrequencySeries) -> GrowthSeries:
    """Month-over-month growth (lag 1)."""
    return compute_growth(series, 1)


# =============================================================================
# Builder
# =============================================================================

class SeriesBuilder(BaseEngine):
    """
    Builds FixedFrequencySeries from panel slices.

    Outputs:
        - FixedFrequencySeries per sector
    """

    name = "series"

    def run(self, records: pd.DataFrame, sector: Optional[str] = None) -> FixedFrequencySeries:
        """
        Build one sector's series.

        Args:
            records: Rows with year, month, value (any order)
            sector: Sector identifier (defaults to the records' sector column)

        Raises:
            InsufficientLengthError: Fewer than 2 observations
            IrregularSeriesError: Gap, duplicate period or non-finite value
        """
        if sector is None:
            sector = str(records["sector"].iloc[0]) if len(records) else "unknown"

        if len(records) < 2:
            raise InsufficientLengthError(
                f"{sector}: need at least 2 observations, got {len(records)}"
            )

        df = records.sort_values(["year", "month"], kind="mergesort")
        values = df["value"].to_numpy(dtype=float)

        bad = ~np.isfinite(values)
        if bad.any():
            first = df.iloc[int(np.argmax(bad))]
            raise IrregularSeriesError(
                f"{sector}: non-finite value at {int(first['year'])}-{int(first['month']):02d}"
            )

        ordinals = df["year"].to_numpy(dtype=int) * 12 + df["month"].to_numpy(dtype=int) - 1
        steps = np.diff(ordinals)

        if (steps == 0).any():
            dup = ordinals[1:][steps == 0][0]
            raise IrregularSeriesError(f"{sector}: duplicate period {_ordinal_to_period(dup)}")

        if (steps > 1).any():
            missing = []
            for prev, step in zip(ordinals[:-1], steps):
                missing.extend(prev + k for k in range(1, step))
            shown = ", ".join(str(_ordinal_to_period(m)) for m in missing[:6])
            more = f" (+{len(missing) - 6} more)" if len(missing) > 6 else ""
            raise IrregularSeriesError(f"{sector}: missing periods {shown}{more}")

        start = _ordinal_to_period(ordinals[0])
        series = FixedFrequencySeries(sector=sector, start=start, values=values)
        logger.debug(f"Built {sector}: {len(series)} months from {series.start} to {series.end}")
        return series

    def build_all(self, panel: ObservationPanel) -> Dict[str, Outcome]:
        """
        Build every sector, isolating failures.

        Returns:
            Ordered mapping sector -> Outcome (value is FixedFrequencySeries)
        """
        built = {}
        for sector in panel.sectors:
            built[sector] = self.execute(panel.slice(sector), sector=sector)

        n_ok = sum(1 for o in built.values() if o.ok)
        logger.info(f"Series built: {n_ok}/{len(built)} sectors valid")
        return built

    def execute(self, records: pd.DataFrame, sector: Optional[str] = None) -> Outcome:
        return run_step(f"{self.name}[{sector}]", self.run, records, sector=sector)


def _ordinal_to_period(ordinal: int) -> pd.Period:
    year, month0 = divmod(int(ordinal), 12)
    return pd.Period(year=year, month=month0 + 1, freq="M")
