"""
labor_ts/orchestration/report.py

Flattens a PipelineResult into plain pandas tables.

Every table carries `status` (and `reason` when there is one) so that a
sector whose analysis was unavailable still shows up as a row, with the
metric columns left empty.

Usage:
    tables = build_tables(result)
    tables["forecast_summary"]
    tables["granger"].query("significant")
"""

from typing import Any, Callable, Dict, Iterable, List

import numpy as np
import pandas as pd

from labor_ts.utils.logging import get_logger
from labor_ts.engines.base import Outcome

from .pipeline import PipelineResult, SectorResult


logger = get_logger(__name__)

TABLE_NAMES = (
    "status",
    "forecast_summary",
    "forecasts",
    "structural_breaks",
    "cycles",
    "volatility",
    "risk",
    "regimes",
    "seasonal_index",
    "granger",
    "impulse_responses",
    "leading_indicators",
    "lead_lag",
    "growth_summary",
    "annual_growth",
    "peak_trough",
    "correlation",
)


def _status(outcome: Outcome) -> Dict[str, Any]:
    return {"status": outcome.status.value, "reason": outcome.reason}


def _per_sector(
    result: PipelineResult,
    attr: str,
    rows_for: Callable[[str, Any], Iterable[Dict[str, Any]]],
) -> pd.DataFrame:
    """One or more rows per sector; a bare status row when there is no value."""
    rows: List[Dict[str, Any]] = []
    for sector_result in result.sectors:
        outcome = getattr(sector_result, attr)
        base = {"sector": sector_result.sector, **_status(outcome)}
        if outcome.ok:
            rows.extend({**base, **row} for row in rows_for(sector_result.sector, outcome.value))
        else:
            rows.append(base)
    return pd.DataFrame(rows)


def _cross_sector(outcome: Outcome, to_frame: Callable[[Any], pd.DataFrame]) -> pd.DataFrame:
    if not outcome.ok:
        return pd.DataFrame([_status(outcome)])
    frame = to_frame(outcome.value).copy()
    frame.insert(0, "status", outcome.status.value)
    frame.insert(1, "reason", outcome.reason)
    return frame


# =============================================================================
# Tables
# =============================================================================

def status_table(result: PipelineResult) -> pd.DataFrame:
    """Long status table: sector, analysis, status, reason, error_kind."""
    rows = []
    for sector_result in result.sectors:
        for name, outcome in sector_result.outcomes().items():
            rows.append({
                "sector": sector_result.sector,
                "analysis": name,
                **_status(outcome),
                "error_kind": outcome.error_kind,
            })
    for name in ("causality", "lead_lag", "correlation"):
        outcome = getattr(result, name)
        rows.append({
            "sector": None,
            "analysis": name,
            **_status(outcome),
            "error_kind": outcome.error_kind,
        })
    return pd.DataFrame(rows)


def forecast_summary_table(result: PipelineResult) -> pd.DataFrame:
    """Model, fit and the end-of-horizon outlook per sector."""
    def rows_for(sector: str, fc) -> Iterable[Dict[str, Any]]:
        current = float("nan")
        series_outcome = result.sector(sector).series
        if series_outcome.ok and len(series_outcome.value):
            current = float(series_outcome.value.values[-1])
        end = float(fc.mean[-1]) if fc.horizon else float("nan")
        change = (end / current - 1.0) * 100.0 if np.isfinite(current) and current != 0 else float("nan")
        yield {
            "model": fc.model_label,
            "method": fc.method,
            "aic": fc.aic,
            "bic": fc.bic,
            "horizon": fc.horizon,
            "current_value": current,
            "forecast_end": end,
            "change_pct": change,
            "lower_95_end": float(fc.lower_95[-1]) if fc.horizon else float("nan"),
            "upper_95_end": float(fc.upper_95[-1]) if fc.horizon else float("nan"),
            "adf_statistic": fc.adf_statistic,
            "adf_pvalue": fc.adf_pvalue,
        }

    return _per_sector(result, "forecast", rows_for)


def forecasts_table(result: PipelineResult) -> pd.DataFrame:
    """Long forecast path with interval bounds."""
    def rows_for(sector: str, fc) -> Iterable[Dict[str, Any]]:
        frame = fc.to_frame()
        for period, row in frame.iterrows():
            yield {"period": str(period), **row.to_dict()}

    return _per_sector(result, "forecast", rows_for)


def structural_breaks_table(result: PipelineResult) -> pd.DataFrame:
    def rows_for(sector: str, breaks) -> Iterable[Dict[str, Any]]:
        yield {
            "n_breaks": breaks.n_breaks,
            "break_indices": ", ".join(str(i) for i in breaks.indices),
            "break_periods": ", ".join(str(p) for p in breaks.periods),
            "segment_means": ", ".join(f"{m:.4g}" for m in breaks.segment_means),
        }

    return _per_sector(result, "changepoints", rows_for)


def cycles_table(result: PipelineResult) -> pd.DataFrame:
    """HP cycle statistics plus seasonal strength (when decomposition ran)."""
    def rows_for(sector: str, cycle) -> Iterable[Dict[str, Any]]:
        decomposition = result.sector(sector).decomposition
        strength = decomposition.value.seasonal_strength if decomposition.ok else float("nan")
        yield {
            "n_peaks": cycle.n_peaks,
            "n_troughs": cycle.n_troughs,
            "cycle_length": cycle.cycle_length,
            "amplitude": cycle.amplitude,
            "seasonal_strength": strength,
        }

    return _per_sector(result, "cycle", rows_for)


def volatility_table(result: PipelineResult) -> pd.DataFrame:
    def rows_for(sector: str, metrics) -> Iterable[Dict[str, Any]]:
        record = metrics.volatility_record()
        record.pop("sector")
        yield record

    return _per_sector(result, "volatility", rows_for)


def risk_table(result: PipelineResult) -> pd.DataFrame:
    def rows_for(sector: str, metrics) -> Iterable[Dict[str, Any]]:
        record = metrics.risk_record()
        record.pop("sector")
        yield record

    return _per_sector(result, "volatility", rows_for)


def regimes_table(result: PipelineResult) -> pd.DataFrame:
    """Per-sector regime summary: one row per regime."""
    def rows_for(sector: str, assignment) -> Iterable[Dict[str, Any]]:
        for record in assignment.summary.to_dict("records"):
            yield {**record, "dominant": record["regime_label"] == assignment.dominant_regime}

    return _per_sector(result, "regimes", rows_for)


def seasonal_index_table(result: PipelineResult) -> pd.DataFrame:
    def rows_for(sector: str, index: pd.Series) -> Iterable[Dict[str, Any]]:
        for month, value in index.items():
            yield {"month": int(month), "seasonal_index": float(value)}

    return _per_sector(result, "seasonal_index", rows_for)


def leading_indicators_table(result: PipelineResult) -> pd.DataFrame:
    def rows_for(sector: str, scan) -> Iterable[Dict[str, Any]]:
        yield {
            "indicator_lag": scan.indicator_lag,
            "optimal_lag": scan.optimal_lag,
            "max_correlation": scan.max_correlation,
        }

    return _per_sector(result, "leading_indicator", rows_for)


def growth_summary_table(result: PipelineResult) -> pd.DataFrame:
    """Annual growth statistics per sector."""
    def rows_for(sector: str, summary) -> Iterable[Dict[str, Any]]:
        record = summary.summary_record()
        record.pop("sector")
        yield record

    return _per_sector(result, "annual_growth", rows_for)


def annual_growth_table(result: PipelineResult) -> pd.DataFrame:
    def rows_for(sector: str, summary) -> Iterable[Dict[str, Any]]:
        return summary.annual.to_dict("records")

    return _per_sector(result, "annual_growth", rows_for)


def peak_trough_table(result: PipelineResult) -> pd.DataFrame:
    def rows_for(sector: str, levels) -> Iterable[Dict[str, Any]]:
        record = levels.record()
        record.pop("sector")
        yield record

    return _per_sector(result, "level_summary", rows_for)


def build_tables(result: PipelineResult) -> Dict[str, pd.DataFrame]:
    """
    All report tables keyed by name (see TABLE_NAMES).

    Cross-sector tables collapse to a single status row when the analysis
    is unavailable.
    """
    tables = {
        "status": status_table(result),
        "forecast_summary": forecast_summary_table(result),
        "forecasts": forecasts_table(result),
        "structural_breaks": structural_breaks_table(result),
        "cycles": cycles_table(result),
        "volatility": volatility_table(result),
        "risk": risk_table(result),
        "regimes": regimes_table(result),
        "seasonal_index": seasonal_index_table(result),
        "granger": _cross_sector(result.causality, lambda g: g.to_frame()),
        "impulse_responses": _cross_sector(result.causality, lambda g: g.irf_frame()),
        "leading_indicators": leading_indicators_table(result),
        "lead_lag": _cross_sector(result.lead_lag, lambda t: t),
        "growth_summary": growth_summary_table(result),
        "annual_growth": annual_growth_table(result),
        "peak_trough": peak_trough_table(result),
        "correlation": _cross_sector(result.correlation, lambda m: m.reset_index()),
    }
    logger.debug(f"Built {len(tables)} report tables for {len(result.sectors)} sectors")
    return tables


def sector_tables(sector_result: SectorResult) -> Dict[str, pd.DataFrame]:
    """Frames for one sector (decomposition, forecast, regimes, annual averages)."""
    frames = {}
    series = sector_result.series
    if sector_result.decomposition.ok and series.ok:
        frames["decomposition"] = sector_result.decomposition.value.to_frame(series.value.periods)
    if sector_result.forecast.ok:
        frames["forecast"] = sector_result.forecast.value.to_frame()
    if sector_result.regimes.ok:
        frames["regimes"] = sector_result.regimes.value.to_frame()
    if sector_result.annual_growth.ok:
        frames["annual"] = sector_result.annual_growth.value.annual
    return frames
