"""
labor_ts/orchestration/pipeline.py

End-to-end analysis of a monthly sector panel.

This module:
- Builds one dense series per sector (invalid sectors are isolated)
- Runs every per-sector analysis, serially or in a process pool
- Runs the cross-sector analyses (correlation, causality, lead/lag)
  once all sectors are built
- Builds every engine through the engine registry (get_engine)
- Collects everything into a PipelineResult with one Outcome per analysis

Usage:
    from labor_ts.config import Capabilities, load_config
    from labor_ts.orchestration import AnalysisPipeline

    pipeline = AnalysisPipeline(load_config(), Capabilities(causality=False))
    result = pipeline.run(panel)

    print(result.summary())
    result.sector("Information").forecast.value.to_frame()
"""

from __future__ import annotations

import time
from dataclasses import dataclass, fields
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from labor_ts.utils.logging import get_logger
from labor_ts.config import AnalysisConfig, Capabilities
from labor_ts.engines import get_engine
from labor_ts.engines.base import Outcome, run_step
from labor_ts.engines.causality import align_sectors
from labor_ts.engines.decomposition import seasonal_index
from labor_ts.engines.series import FixedFrequencySeries, ObservationPanel, compute_growth
from labor_ts.utils.parallel import run_parallel


logger = get_logger(__name__)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True, eq=False)
class SectorResult:
    """One Outcome per analysis for a single sector."""
    sector: str
    series: Outcome
    growth: Outcome
    decomposition: Outcome
    cycle: Outcome
    seasonal_index: Outcome
    forecast: Outcome
    changepoints: Outcome
    volatility: Outcome
    regimes: Outcome
    leading_indicator: Outcome
    annual_growth: Outcome
    level_summary: Outcome

    @property
    def risk(self) -> Outcome:
        """Tail-risk metrics share the volatility step."""
        return self.volatility

    def outcomes(self) -> Dict[str, Outcome]:
        """Ordered mapping analysis name -> Outcome."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "sector"}

    @classmethod
    def unbuilt(cls, sector: str, series: Outcome) -> "SectorResult":
        """Result for a sector whose series could not be built."""
        reason = f"series unavailable: {series.reason}"
        others = {
            f.name: Outcome.unavailable(reason)
            for f in fields(cls)
            if f.name not in ("sector", "series")
        }
        return cls(sector=sector, series=series, **others)


@dataclass(frozen=True, eq=False)
class PipelineResult:
    """Per-sector results in sector order plus the cross-sector outcomes."""
    sectors: Tuple[SectorResult, ...]
    causality: Outcome
    lead_lag: Outcome
    correlation: Outcome
    failures: Tuple[Tuple[str, str], ...] = ()
    runtime_seconds: float = 0.0

    @property
    def sector_ids(self) -> Tuple[str, ...]:
        return tuple(r.sector for r in self.sectors)

    def sector(self, name: str) -> SectorResult:
        for result in self.sectors:
            if result.sector == name:
                return result
        raise KeyError(f"Unknown sector: {name}. Available: {list(self.sector_ids)}")

    def summary(self) -> pd.DataFrame:
        """
        Status table: one row per sector, one column per analysis, plus a
        final "(all sectors)" row for the cross-sector analyses.
        """
        rows = []
        for result in self.sectors:
            row = {"sector": result.sector}
            row.update({name: o.status.value for name, o in result.outcomes().items()})
            rows.append(row)
        rows.append({
            "sector": "(all sectors)",
            "causality": self.causality.status.value,
            "lead_lag": self.lead_lag.status.value,
            "correlation": self.correlation.status.value,
        })
        return pd.DataFrame(rows)


# =============================================================================
# PER-SECTOR WORK
# =============================================================================

def _skipped(reason: str) -> Outcome:
    return Outcome.unavailable(reason)


def analyze_sector(
    series: FixedFrequencySeries,
    config: AnalysisConfig,
    capabilities: Capabilities,
) -> SectorResult:
    """Run every per-sector analysis on one built series."""
    sector = series.sector

    growth = run_step(f"growth[{sector}]", compute_growth, series, config.series.growth_lag)
    decomposition = get_engine("decomposition", config).execute(series)
    cycle = get_engine("cycle", config).execute(series)
    index = run_step(f"seasonal_index[{sector}]", seasonal_index, series)
    forecast = get_engine("forecast", config).execute(series)
    changepoints = get_engine("changepoint", config, enabled=capabilities.changepoint).execute(series)
    annual = get_engine("annual_growth", config).execute(series)
    levels = get_engine("level_summary", config).execute(series)

    if growth.ok:
        volatility = get_engine("volatility", config).execute(growth.value)
        regimes = get_engine("regime", config).execute(growth.value)
    else:
        volatility = _skipped(f"growth unavailable: {growth.reason}")
        regimes = _skipped(f"growth unavailable: {growth.reason}")

    if capabilities.causality:
        leading = get_engine("leading_indicator", config).execute(series)
    else:
        leading = _skipped("causality analysis disabled by capabilities")

    return SectorResult(
        sector=sector,
        series=Outcome.computed(series),
        growth=growth,
        decomposition=decomposition,
        cycle=cycle,
        seasonal_index=index,
        forecast=forecast,
        changepoints=changepoints,
        volatility=volatility,
        regimes=regimes,
        leading_indicator=leading,
        annual_growth=annual,
        level_summary=levels,
    )


def _analyze_sector_job(job: Tuple[FixedFrequencySeries, AnalysisConfig, Capabilities]) -> SectorResult:
    """Module-level entry point so the process pool can pickle it."""
    series, config, capabilities = job
    return analyze_sector(series, config, capabilities)


# =============================================================================
# PIPELINE
# =============================================================================

class AnalysisPipeline:
    """
    Orchestrates series building, per-sector analyses and cross-sector
    analyses.

    Capabilities are supplied by the caller; nothing is read from the
    environment.
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        capabilities: Optional[Capabilities] = None,
    ):
        self.config = config or AnalysisConfig()
        self.capabilities = capabilities or Capabilities()

    def run(self, panel: Union[ObservationPanel, pd.DataFrame]) -> PipelineResult:
        started = time.perf_counter()
        if not isinstance(panel, ObservationPanel):
            panel = ObservationPanel(panel)

        logger.info(
            f"Pipeline start: {len(panel.sectors)} sectors, {len(panel)} observations "
            f"(changepoint={self.capabilities.changepoint}, causality={self.capabilities.causality})"
        )

        built = get_engine("series", self.config).build_all(panel)
        valid = {s: o.value for s, o in built.items() if o.ok}

        jobs = [(series, self.config, self.capabilities) for series in valid.values()]
        pcfg = self.config.pipeline
        analyzed = run_parallel(
            _analyze_sector_job,
            jobs,
            max_workers=pcfg.max_workers,
            force_serial=pcfg.force_serial,
        )
        by_sector = {r.sector: r for r in analyzed}

        results: List[SectorResult] = []
        for sector, outcome in built.items():
            if sector in by_sector:
                results.append(by_sector[sector])
            else:
                results.append(SectorResult.unbuilt(sector, outcome))

        correlation, causality, lead_lag = self._cross_sector(valid)
        failures = self._failures(results)

        elapsed = time.perf_counter() - started
        logger.info(
            f"Pipeline complete in {elapsed:.1f}s: {len(valid)}/{len(results)} sectors built, "
            f"{len(failures)} failure(s), causality {causality.status.value}"
        )

        return PipelineResult(
            sectors=tuple(results),
            causality=causality,
            lead_lag=lead_lag,
            correlation=correlation,
            failures=failures,
            runtime_seconds=elapsed,
        )

    def _cross_sector(self, valid: Dict[str, FixedFrequencySeries]) -> Tuple[Outcome, Outcome, Outcome]:
        """(correlation, causality, lead_lag); only correlation ignores capabilities."""
        wide = align_sectors(valid)
        correlation = run_step("correlation", get_engine("correlation", self.config).run, wide)

        if not self.capabilities.causality:
            reason = "causality analysis disabled by capabilities"
            logger.info(f"Causality and lead/lag skipped: {reason}")
            return correlation, _skipped(reason), _skipped(reason)

        causality = run_step("causality", get_engine("causality", self.config).run, wide)
        lead_lag = run_step("lead_lag", get_engine("lead_lag", self.config).run, wide)
        return correlation, causality, lead_lag

    @staticmethod
    def _failures(results: List[SectorResult]) -> Tuple[Tuple[str, str], ...]:
        """(sector, error class name) for every step that raised, de-duplicated."""
        seen = []
        for result in results:
            for outcome in result.outcomes().values():
                if outcome.error_kind is None:
                    continue
                pair = (result.sector, outcome.error_kind)
                if pair not in seen:
                    seen.append(pair)
        return tuple(seen)
