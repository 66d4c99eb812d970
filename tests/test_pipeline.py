"""
Pipeline orchestration and report table tests (pytest compatible)

Run with:
    pytest tests/test_pipeline.py -v
"""

import numpy as np
import pytest


@pytest.fixture
def pipeline_result(make_panel, sector_levels, small_search_config):
    """Full pipeline run over three synthetic sectors."""
    from labor_ts.orchestration import AnalysisPipeline

    return AnalysisPipeline(small_search_config).run(make_panel(sector_levels))


class TestAnalysisPipeline:

    def test_sectors_in_order(self, pipeline_result):
        """Sector results come back sorted by sector id."""
        assert pipeline_result.sector_ids == ("Information", "Manufacturing", "Retail")

    def test_per_sector_outcomes(self, pipeline_result):
        """Every analysis ran on a valid 60-month sector."""
        result = pipeline_result.sector("Information")

        for name in ("series", "growth", "decomposition", "cycle", "seasonal_index",
                     "forecast", "changepoints", "volatility", "regimes", "leading_indicator",
                     "annual_growth", "level_summary"):
            assert result.outcomes()[name].ok, name

        assert result.risk is result.volatility
        assert len(result.series.value) == 60
        assert result.forecast.value.horizon == 12

    def test_cross_sector_outcomes(self, pipeline_result):
        """Causality and lead/lag run once over all sectors."""
        assert pipeline_result.causality.ok
        graph = pipeline_result.causality.value
        assert graph.sectors == ("Information", "Manufacturing", "Retail")
        assert graph.p_value.shape == (3, 3)

        assert pipeline_result.lead_lag.ok
        assert len(pipeline_result.lead_lag.value) == 3

        assert pipeline_result.correlation.ok
        matrix = pipeline_result.correlation.value
        assert list(matrix.index) == ["Information", "Manufacturing", "Retail"]
        assert matrix.shape == (3, 3)

    def test_summary_table(self, pipeline_result):
        """Summary has one row per sector plus the cross-sector row."""
        summary = pipeline_result.summary()
        assert len(summary) == 4
        assert summary.iloc[-1]["sector"] == "(all sectors)"
        assert set(summary["forecast"].dropna()) <= {"computed", "degraded"}

    def test_unknown_sector(self, pipeline_result):
        """Looking up a sector that was not in the panel raises KeyError."""
        with pytest.raises(KeyError):
            pipeline_result.sector("Mining")

    def test_irregular_sector_is_isolated(self, make_panel, sector_levels, small_search_config):
        """A sector with a gap fails alone and is listed in failures."""
        from labor_ts.engines.base import Status
        from labor_ts.orchestration import AnalysisPipeline

        frame = make_panel({**sector_levels, "Broken": np.arange(60) + 50.0})
        frame = frame.drop(frame[(frame["sector"] == "Broken") & (frame["year"] == 2012) & (frame["month"] == 3)].index)

        result = AnalysisPipeline(small_search_config).run(frame)
        broken = result.sector("Broken")

        assert broken.series.status is Status.UNAVAILABLE
        assert broken.forecast.status is Status.UNAVAILABLE
        assert ("Broken", "IrregularSeriesError") in result.failures
        assert result.sector("Retail").series.ok
        assert result.causality.value.sectors == ("Information", "Manufacturing", "Retail")

    def test_capabilities_disable_optional_steps(self, make_panel, sector_levels, small_search_config):
        """Disabled changepoint and causality steps report unavailable."""
        from labor_ts.config import Capabilities
        from labor_ts.engines.base import Status
        from labor_ts.orchestration import AnalysisPipeline

        pipeline = AnalysisPipeline(small_search_config, Capabilities(changepoint=False, causality=False))
        result = pipeline.run(make_panel(sector_levels))

        info = result.sector("Information")
        assert info.changepoints.status is Status.UNAVAILABLE
        assert info.changepoints.value.n_breaks == 0
        assert info.leading_indicator.status is Status.UNAVAILABLE
        assert result.causality.status is Status.UNAVAILABLE
        assert result.lead_lag.status is Status.UNAVAILABLE
        assert info.forecast.ok
        assert result.correlation.ok

    def test_short_sector_degrades_gracefully(self, make_panel, small_search_config):
        """A 20-month sector still gets growth-free steps, not a crash."""
        from labor_ts.engines.base import Status
        from labor_ts.orchestration import AnalysisPipeline

        np.random.seed(42)
        frame = make_panel({"Short": 100 + np.cumsum(np.random.randn(20))})
        result = AnalysisPipeline(small_search_config).run(frame)
        short = result.sector("Short")

        assert short.series.ok
        assert short.cycle.ok
        assert short.forecast.status is Status.UNAVAILABLE
        assert short.decomposition.status is Status.UNAVAILABLE
        assert result.causality.status is Status.UNAVAILABLE


class TestReportTables:

    def test_all_tables_present(self, pipeline_result):
        """build_tables returns every named table."""
        from labor_ts.orchestration import TABLE_NAMES, build_tables

        tables = build_tables(pipeline_result)
        assert tuple(tables) == TABLE_NAMES

    def test_forecast_tables(self, pipeline_result):
        """Forecast summary has one row per sector; path has 12 per sector."""
        from labor_ts.orchestration import build_tables

        tables = build_tables(pipeline_result)
        assert len(tables["forecast_summary"]) == 3
        assert len(tables["forecasts"]) == 36
        assert {"model", "forecast_end", "change_pct"} <= set(tables["forecast_summary"].columns)

    def test_regime_and_granger_tables(self, pipeline_result):
        """Regime table has three rows per sector; Granger lists ordered pairs."""
        from labor_ts.orchestration import build_tables

        tables = build_tables(pipeline_result)
        assert len(tables["regimes"]) == 9
        assert tables["regimes"].groupby("sector")["dominant"].sum().eq(1).all()
        assert len(tables["granger"]) == 6
        assert len(tables["seasonal_index"]) == 36

    def test_unavailable_rows_carry_status(self, make_panel, small_search_config):
        """Unavailable analyses appear as status-only rows."""
        from labor_ts.config import Capabilities
        from labor_ts.orchestration import AnalysisPipeline, build_tables

        np.random.seed(42)
        frame = make_panel({"Short": 100 + np.cumsum(np.random.randn(20))})
        result = AnalysisPipeline(small_search_config, Capabilities(causality=False)).run(frame)
        tables = build_tables(result)

        row = tables["forecast_summary"].iloc[0]
        assert row["status"] == "unavailable"
        assert row["sector"] == "Short"
        assert tables["granger"].iloc[0]["status"] == "unavailable"
        assert len(tables["granger"]) == 1
        assert tables["correlation"].iloc[0]["status"] == "unavailable"

    def test_summary_tables(self, pipeline_result):
        """Growth summary and peak/trough have one row per sector; annual one per year."""
        from labor_ts.orchestration import build_tables

        tables = build_tables(pipeline_result)
        assert len(tables["growth_summary"]) == 3
        assert {"mean_growth", "cv", "years_positive", "years_negative"} <= set(tables["growth_summary"].columns)
        assert len(tables["annual_growth"]) == 15
        assert len(tables["peak_trough"]) == 3
        assert {"peak_value", "peak_date", "trough_value", "trough_date"} <= set(tables["peak_trough"].columns)

    def test_correlation_table(self, pipeline_result):
        """Correlation table is the matrix with a sector column."""
        from labor_ts.orchestration import build_tables

        table = build_tables(pipeline_result)["correlation"]
        assert list(table["sector"]) == ["Information", "Manufacturing", "Retail"]
        assert {"Information", "Manufacturing", "Retail"} <= set(table.columns)
        assert (table["status"] == "computed").all()


class TestEngineRegistry:

    def test_get_engine_builds_named_engine(self):
        """Registry names map to engine instances sharing the given config."""
        from labor_ts.config import AnalysisConfig
        from labor_ts.engines import get_engine
        from labor_ts.engines.summary import AnnualGrowthEngine

        config = AnalysisConfig.from_dict({"forecast": {"horizon": 6}})
        engine = get_engine("annual_growth", config)

        assert isinstance(engine, AnnualGrowthEngine)
        assert engine.config is config

    def test_get_engine_passes_options(self):
        """Extra keyword arguments reach the engine constructor."""
        from labor_ts.engines import get_engine
        from labor_ts.engines.base import Status
        from labor_ts.engines.series import FixedFrequencySeries

        engine = get_engine("changepoint", enabled=False)
        outcome = engine.execute(FixedFrequencySeries.from_values(np.arange(40.0)))

        assert engine.enabled is False
        assert outcome.status is Status.UNAVAILABLE

    def test_unknown_engine(self):
        """Unknown names raise ValueError listing the registry."""
        from labor_ts.engines import get_engine

        with pytest.raises(ValueError, match="Unknown engine"):
            get_engine("telepathy")

    def test_registry_and_info_agree(self):
        """Every registered engine has metadata, and its name matches its key."""
        from labor_ts.engines import ENGINE_REGISTRY, get_engines_by_scope, list_engines

        assert set(list_engines()) == set(ENGINE_REGISTRY)
        for name, engine_class in ENGINE_REGISTRY.items():
            assert engine_class.name == name
        assert set(get_engines_by_scope("panel")) == {"causality", "lead_lag", "correlation"}
        assert "annual_growth" in get_engines_by_scope("sector")
