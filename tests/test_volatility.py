"""
Volatility and risk engine tests (pytest compatible)

Run with:
    pytest tests/test_volatility.py -v
"""

import numpy as np
import pytest


class TestRiskFunctions:

    def test_max_consecutive_losses(self):
        """[2, -1, -3, -2, 5, -1] has a longest losing run of 3."""
        from labor_ts.engines.volatility import max_consecutive_losses

        assert max_consecutive_losses([2, -1, -3, -2, 5, -1]) == 3

    def test_no_losses(self):
        """All non-negative growth has no losing run."""
        from labor_ts.engines.volatility import max_consecutive_losses

        assert max_consecutive_losses([0.0, 1.0, 2.0]) == 0

    def test_expected_shortfall_below_var(self):
        """ES is never above VaR at the same level."""
        from labor_ts.engines.volatility import expected_shortfall, value_at_risk

        np.random.seed(42)
        x = np.random.randn(120) * 2.0 + 1.0
        for alpha in (0.01, 0.05, 0.10):
            assert expected_shortfall(x, alpha) <= value_at_risk(x, alpha)

    def test_var_interpolates(self):
        """VaR interpolates linearly between order statistics."""
        from labor_ts.engines.volatility import value_at_risk

        assert value_at_risk([1.0, 2.0, 3.0, 4.0, 5.0], 0.05) == pytest.approx(1.2)

    def test_max_drawdown(self):
        """Largest fall from a running peak."""
        from labor_ts.engines.volatility import max_drawdown

        assert max_drawdown([1.0, 3.0, 2.0, 4.0, 0.5, 1.0]) == pytest.approx(3.5)

    def test_ratio_with_zero_denominator(self):
        """Zero mean or volatility gives NaN, not inf."""
        from labor_ts.engines.volatility import safe_ratio

        assert np.isnan(safe_ratio(1.0, 0.0))
        assert np.isnan(safe_ratio(float("nan"), 1.0))
        assert safe_ratio(1.0, 4.0) == 0.25


class TestVolatilityEngine:

    def test_metrics(self):
        """Engine reports the documented metrics on defined values only."""
        from labor_ts.engines.series import GrowthSeries
        from labor_ts.engines.volatility import VolatilityRiskEngine

        growth = GrowthSeries.from_values([np.nan, np.nan, 2, -1, -3, -2, 5, -1], sector="Info")
        metrics = VolatilityRiskEngine().run(growth)

        assert metrics.sector == "Info"
        assert metrics.n_obs == 6
        assert metrics.max_consecutive_losses == 3
        assert metrics.probability_negative == pytest.approx(4 / 6)
        assert metrics.n_negative == 4 and metrics.n_positive == 2
        assert metrics.volatility == pytest.approx(np.std([2, -1, -3, -2, 5, -1], ddof=1))
        assert set(metrics.value_at_risk) == {0.05, 0.01}

    def test_zero_mean_gives_nan_cv(self):
        """Coefficient of variation is NaN when mean growth is zero."""
        from labor_ts.engines.volatility import VolatilityRiskEngine

        metrics = VolatilityRiskEngine().run([-1.0, 1.0, -2.0, 2.0])
        assert np.isnan(metrics.coefficient_of_variation)

    def test_constant_growth_gives_nan_sharpe(self):
        """Zero volatility makes the Sharpe-style ratio NaN."""
        from labor_ts.engines.volatility import VolatilityRiskEngine

        metrics = VolatilityRiskEngine().run([1.5, 1.5, 1.5])
        assert metrics.volatility == 0.0
        assert np.isnan(metrics.sharpe_ratio)
        assert np.isnan(metrics.downside_volatility)

    def test_no_defined_values_unavailable(self):
        """All-NaN growth makes the step unavailable."""
        from labor_ts.engines.base import Status
        from labor_ts.engines.series import GrowthSeries
        from labor_ts.engines.volatility import VolatilityRiskEngine

        outcome = VolatilityRiskEngine().execute(GrowthSeries.from_values([np.nan] * 12))
        assert outcome.status is Status.UNAVAILABLE
        assert outcome.error_kind == "InsufficientLengthError"

    def test_risk_record_keys(self):
        """Risk table keys name the level in percent."""
        from labor_ts.engines.volatility import VolatilityRiskEngine

        record = VolatilityRiskEngine().run(np.linspace(-3, 3, 50)).risk_record()
        assert {"var_5pct", "var_1pct", "es_5pct", "es_1pct", "prob_negative",
                "max_consecutive_losses"} <= set(record)
