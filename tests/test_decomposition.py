"""
Decomposition and cycle tests (pytest compatible)

Run with:
    pytest tests/test_decomposition.py -v
"""

import numpy as np
import pytest


class TestDecomposition:

    def test_components_reconstruct_input(self, seasonal_levels):
        """trend + seasonal + residual equals the observed series."""
        from labor_ts.engines.decomposition import DecompositionEngine
        from labor_ts.engines.series import FixedFrequencySeries

        series = FixedFrequencySeries.from_values(seasonal_levels)
        result = DecompositionEngine().run(series)

        rebuilt = result.trend + result.seasonal + result.residual
        np.testing.assert_allclose(rebuilt, seasonal_levels, rtol=0, atol=1e-8)
        assert len(result.trend) == len(seasonal_levels)
        assert not np.isnan(result.trend).any()

    def test_no_deprecation_warnings(self, seasonal_levels):
        """Trend extrapolation uses no deprecated statsmodels argument."""
        import warnings

        from labor_ts.engines.decomposition import DecompositionEngine
        from labor_ts.engines.series import FixedFrequencySeries

        with warnings.catch_warnings():
            warnings.simplefilter("error", FutureWarning)
            result = DecompositionEngine().run(FixedFrequencySeries.from_values(seasonal_levels))

        assert not np.isnan(result.trend).any()

    def test_seasonal_strength_detected(self, seasonal_levels):
        """A clear 12-month cycle gives high seasonal strength."""
        from labor_ts.engines.decomposition import DecompositionEngine
        from labor_ts.engines.series import FixedFrequencySeries

        result = DecompositionEngine().run(FixedFrequencySeries.from_values(seasonal_levels))
        assert 0.64 < result.seasonal_strength <= 1.0
        assert set(result.seasonal_factors) == set(range(1, 13))

    def test_short_series_unavailable(self):
        """Under two seasonal cycles the decomposition is unavailable."""
        from labor_ts.engines.base import Status
        from labor_ts.engines.decomposition import DecompositionEngine
        from labor_ts.engines.series import FixedFrequencySeries

        outcome = DecompositionEngine().execute(FixedFrequencySeries.from_values(np.arange(23.0)))
        assert outcome.status is Status.UNAVAILABLE
        assert outcome.error_kind == "DecompositionUnavailable"

    def test_flat_series_has_no_seasonality(self):
        """A straight line has zero seasonal strength."""
        from labor_ts.engines.decomposition import seasonal_strength

        zeros = np.zeros(36)
        assert seasonal_strength(zeros, zeros, np.arange(36.0)) == 0.0


class TestTurningPoints:

    def test_peaks_and_troughs(self):
        """Sign changes of the first difference mark turning points."""
        from labor_ts.engines.decomposition import find_turning_points

        peaks, troughs = find_turning_points([0, 1, 2, 1, 0, 1, 2, 1])
        assert list(peaks) == [2, 6]
        assert list(troughs) == [4]

    def test_too_short(self):
        """Fewer than 3 points have no turning points."""
        from labor_ts.engines.decomposition import find_turning_points

        peaks, troughs = find_turning_points([1.0, 2.0])
        assert len(peaks) == 0 and len(troughs) == 0


class TestCycle:

    def test_hp_trend_plus_cycle(self, seasonal_levels):
        """HP trend and cycle add back to the input."""
        from labor_ts.engines.decomposition import CycleEngine
        from labor_ts.engines.series import FixedFrequencySeries

        result = CycleEngine().run(FixedFrequencySeries.from_values(seasonal_levels))

        np.testing.assert_allclose(result.trend + result.cycle, seasonal_levels, atol=1e-6)
        assert result.hp_lambda == 1600.0
        assert result.n_peaks > 0
        assert result.amplitude > 0

    def test_cycle_length_from_peaks(self):
        """A pure 12-month wave yields peaks 12 months apart."""
        from labor_ts.engines.decomposition import CycleEngine
        from labor_ts.engines.series import FixedFrequencySeries

        t = np.arange(96)
        values = 500 + 20 * np.sin(2 * np.pi * t / 12 + 0.3)
        result = CycleEngine().run(FixedFrequencySeries.from_values(values))

        assert result.cycle_length == pytest.approx(12.0, abs=0.5)

    def test_too_short_for_filter(self):
        """Two points cannot be filtered."""
        from labor_ts.engines.decomposition import CycleEngine
        from labor_ts.engines.series import FixedFrequencySeries
        from labor_ts.errors import InsufficientLengthError

        with pytest.raises(InsufficientLengthError):
            CycleEngine().run(FixedFrequencySeries.from_values([1.0, 2.0]))


class TestSeasonalIndex:

    def test_index_centered_on_100(self, seasonal_levels):
        """Monthly index averages to 100."""
        from labor_ts.engines.decomposition import seasonal_index
        from labor_ts.engines.series import FixedFrequencySeries

        index = seasonal_index(FixedFrequencySeries.from_values(seasonal_levels))
        assert list(index.index) == list(range(1, 13))
        assert index.mean() == pytest.approx(100.0)
