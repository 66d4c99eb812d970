"""
Series builder and growth tests (pytest compatible)

Run with:
    pytest tests/test_series.py -v
"""

import numpy as np
import pandas as pd
import pytest


class TestObservationPanel:

    def test_sectors_sorted(self, make_panel):
        """Sectors come back in sorted order."""
        from labor_ts.engines.series import ObservationPanel

        panel = ObservationPanel(make_panel({"b": [1, 2], "a": [3, 4]}))
        assert panel.sectors == ("a", "b")
        assert len(panel) == 4

    def test_missing_column_rejected(self):
        """A frame without the value column is rejected."""
        from labor_ts.engines.series import ObservationPanel

        with pytest.raises(ValueError):
            ObservationPanel(pd.DataFrame({"sector": ["a"], "year": [2020], "month": [1]}))

    def test_bad_month_rejected(self):
        """Month 13 is out of range."""
        from labor_ts.engines.series import ObservationPanel

        with pytest.raises(ValueError):
            ObservationPanel.from_records([("a", 2020, 13, 1.0)])


class TestSeriesBuilder:

    def test_builds_dense_series(self, make_panel):
        """Consecutive months give a series with the right start and end."""
        from labor_ts.engines.series import ObservationPanel, SeriesBuilder

        panel = ObservationPanel(make_panel({"Info": np.arange(30) + 100.0}, start_year=2015, start_month=3))
        series = SeriesBuilder().run(panel.slice("Info"))

        assert series.sector == "Info"
        assert len(series) == 30
        assert series.start == pd.Period("2015-03", freq="M")
        assert series.end == pd.Period("2017-08", freq="M")

    def test_unsorted_input_is_sorted(self):
        """Row order of the input does not matter."""
        from labor_ts.engines.series import ObservationPanel, SeriesBuilder

        panel = ObservationPanel.from_records([
            ("a", 2020, 3, 3.0),
            ("a", 2020, 1, 1.0),
            ("a", 2020, 2, 2.0),
        ])
        series = SeriesBuilder().run(panel.slice("a"))
        np.testing.assert_array_equal(series.values, [1.0, 2.0, 3.0])

    def test_gap_rejected(self):
        """Jan, Feb, Apr 2020 is irregular (March is missing)."""
        from labor_ts.engines.series import ObservationPanel, SeriesBuilder
        from labor_ts.errors import IrregularSeriesError

        panel = ObservationPanel.from_records([
            ("a", 2020, 1, 1.0),
            ("a", 2020, 2, 2.0),
            ("a", 2020, 4, 4.0),
        ])
        with pytest.raises(IrregularSeriesError, match="2020-03"):
            SeriesBuilder().run(panel.slice("a"))

    def test_duplicate_rejected(self):
        """Two rows for the same month are irregular."""
        from labor_ts.engines.series import ObservationPanel, SeriesBuilder
        from labor_ts.errors import IrregularSeriesError

        panel = ObservationPanel.from_records([
            ("a", 2020, 1, 1.0),
            ("a", 2020, 1, 1.5),
            ("a", 2020, 2, 2.0),
        ])
        with pytest.raises(IrregularSeriesError, match="duplicate"):
            SeriesBuilder().run(panel.slice("a"))

    def test_non_finite_rejected(self):
        """NaN values are not interpolated."""
        from labor_ts.engines.series import ObservationPanel, SeriesBuilder
        from labor_ts.errors import IrregularSeriesError

        panel = ObservationPanel.from_records([
            ("a", 2020, 1, 1.0),
            ("a", 2020, 2, np.nan),
            ("a", 2020, 3, 3.0),
        ])
        with pytest.raises(IrregularSeriesError):
            SeriesBuilder().run(panel.slice("a"))

    def test_single_observation_too_short(self):
        """One row is not a series."""
        from labor_ts.engines.series import ObservationPanel, SeriesBuilder
        from labor_ts.errors import InsufficientLengthError

        panel = ObservationPanel.from_records([("a", 2020, 1, 1.0)])
        with pytest.raises(InsufficientLengthError):
            SeriesBuilder().run(panel.slice("a"))

    def test_build_all_isolates_failures(self, make_panel):
        """A broken sector does not stop the others from building."""
        from labor_ts.engines.base import Status
        from labor_ts.engines.series import ObservationPanel, SeriesBuilder

        frame = make_panel({"good": np.arange(24) + 1.0, "bad": np.arange(24) + 1.0})
        frame = frame.drop(frame[(frame["sector"] == "bad") & (frame["month"] == 6)].index)

        built = SeriesBuilder().build_all(ObservationPanel(frame))

        assert list(built) == ["bad", "good"]
        assert built["good"].status is Status.COMPUTED
        assert built["bad"].status is Status.UNAVAILABLE
        assert built["bad"].error_kind == "IrregularSeriesError"
        assert built["bad"].value is None

    def test_values_read_only(self):
        """Series values cannot be modified in place."""
        from labor_ts.engines.series import FixedFrequencySeries

        series = FixedFrequencySeries.from_values([1.0, 2.0, 3.0])
        with pytest.raises(ValueError):
            series.values[0] = 10.0


class TestGrowth:

    def test_yoy_first_year_undefined(self):
        """The first 12 year-over-year entries are absent."""
        from labor_ts.engines.series import FixedFrequencySeries, yoy_growth

        series = FixedFrequencySeries.from_values(np.arange(1, 25, dtype=float))
        growth = yoy_growth(series)

        assert len(growth) == 24
        assert np.isnan(growth.values[:12]).all()
        assert growth.values[12] == pytest.approx((13 / 1 - 1) * 100)
        assert len(growth.defined()) == 12

    def test_mom_growth(self):
        """Month-over-month growth of 100 -> 110 is 10%."""
        from labor_ts.engines.series import FixedFrequencySeries, mom_growth

        growth = mom_growth(FixedFrequencySeries.from_values([100.0, 110.0, 99.0]))
        assert np.isnan(growth.values[0])
        assert growth.values[1] == pytest.approx(10.0)
        assert growth.values[2] == pytest.approx(-10.0)

    def test_zero_base_is_undefined(self):
        """Growth from a zero base is absent, not infinite."""
        from labor_ts.engines.series import FixedFrequencySeries, compute_growth

        growth = compute_growth(FixedFrequencySeries.from_values([0.0, 5.0, 10.0]), lag=1)
        assert np.isnan(growth.values[1])
        assert growth.values[2] == pytest.approx(100.0)

    def test_short_series_all_undefined(self):
        """A series no longer than the lag has no defined growth."""
        from labor_ts.engines.series import FixedFrequencySeries, yoy_growth

        growth = yoy_growth(FixedFrequencySeries.from_values(np.ones(12)))
        assert growth.defined_mask.sum() == 0

    def test_invalid_lag(self):
        """Lag must be positive."""
        from labor_ts.engines.series import FixedFrequencySeries, compute_growth

        with pytest.raises(ValueError):
            compute_growth(FixedFrequencySeries.from_values([1.0, 2.0]), lag=0)
