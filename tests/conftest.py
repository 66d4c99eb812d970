"""
Shared fixtures: synthetic monthly sector panels.
"""

import numpy as np
import pandas as pd
import pytest


def panel_frame(series_by_sector, start_year=2011, start_month=1):
    """Long (sector, year, month, value) frame from dense value arrays."""
    rows = []
    for sector, values in series_by_sector.items():
        for i, value in enumerate(values):
            year, month0 = divmod(start_month - 1 + i, 12)
            rows.append((sector, start_year + year, month0 + 1, float(value)))
    return pd.DataFrame(rows, columns=["sector", "year", "month", "value"])


@pytest.fixture
def make_panel():
    """Factory: dict of sector -> values to a long panel frame."""
    return panel_frame


@pytest.fixture
def seasonal_levels():
    """72 months of trending, seasonal employment levels."""
    np.random.seed(42)
    t = np.arange(72)
    return 1000 + 2.0 * t + 15.0 * np.sin(2 * np.pi * t / 12) + np.random.randn(72) * 3.0


@pytest.fixture
def sector_levels():
    """Three sectors of 60 months; Retail lags Information by one month."""
    np.random.seed(42)
    n = 61
    t = np.arange(n - 1)
    season = 10.0 * np.sin(2 * np.pi * t / 12)

    shocks = np.random.randn(n)
    info = 2000 + np.cumsum(shocks[1:] * 4.0) + season
    retail = 1500 + np.cumsum(0.8 * shocks[:-1] * 4.0 + np.random.randn(n - 1)) + season
    manufacturing = 1200 + np.cumsum(np.random.randn(n - 1) * 3.0) + 0.5 * t

    return {
        "Information": info,
        "Retail": retail,
        "Manufacturing": manufacturing,
    }


@pytest.fixture
def small_search_config():
    """Forecast search trimmed for test speed."""
    from labor_ts.config import AnalysisConfig

    return AnalysisConfig.from_dict({
        "forecast": {"max_p": 1, "max_q": 1, "max_P": 0, "max_Q": 0},
    })
