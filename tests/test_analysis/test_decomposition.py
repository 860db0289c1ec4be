"""
Tests for MSTL decomposition.

What we test
------------
1. Components add back up to the observed series.
2. One seasonal column per period, named seasonal_<p>, ascending.
3. A strong daily cycle gives a high seasonal strength in [0, 1].
4. Gaps are filled before decomposing.
5. Too-short series and invalid periods raise.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from energy_forecaster.analysis.decomposition import decompose_series


def test_components_reconstruct_observed(hourly_series: pd.Series) -> None:
    result = decompose_series(hourly_series, [24])
    frame = result.components_frame()

    rebuilt = frame["trend"] + frame["seasonal_24"] + frame["remainder"]
    np.testing.assert_allclose(rebuilt.to_numpy(), frame["observed"].to_numpy(), atol=1e-8)
    assert list(frame.columns) == ["observed", "trend", "seasonal_24", "remainder"]
    assert frame.index.name == "Timestamp"


def test_multiple_periods_sorted(hourly_series: pd.Series) -> None:
    result = decompose_series(hourly_series, [24, 12, 12])
    assert result.periods == [12, 24]
    assert list(result.seasonal.columns) == ["seasonal_12", "seasonal_24"]


def test_daily_strength_is_high(hourly_series: pd.Series) -> None:
    result = decompose_series(hourly_series, [24])
    assert 0.0 <= result.strength["trend"] <= 1.0
    assert result.strength["seasonal_24"] > 0.9


def test_seasonally_adjusted_removes_cycle(hourly_series: pd.Series) -> None:
    result = decompose_series(hourly_series, [24])
    adjusted = result.seasonally_adjusted()
    assert adjusted.std() < hourly_series.std() / 3


def test_gaps_filled_before_decomposition(hourly_series: pd.Series) -> None:
    s = hourly_series.copy()
    s.iloc[[0, 50, 51, 52, -1]] = np.nan
    result = decompose_series(s, [24])
    assert result.observed.notna().all()
    assert len(result.observed) == len(s)


def test_to_dict(hourly_series: pd.Series) -> None:
    d = decompose_series(hourly_series, [24]).to_dict()
    assert d["series_name"] == "Demand"
    assert d["periods"] == [24]
    assert d["n_obs"] == len(hourly_series)
    assert set(d["strength"]) == {"trend", "seasonal_24"}


def test_too_short_raises(hourly_series: pd.Series) -> None:
    with pytest.raises(ValueError, match="needs more than"):
        decompose_series(hourly_series.iloc[:48], [24])


def test_invalid_period_raises(hourly_series: pd.Series) -> None:
    with pytest.raises(ValueError):
        decompose_series(hourly_series, [1])
    with pytest.raises(ValueError):
        decompose_series(hourly_series, [])
