"""
Tests for the exploratory summary tables.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from energy_forecaster.analysis.summary import (
    correlation_matrix,
    daily_profile,
    describe_series,
    energy_balance,
    weekly_profile,
)
from energy_forecaster.features.cleaning import remove_outliers


@pytest.fixture
def hourly_frame(readings_frame: pd.DataFrame) -> pd.DataFrame:
    return readings_frame.set_index("Timestamp").resample("1h").mean()


def test_describe_has_one_row_per_series(hourly_frame: pd.DataFrame) -> None:
    stats = describe_series(hourly_frame)
    assert list(stats.index) == list(hourly_frame.columns)
    assert stats.index.name == "series"
    assert {"mean", "std", "min", "max", "25%", "50%", "75%", "missing"} <= set(stats.columns)
    assert (stats["missing"] == 0).all()


def test_describe_counts_missing() -> None:
    index = pd.date_range("2024-01-01", periods=4, freq="h")
    frame = pd.DataFrame({"Demand": [1.0, np.nan, 3.0, np.nan]}, index=index)
    assert describe_series(frame).loc["Demand", "missing"] == 2


def test_correlation_is_symmetric(hourly_frame: pd.DataFrame) -> None:
    corr = correlation_matrix(hourly_frame)
    np.testing.assert_allclose(corr.to_numpy(), corr.to_numpy().T)
    assert corr.loc["Solar", "Generation"] > 0.5


def test_daily_profile_shape(hourly_frame: pd.DataFrame) -> None:
    profile = daily_profile(hourly_frame)
    assert list(profile.index) == list(range(24))
    assert profile.index.name == "hour"
    # synthetic solar peaks around noon and is zero at night
    assert profile["Solar"].idxmax() in range(10, 15)
    assert profile.loc[2, "Solar"] < 1.0


def test_weekly_profile_shape(hourly_frame: pd.DataFrame) -> None:
    profile = weekly_profile(hourly_frame)
    assert list(profile.index) == list(range(7))
    assert profile.index.name == "dayofweek"
    assert profile.loc[6, "Demand"] < profile.loc[2, "Demand"]


def test_energy_balance_consistent_readings(hourly_frame: pd.DataFrame) -> None:
    balance = energy_balance(hourly_frame)
    assert balance is not None
    assert balance["n"] == len(hourly_frame)
    assert balance["mean_abs_residual"] == pytest.approx(0.0, abs=1e-9)


def test_energy_balance_missing_column() -> None:
    frame = pd.DataFrame({"Demand": [1.0], "Import": [0.5]})
    assert energy_balance(frame) is None


def test_energy_balance_all_nan() -> None:
    frame = pd.DataFrame({"Demand": [np.nan], "Generation": [1.0], "Import": [1.0]})
    assert energy_balance(frame)["n"] == 0


def test_energy_balance_broken_by_per_column_clipping() -> None:
    demand = pd.Series([50.0, 52.0, 51.0, 49.0, 50.0, 200.0])
    generation = pd.Series([30.0] * 6)
    frame = pd.DataFrame({"Demand": demand, "Generation": generation, "Import": demand - generation})
    assert energy_balance(frame)["max_abs_residual"] == pytest.approx(0.0)

    clipped_import, summary = remove_outliers(frame["Import"])
    assert summary.n_high == 1
    balance = energy_balance(frame.assign(Import=clipped_import))
    assert balance["max_abs_residual"] > 0.0
