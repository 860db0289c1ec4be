"""
Tests for the baseline candidates and the candidate registry.

What we test
------------
1. Each baseline's prediction rule on a hand-checkable series.
2. predict() returns exactly ``horizon`` floats.
3. predict() before fit() raises RuntimeError.
4. Seasonal naive needs one full cycle and repeats it past one period.
5. build_candidates() returns fresh instances in configured order and
   rejects unknown names.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from energy_forecaster.backtest.models import (
    DriftModel,
    MeanModel,
    NaiveModel,
    SeasonalNaiveModel,
    build_candidates,
    repeat_last_cycle,
)
from energy_forecaster.config import DEFAULT_CANDIDATES


def _series(values: list[float]) -> pd.Series:
    index = pd.date_range("2024-01-01 01:00", periods=len(values), freq="h")
    return pd.Series(values, index=index, dtype=float, name="Demand")


# ── Baselines ─────────────────────────────────────────────────────────────────

def test_naive_repeats_last_value() -> None:
    m = NaiveModel()
    m.fit(_series([1.0, 2.0, 7.0]))
    np.testing.assert_allclose(m.predict(4), [7.0] * 4)


def test_mean_predicts_training_mean() -> None:
    m = MeanModel()
    m.fit(_series([1.0, 2.0, 6.0]))
    np.testing.assert_allclose(m.predict(2), [3.0, 3.0])


def test_drift_extends_first_to_last_line() -> None:
    m = DriftModel()
    m.fit(_series([0.0, 1.0, 2.0, 6.0]))  # slope (6 - 0) / 3 = 2
    np.testing.assert_allclose(m.predict(3), [8.0, 10.0, 12.0])


def test_drift_single_observation_is_flat() -> None:
    m = DriftModel()
    m.fit(_series([5.0]))
    np.testing.assert_allclose(m.predict(2), [5.0, 5.0])


def test_seasonal_naive_repeats_last_cycle() -> None:
    m = SeasonalNaiveModel(period=3, name="seasonal_naive_daily")
    m.fit(_series([9.0, 9.0, 9.0, 1.0, 2.0, 3.0]))
    np.testing.assert_allclose(m.predict(7), [1, 2, 3, 1, 2, 3, 1])
    assert m.hyperparameters == {"period": 3}


def test_seasonal_naive_needs_full_cycle() -> None:
    m = SeasonalNaiveModel(period=24)
    with pytest.raises(ValueError, match="at least 24"):
        m.fit(_series([1.0] * 10))


def test_seasonal_naive_invalid_period() -> None:
    with pytest.raises(ValueError):
        SeasonalNaiveModel(period=0)


@pytest.mark.parametrize("cls", [NaiveModel, MeanModel, DriftModel])
def test_predict_before_fit_raises(cls) -> None:
    with pytest.raises(RuntimeError):
        cls().predict(3)


@pytest.mark.parametrize("cls", [NaiveModel, MeanModel, DriftModel])
def test_fit_empty_raises(cls) -> None:
    with pytest.raises(ValueError):
        cls().fit(_series([]))


def test_all_baselines_are_baseline_family() -> None:
    for model in (NaiveModel(), MeanModel(), DriftModel(), SeasonalNaiveModel(2)):
        assert model.family == "baseline"


def test_repeat_last_cycle() -> None:
    out = repeat_last_cycle(np.array([1.0, 2.0]), 5)
    np.testing.assert_allclose(out, [1, 2, 1, 2, 1])
    assert out.dtype == float


# ── Registry ──────────────────────────────────────────────────────────────────

def test_build_candidates_all_known_names() -> None:
    models = build_candidates(
        DEFAULT_CANDIDATES, horizon_steps=24, steps_per_day=24, seasonal_steps=[24, 168]
    )
    assert [m.name for m in models] == DEFAULT_CANDIDATES
    for m in models:
        assert callable(m.fit)
        assert callable(m.predict)
        assert isinstance(m.hyperparameters, dict)


def test_build_candidates_seasonal_periods() -> None:
    daily, weekly = build_candidates(
        ["seasonal_naive_daily", "seasonal_naive_weekly"],
        horizon_steps=24, steps_per_day=24, seasonal_steps=[24, 168],
    )
    assert daily.period == 24
    assert weekly.period == 168


def test_build_candidates_returns_fresh_instances() -> None:
    first = build_candidates(["naive"], 24, 24, [24])[0]
    second = build_candidates(["naive"], 24, 24, [24])[0]
    assert first is not second


def test_build_candidates_lightgbm_uses_horizon() -> None:
    model = build_candidates(["lightgbm"], horizon_steps=48, steps_per_day=24, seasonal_steps=[24])[0]
    assert model.horizon_steps == 48
    assert min(model.lags) >= 48


def test_build_candidates_unknown_raises() -> None:
    with pytest.raises(ValueError, match="tbats"):
        build_candidates(["naive", "tbats"], 24, 24, [24])
