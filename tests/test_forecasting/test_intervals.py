"""
Tests for prediction interval construction.
"""

from __future__ import annotations

from statistics import NormalDist

import pytest

from energy_forecaster.forecasting.intervals import compute_prediction_interval, z_score


@pytest.mark.parametrize(
    "pct, expected",
    [(0.80, 1.280), (0.90, 1.645), (0.95, 1.960), (0.99, 2.576)],
)
def test_z_lookup(pct: float, expected: float) -> None:
    assert z_score(pct) == pytest.approx(expected)


def test_z_off_table_uses_normal_quantile() -> None:
    assert z_score(0.85) == pytest.approx(NormalDist().inv_cdf(0.925))


@pytest.mark.parametrize("pct", [0.0, 1.0, -0.5])
def test_z_out_of_range_raises(pct: float) -> None:
    with pytest.raises(ValueError):
        z_score(pct)


def test_interval_symmetric_around_point() -> None:
    lower, upper = compute_prediction_interval(100.0, sigma=10.0, confidence_pct=0.80)
    assert lower == pytest.approx(100.0 - 12.8)
    assert upper == pytest.approx(100.0 + 12.8)


def test_interval_wider_for_higher_confidence() -> None:
    lo80, hi80 = compute_prediction_interval(50.0, 5.0, 0.80)
    lo95, hi95 = compute_prediction_interval(50.0, 5.0, 0.95)
    assert lo95 < lo80 < 50.0 < hi80 < hi95


@pytest.mark.parametrize("sigma", [None, 0.0, -1.0])
def test_fallback_width_without_sigma(sigma: float | None) -> None:
    lower, upper = compute_prediction_interval(-50.0, sigma)
    assert lower == pytest.approx(-60.0)
    assert upper == pytest.approx(-40.0)


def test_non_negative_clips_lower_only() -> None:
    lower, upper = compute_prediction_interval(5.0, sigma=10.0, non_negative=True)
    assert lower == 0.0
    assert upper == pytest.approx(5.0 + 12.8)


def test_negative_allowed_when_not_clipped() -> None:
    lower, _ = compute_prediction_interval(5.0, sigma=10.0, non_negative=False)
    assert lower < 0.0
