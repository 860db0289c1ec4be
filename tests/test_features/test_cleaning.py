"""
Tests for IQR outlier removal and gap filling.

What we test
------------
1. compute_iqr_bounds() returns Tukey fences q1 - k*IQR, q3 + k*IQR.
2. remove_outliers(method="clip") leaves no value outside the fences and
   does not touch values inside them.
3. remove_outliers(method="interpolate") replaces outliers with neighbours.
4. NaNs pass through remove_outliers() untouched.
5. fill_gaps() bridges short interior runs only; edges take nearest value.
6. fill_all_gaps() leaves no NaN; an all-NaN series raises.
7. clean_frame() applies both steps per configured column.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from energy_forecaster.config import CleaningConfig
from energy_forecaster.features.cleaning import (
    clean_frame,
    compute_iqr_bounds,
    fill_all_gaps,
    fill_gaps,
    remove_outliers,
)


def _series(values: list[float], name: str = "Demand") -> pd.Series:
    index = pd.date_range("2024-01-01", periods=len(values), freq="5min", name="Timestamp")
    return pd.Series(values, index=index, name=name, dtype=float)


# ── compute_iqr_bounds ────────────────────────────────────────────────────────

def test_iqr_bounds_values() -> None:
    s = _series([1.0, 2.0, 3.0, 4.0, 5.0])
    b = compute_iqr_bounds(s, multiplier=1.5)
    assert b.q1 == pytest.approx(2.0)
    assert b.q3 == pytest.approx(4.0)
    assert b.iqr == pytest.approx(2.0)
    assert b.lower == pytest.approx(-1.0)
    assert b.upper == pytest.approx(7.0)


def test_iqr_bounds_ignore_nan() -> None:
    s = _series([1.0, np.nan, 2.0, 3.0, 4.0, 5.0])
    assert compute_iqr_bounds(s).q3 == pytest.approx(4.0)


def test_iqr_bounds_all_nan_raises() -> None:
    with pytest.raises(ValueError):
        compute_iqr_bounds(_series([np.nan, np.nan]))


def test_iqr_bounds_bad_multiplier_raises() -> None:
    with pytest.raises(ValueError):
        compute_iqr_bounds(_series([1.0, 2.0]), multiplier=0)


# ── remove_outliers ───────────────────────────────────────────────────────────

def test_clip_keeps_values_within_fences() -> None:
    values = [10.0, 11.0, 9.5, 10.5, 500.0, 10.2, -300.0, 9.8]
    s = _series(values)
    cleaned, summary = remove_outliers(s, multiplier=1.5, method="clip")

    assert cleaned.max() <= summary.bounds.upper
    assert cleaned.min() >= summary.bounds.lower
    assert summary.n_high == 1
    assert summary.n_low == 1
    assert summary.n_outliers == 2
    assert summary.outlier_pct == pytest.approx(2 / 8)

    inside = (s >= summary.bounds.lower) & (s <= summary.bounds.upper)
    pd.testing.assert_series_equal(cleaned[inside], s[inside])


def test_clip_sets_outlier_to_fence() -> None:
    s = _series([10.0, 11.0, 9.5, 10.5, 500.0, 10.2, 9.8])
    cleaned, summary = remove_outliers(s, method="clip")
    assert cleaned.iloc[4] == pytest.approx(summary.bounds.upper)


def test_interpolate_replaces_outlier_with_neighbours() -> None:
    s = _series([10.0, 10.0, 10.0, 12.0, 500.0, 14.0, 10.0, 10.0])
    cleaned, summary = remove_outliers(s, method="interpolate")

    assert summary.n_high == 1
    assert cleaned.iloc[4] == pytest.approx(13.0)
    assert cleaned.drop(cleaned.index[4]).equals(s.drop(s.index[4]))


def test_outlier_at_edge_interpolate_uses_nearest() -> None:
    s = _series([900.0, 10.0, 10.0, 11.0, 10.0, 10.0, 10.0])
    cleaned, _ = remove_outliers(s, method="interpolate")
    assert cleaned.iloc[0] == pytest.approx(10.0)


def test_nan_passes_through() -> None:
    s = _series([10.0, np.nan, 11.0, 10.5, 9.5])
    for method in ("clip", "interpolate"):
        cleaned, summary = remove_outliers(s, method=method)
        assert np.isnan(cleaned.iloc[1])
        assert summary.n_observed == 4


def test_no_outliers_returns_same_values() -> None:
    s = _series([1.0, 2.0, 3.0, 4.0])
    cleaned, summary = remove_outliers(s)
    assert summary.n_outliers == 0
    pd.testing.assert_series_equal(cleaned, s)


def test_unknown_method_raises() -> None:
    with pytest.raises(ValueError, match="Unknown outlier method"):
        remove_outliers(_series([1.0, 2.0]), method="drop")


def test_summary_to_dict_is_flat() -> None:
    _, summary = remove_outliers(_series([10.0, 11.0, 9.5, 10.5, 500.0]))
    d = summary.to_dict()
    assert d["series_name"] == "Demand"
    assert d["n_high"] == 1
    assert {"q1", "q3", "iqr", "lower", "upper", "outlier_pct"} <= set(d)


# ── fill_gaps / fill_all_gaps ─────────────────────────────────────────────────

def test_fill_gaps_bridges_short_interior_run() -> None:
    s = _series([1.0, np.nan, np.nan, 4.0])
    filled = fill_gaps(s, max_gap_steps=2)
    assert filled.tolist() == pytest.approx([1.0, 2.0, 3.0, 4.0])


def test_fill_gaps_leaves_long_interior_run() -> None:
    s = _series([1.0, np.nan, np.nan, np.nan, 5.0])
    filled = fill_gaps(s, max_gap_steps=2)
    assert filled.iloc[1:4].isna().all()
    assert filled.iloc[0] == 1.0
    assert filled.iloc[4] == 5.0


def test_fill_gaps_fills_edges_with_nearest() -> None:
    s = _series([np.nan, np.nan, 3.0, 4.0, np.nan])
    filled = fill_gaps(s, max_gap_steps=0)
    assert filled.tolist() == pytest.approx([3.0, 3.0, 3.0, 4.0, 4.0])


def test_fill_gaps_all_nan_unchanged() -> None:
    s = _series([np.nan, np.nan])
    assert fill_gaps(s, max_gap_steps=3).isna().all()


def test_fill_all_gaps_leaves_no_nan() -> None:
    s = _series([np.nan, 1.0, np.nan, np.nan, np.nan, np.nan, 6.0, np.nan])
    filled = fill_all_gaps(s)
    assert filled.notna().all()
    assert filled.tolist() == pytest.approx([1.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 6.0])


def test_fill_all_gaps_all_nan_raises() -> None:
    with pytest.raises(ValueError, match="no valid values"):
        fill_all_gaps(_series([np.nan, np.nan, np.nan]))


# ── clean_frame ───────────────────────────────────────────────────────────────

def test_clean_frame_cleans_selected_columns_only() -> None:
    index = pd.date_range("2024-01-01", periods=8, freq="5min", name="Timestamp")
    frame = pd.DataFrame(
        {
            "Demand": [10.0, 11.0, 9.5, 10.5, 500.0, 10.2, np.nan, 9.8],
            "Import": [5.0, 5.0, 5.0, 5.0, 900.0, 5.0, 5.0, 5.0],
        },
        index=index,
    )
    config = CleaningConfig(series=["Demand"], max_gap_steps=2)
    cleaned, summaries = clean_frame(frame, config)

    assert list(summaries) == ["Demand"]
    assert cleaned["Demand"].max() <= summaries["Demand"].bounds.upper
    assert cleaned["Demand"].notna().all()
    pd.testing.assert_series_equal(cleaned["Import"], frame["Import"])


def test_clean_frame_skips_empty_column() -> None:
    index = pd.date_range("2024-01-01", periods=4, freq="5min")
    frame = pd.DataFrame({"Demand": [1.0, 2.0, 3.0, 4.0], "Wind": [np.nan] * 4}, index=index)
    cleaned, summaries = clean_frame(frame, CleaningConfig())
    assert "Wind" not in summaries
    assert cleaned["Wind"].isna().all()


def test_clean_frame_unknown_series_raises() -> None:
    frame = pd.DataFrame({"Demand": [1.0]}, index=pd.date_range("2024-01-01", periods=1))
    with pytest.raises(ValueError, match="unknown columns"):
        clean_frame(frame, CleaningConfig(series=["Solar"]))
