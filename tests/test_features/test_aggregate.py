"""
Tests for resample_readings().

What we test
------------
1. Bins are right-closed and right-labelled (10:00 = mean of 09:05..10:00).
2. Partial first/last bins are dropped when source_freq is given.
3. how="sum" keeps empty bins as NaN instead of 0.
4. Invalid arguments raise.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from energy_forecaster.features.aggregate import resample_readings


def _five_minute(start: str, n: int, values: np.ndarray | None = None) -> pd.DataFrame:
    index = pd.date_range(start, periods=n, freq="5min", name="Timestamp")
    data = values if values is not None else np.arange(1, n + 1, dtype=float)
    return pd.DataFrame({"Demand": data}, index=index)


def test_right_closed_right_labelled_mean() -> None:
    frame = _five_minute("2024-01-01 00:05", 24)
    out = resample_readings(frame, "1h", how="mean", source_freq="5min")

    assert list(out.index) == [
        pd.Timestamp("2024-01-01 01:00"),
        pd.Timestamp("2024-01-01 02:00"),
    ]
    assert out["Demand"].iloc[0] == pytest.approx(np.mean(np.arange(1, 13)))
    assert out["Demand"].iloc[1] == pytest.approx(np.mean(np.arange(13, 25)))
    assert out.index.name == "Timestamp"


def test_partial_edge_bins_dropped() -> None:
    # 00:00 alone forms the 00:00 bin; 01:05..01:55 is an incomplete 02:00 bin
    frame = _five_minute("2024-01-01 00:00", 24)
    out = resample_readings(frame, "1h", source_freq="5min")
    assert list(out.index) == [pd.Timestamp("2024-01-01 01:00")]


def test_partial_bins_kept_without_source_freq() -> None:
    frame = _five_minute("2024-01-01 00:00", 24)
    out = resample_readings(frame, "1h")
    assert len(out) == 3


def test_sum_keeps_empty_bins_nan() -> None:
    values = np.ones(36)
    values[12:24] = np.nan
    frame = _five_minute("2024-01-01 00:05", 36, values)
    out = resample_readings(frame, "1h", how="sum", source_freq="5min")

    assert out["Demand"].iloc[0] == pytest.approx(12.0)
    assert np.isnan(out["Demand"].iloc[1])
    assert out["Demand"].iloc[2] == pytest.approx(12.0)


def test_two_weeks_resample_to_full_days(readings_frame: pd.DataFrame) -> None:
    frame = readings_frame.set_index("Timestamp")
    out = resample_readings(frame, "1h", source_freq="5min")
    assert len(out) == 14 * 24
    assert list(out.columns) == list(frame.columns)


def test_unknown_how_raises() -> None:
    with pytest.raises(ValueError, match="Unknown aggregation"):
        resample_readings(_five_minute("2024-01-01", 12), "1h", how="median")


def test_non_datetime_index_raises() -> None:
    frame = pd.DataFrame({"Demand": [1.0, 2.0]})
    with pytest.raises(ValueError, match="DatetimeIndex"):
        resample_readings(frame, "1h")
