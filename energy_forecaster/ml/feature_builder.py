"""
Lag and calendar features for the direct LightGBM forecaster.

Direct strategy
---------------
The model predicts every step of the horizon from information that is at
least ``horizon`` steps old. All lag features therefore use lags >= the
horizon, so the same feature builder serves training rows and the future
rows without recursion (no prediction is ever fed back as an input).

Feature columns
---------------
  hour          : hour of day of the target timestamp (0–23)
  dayofweek     : day of week of the target timestamp (0 = Monday)
  lag_<k>       : value k steps before the target, for each k in ``lags``
  roll_mean_day : mean of the day ending ``horizon`` steps before the target

LightGBM handles NaN natively, so early rows whose long lags fall before
the start of the series keep NaN instead of being dropped.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

CALENDAR_COLS: list[str] = ["hour", "dayofweek"]


def direct_lags(horizon_steps: int, steps_per_day: int, seasonal_steps: list[int]) -> list[int]:
    """Lags (ascending, unique) available for a ``horizon_steps`` direct forecast.

    Includes the horizon itself, one day beyond it, and for each seasonal
    period the nearest whole number of cycles at or beyond the horizon (the
    same slot in the most recent cycle the model may see).
    """
    if horizon_steps < 1:
        raise ValueError(f"horizon_steps must be >= 1, got {horizon_steps}")
    lags = {horizon_steps, horizon_steps + steps_per_day}
    for p in seasonal_steps:
        if p >= 1:
            lags.add(-(-horizon_steps // p) * p)
    return sorted(lags)


def feature_columns(lags: list[int]) -> list[str]:
    """Feature names in the order the model expects."""
    return CALENDAR_COLS + [f"lag_{k}" for k in lags] + ["roll_mean_day"]


def build_feature_frame(
    y: pd.Series,
    future: pd.DatetimeIndex | None,
    lags: list[int],
    horizon_steps: int,
    steps_per_day: int,
) -> pd.DataFrame:
    """Build the feature matrix over ``y`` plus optional future timestamps.

    Args:
        y:             Observed series on a regular DatetimeIndex.
        future:        Timestamps after ``y`` to build rows for (None = none).
        lags:          Lags from ``direct_lags()``.
        horizon_steps: Minimum age (in steps) of any value used as a feature.
        steps_per_day: Window of the rolling mean.

    Returns:
        DataFrame indexed like ``y`` followed by ``future``, with
        ``feature_columns(lags)`` plus a ``target`` column (NaN for future rows).
    """
    if future is not None and len(future) > 0:
        extended = pd.concat([y.astype(float), pd.Series(np.nan, index=future)])
    else:
        extended = y.astype(float)

    index = pd.DatetimeIndex(extended.index)
    frame = pd.DataFrame(index=index)
    frame["hour"] = index.hour
    frame["dayofweek"] = index.dayofweek
    for k in lags:
        frame[f"lag_{k}"] = extended.shift(k).to_numpy()
    frame["roll_mean_day"] = (
        extended.shift(horizon_steps)
        .rolling(window=steps_per_day, min_periods=1)
        .mean()
        .to_numpy()
    )
    frame["target"] = extended.to_numpy()
    return frame
