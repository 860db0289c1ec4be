"""
Time and frequency utilities for regularly sampled energy readings.

Key concepts:
  - Grid rule: a fixed pandas frequency string (``"5min"``, ``"1h"``) that
    defines the spacing of the series being analysed.
  - Period: a duration (``"1D"``, ``"7D"``) that is converted into a whole
    number of grid steps for seasonal periods, horizons and holdouts.
  - Forecast index: the timestamps that immediately follow the last
    observation, one per forecast step.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd


def to_timedelta(rule: str) -> pd.Timedelta:
    """Convert a fixed-width frequency or duration string to a ``Timedelta``.

    Args:
        rule: Frequency string such as ``"5min"``, ``"1h"``, ``"h"`` or ``"7D"``.

    Returns:
        The equivalent ``pd.Timedelta``.

    Raises:
        ValueError: If the rule is not a fixed-width frequency (e.g. ``"MS"``).
    """
    text = str(rule).strip()
    # bare units ("h", "D") mean one of that unit
    if text[:1].isalpha():
        text = f"1{text}"
    try:
        delta = pd.Timedelta(text)
    except (ValueError, TypeError) as exc:
        raise ValueError(
            f"'{rule}' is not a fixed-width frequency; use units like min, h or D."
        ) from exc
    if pd.isna(delta):
        raise ValueError(f"'{rule}' is not a fixed-width frequency.")
    if delta <= pd.Timedelta(0):
        raise ValueError(f"Frequency '{rule}' must be positive.")
    return delta


def steps_per_period(rule: str, period: str) -> int:
    """Return how many ``rule`` steps fit exactly into ``period``.

    Examples:
        ``steps_per_period("1h", "1D") == 24``
        ``steps_per_period("1h", "7D") == 168``
        ``steps_per_period("5min", "1D") == 288``

    Raises:
        ValueError: If ``period`` is not a whole multiple of ``rule``.
    """
    step = to_timedelta(rule)
    span = to_timedelta(period)
    if span % step != pd.Timedelta(0):
        raise ValueError(
            f"Period '{period}' is not a whole multiple of grid rule '{rule}'."
        )
    return int(span // step)


def future_index(last_timestamp: pd.Timestamp, horizon: int, rule: str) -> pd.DatetimeIndex:
    """Timestamps for ``horizon`` steps strictly after ``last_timestamp``."""
    if horizon < 1:
        raise ValueError(f"horizon must be >= 1, got {horizon}.")
    step = to_timedelta(rule)
    return pd.date_range(start=last_timestamp + step, periods=horizon, freq=step)


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)
