"""
Resampling of raw readings onto the analysis grid.

5-minute readings are too fine for one-week-ahead statistical models (a week
is 2016 steps), so the pipeline aggregates them onto a coarser grid —
hourly by default, giving daily and weekly seasonal periods of 24 and 168.

Labelling
---------
Buckets are closed and labelled on the right: the hourly value stamped
``10:00`` is the mean of the readings at ``09:05 … 10:00``. A meter reading at
``10:00`` reports the interval that ends at 10:00, so right labelling keeps
each value attached to the interval it measured.

Bins without a single reading are NaN rather than zero, so downstream code
can tell "no data" from "no energy".
"""

from __future__ import annotations

import logging

import pandas as pd

from energy_forecaster.utils.time_utils import to_timedelta

logger = logging.getLogger(__name__)


def resample_readings(
    frame: pd.DataFrame,
    rule: str,
    how: str = "mean",
    source_freq: str | None = None,
) -> pd.DataFrame:
    """Aggregate readings onto a ``rule`` grid.

    Args:
        frame:       Timestamp-indexed readings (any regular frequency finer
                     than or equal to ``rule``).
        rule:        Target grid, e.g. ``"1h"``.
        how:         ``"mean"`` (average power) or ``"sum"`` (energy totals).
        source_freq: Grid of ``frame`` (e.g. ``"5min"``). When given, a first
                     or last bin holding fewer grid slots than a full bin is
                     dropped, so partial intervals at the edges of the file
                     do not show up as dips.

    Returns:
        Resampled frame; bins with no readings are NaN.

    Raises:
        ValueError: If ``how`` is unknown or the index is not a DatetimeIndex.
    """
    if how not in ("mean", "sum"):
        raise ValueError(f"Unknown aggregation '{how}'. Use 'mean' or 'sum'.")
    if not isinstance(frame.index, pd.DatetimeIndex):
        raise ValueError("resample_readings() needs a DatetimeIndex.")

    step = to_timedelta(rule)
    resampler = frame.resample(step, closed="right", label="right")
    if how == "mean":
        out = resampler.mean()
    else:
        # min_count=1 keeps empty bins as NaN instead of 0.0
        out = resampler.sum(min_count=1)

    if source_freq is not None and len(out) > 1:
        per_bin = int(step // to_timedelta(source_freq))
        slots = pd.Series(1, index=frame.index).resample(
            step, closed="right", label="right"
        ).count()
        keep = pd.Series(True, index=out.index)
        if slots.iloc[0] < per_bin:
            keep.iloc[0] = False
        if slots.iloc[-1] < per_bin:
            keep.iloc[-1] = False
        out = out.loc[keep.to_numpy()]

    out.index.name = frame.index.name
    logger.info(
        "Resampled %d rows → %d rows on a %s grid (%s)",
        len(frame), len(out), rule, how,
    )
    return out
