"""
Outlier removal and gap filling for raw readings.

IQR rule
--------
For a series with first and third quartiles Q1 and Q3 (NaN ignored, pandas'
default linear quantile interpolation):

    IQR   = Q3 - Q1
    lower = Q1 - k * IQR
    upper = Q3 + k * IQR

with ``k = iqr_multiplier`` (1.5 by default, Tukey's fences).

Two ways of treating a value outside [lower, upper]:

  clip         → replaced by the nearest bound (winsorizing). Keeps the
                 timestamp populated and preserves the direction of a spike.
  interpolate  → replaced by time interpolation between its in-bound
                 neighbours (edges take the nearest valid value).

Missing readings are NOT outliers. They pass through ``remove_outliers()``
unchanged and are handled by ``fill_gaps()``, which only bridges short
interior runs of NaN so that long logger outages stay visible.

Invariant: after ``remove_outliers()``, every non-NaN value lies inside
[lower, upper]. The input series is never mutated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pandas as pd

from energy_forecaster.config import CleaningConfig

logger = logging.getLogger(__name__)

VALID_METHODS = frozenset({"clip", "interpolate"})


@dataclass(frozen=True)
class OutlierBounds:
    """Tukey fences for one series."""

    q1: float
    q3: float
    iqr: float
    lower: float
    upper: float


@dataclass(frozen=True)
class OutlierSummary:
    """What ``remove_outliers()`` changed in one series.

    Attributes:
        series_name: Column the summary belongs to.
        method:      ``"clip"`` or ``"interpolate"``.
        bounds:      Fences that were applied.
        n_observed:  Non-NaN values inspected.
        n_low:       Values below ``bounds.lower``.
        n_high:      Values above ``bounds.upper``.
    """

    series_name: str
    method: str
    bounds: OutlierBounds
    n_observed: int
    n_low: int
    n_high: int

    @property
    def n_outliers(self) -> int:
        return self.n_low + self.n_high

    @property
    def outlier_pct(self) -> float:
        return self.n_outliers / self.n_observed if self.n_observed else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "series_name": self.series_name,
            "method":      self.method,
            "q1":          self.bounds.q1,
            "q3":          self.bounds.q3,
            "iqr":         self.bounds.iqr,
            "lower":       self.bounds.lower,
            "upper":       self.bounds.upper,
            "n_observed":  self.n_observed,
            "n_low":       self.n_low,
            "n_high":      self.n_high,
            "outlier_pct": round(self.outlier_pct, 6),
        }


def compute_iqr_bounds(series: pd.Series, multiplier: float = 1.5) -> OutlierBounds:
    """Compute Tukey fences for ``series``.

    Raises:
        ValueError: If ``multiplier <= 0`` or the series has no values.
    """
    if multiplier <= 0:
        raise ValueError(f"multiplier must be > 0, got {multiplier}")
    values = series.dropna()
    if values.empty:
        raise ValueError(f"Series '{series.name}' has no values to compute IQR bounds from.")

    q1 = float(values.quantile(0.25))
    q3 = float(values.quantile(0.75))
    iqr = q3 - q1
    return OutlierBounds(
        q1=q1,
        q3=q3,
        iqr=iqr,
        lower=q1 - multiplier * iqr,
        upper=q3 + multiplier * iqr,
    )


def remove_outliers(
    series: pd.Series,
    multiplier: float = 1.5,
    method: str = "clip",
) -> tuple[pd.Series, OutlierSummary]:
    """Replace IQR outliers in ``series``.

    Args:
        series:     Readings for one column. NaNs are left untouched.
        multiplier: IQR fence multiplier ``k``.
        method:     ``"clip"`` or ``"interpolate"``.

    Returns:
        Tuple ``(cleaned, summary)``; ``cleaned`` has the same index as
        ``series``.

    Raises:
        ValueError: On an unknown method, ``multiplier <= 0`` or an all-NaN
            series.
    """
    if method not in VALID_METHODS:
        raise ValueError(f"Unknown outlier method '{method}'. Use one of {sorted(VALID_METHODS)}.")

    bounds = compute_iqr_bounds(series, multiplier)
    low_mask = series < bounds.lower
    high_mask = series > bounds.upper
    outlier_mask = low_mask | high_mask

    if method == "clip":
        cleaned = series.clip(lower=bounds.lower, upper=bounds.upper)
    else:
        masked = series.mask(outlier_mask)
        filled = (
            masked.interpolate(method=_interp_method(series), limit_area="inside")
            .ffill()
            .bfill()
        )
        cleaned = masked.where(~outlier_mask, filled)

    summary = OutlierSummary(
        series_name=str(series.name),
        method=method,
        bounds=bounds,
        n_observed=int(series.notna().sum()),
        n_low=int(low_mask.sum()),
        n_high=int(high_mask.sum()),
    )
    if summary.n_outliers:
        logger.debug(
            "Outliers in '%s': low=%d high=%d bounds=[%.3f, %.3f] method=%s",
            summary.series_name, summary.n_low, summary.n_high,
            bounds.lower, bounds.upper, method,
        )
    return cleaned, summary


def fill_gaps(series: pd.Series, max_gap_steps: int) -> pd.Series:
    """Bridge short interior runs of NaN; fill leading/trailing NaN.

    Interior runs no longer than ``max_gap_steps`` are interpolated (time-
    weighted on a ``DatetimeIndex``). Longer interior runs stay NaN.
    Leading and trailing NaN take the nearest valid value.
    """
    if series.notna().sum() == 0:
        return series.copy()

    isna = series.isna()
    run_id = (isna != isna.shift()).cumsum()
    run_len = isna.groupby(run_id).transform("sum")

    interpolated = series.interpolate(method=_interp_method(series), limit_area="inside")
    short_gap = isna & (run_len <= max_gap_steps)
    result = series.where(~short_gap, interpolated)

    first, last = series.first_valid_index(), series.last_valid_index()
    result.loc[:first] = result.loc[:first].bfill()
    result.loc[last:] = result.loc[last:].ffill()
    return result


def clean_frame(
    frame: pd.DataFrame,
    config: CleaningConfig,
) -> tuple[pd.DataFrame, dict[str, OutlierSummary]]:
    """Apply ``remove_outliers()`` then ``fill_gaps()`` to configured columns.

    Columns not selected by ``config.series`` are copied through unchanged.
    Columns with no readings at all are skipped with a warning.

    Returns:
        Tuple ``(cleaned_frame, summaries)`` keyed by column name.
    """
    targets = config.series if config.series is not None else list(frame.columns)
    unknown = [c for c in targets if c not in frame.columns]
    if unknown:
        raise ValueError(f"cleaning.series names unknown columns: {unknown}")

    cleaned = frame.copy()
    summaries: dict[str, OutlierSummary] = {}

    for col in targets:
        if frame[col].notna().sum() == 0:
            logger.warning("Column '%s' has no readings; skipping cleaning.", col)
            continue
        series, summary = remove_outliers(
            frame[col], multiplier=config.iqr_multiplier, method=config.outlier_method,
        )
        cleaned[col] = fill_gaps(series, config.max_gap_steps)
        summaries[col] = summary

    logger.info(
        "Cleaned %d column(s) | outliers=%s",
        len(summaries),
        {c: s.n_outliers for c, s in summaries.items()},
    )
    return cleaned, summaries


def fill_all_gaps(series: pd.Series) -> pd.Series:
    """Fill every NaN, for models that need a gap-free series.

    Interior gaps of any length are interpolated and the edges take the
    nearest valid value.

    Raises:
        ValueError: If the series has no valid values at all.
    """
    n_missing = int(series.isna().sum())
    filled = series.astype(float).interpolate(method=_interp_method(series), limit_area="inside")
    filled = filled.ffill().bfill()
    if filled.isna().any():
        raise ValueError(f"Series '{series.name}' has no valid values.")
    if n_missing:
        logger.info("Series '%s': filled %d remaining missing step(s).", series.name, n_missing)
    return filled


def _interp_method(series: pd.Series) -> str:
    return "time" if isinstance(series.index, pd.DatetimeIndex) else "linear"
