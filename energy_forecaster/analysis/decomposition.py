"""
Multi-seasonal decomposition (MSTL) of a single energy series.

Energy series on an hourly grid carry two nested cycles: the daily load shape
(24 steps) and the weekday/weekend pattern (168 steps). MSTL (Bandara,
Hyndman & Bergmeir, 2021) extracts each seasonal component in turn with
STL, iterating so that the daily and weekly components do not absorb each
other.

    y_t = T_t + S_t^(24) + S_t^(168) + R_t

Strength measures (Hyndman & Athanasopoulos, FPP3 §4.3) summarise how much
of the variation each component explains, on a 0–1 scale:

    trend strength      F_T = max(0, 1 − Var(R) / Var(T + R))
    seasonal strength   F_S = max(0, 1 − Var(R) / Var(S_i + R))

A seasonal strength near 1 means the cycle is regular enough that seasonal
models (seasonal naive, Holt–Winters, MSTL-based forecasts) should do well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from energy_forecaster.features.cleaning import fill_all_gaps

logger = logging.getLogger(__name__)


@dataclass
class DecompositionResult:
    """Components of one MSTL decomposition.

    Attributes:
        series_name: Name of the decomposed series.
        periods:     Seasonal periods in grid steps, ascending.
        observed:    The (gap-filled) series that was decomposed.
        trend:       Trend-cycle component.
        seasonal:    One column per period, named ``seasonal_<period>``.
        remainder:   What is left after removing trend and seasonality.
        strength:    ``{"trend": F_T, "seasonal_<p>": F_S, ...}``.
    """

    series_name: str
    periods: list[int]
    observed: pd.Series
    trend: pd.Series
    seasonal: pd.DataFrame
    remainder: pd.Series
    strength: dict[str, float] = field(default_factory=dict)

    def components_frame(self) -> pd.DataFrame:
        """All components side by side, one row per timestamp."""
        frame = pd.concat(
            [
                self.observed.rename("observed"),
                self.trend.rename("trend"),
                self.seasonal,
                self.remainder.rename("remainder"),
            ],
            axis=1,
        )
        frame.index.name = self.observed.index.name or "timestamp"
        return frame

    def seasonally_adjusted(self) -> pd.Series:
        return self.observed - self.seasonal.sum(axis=1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "series_name": self.series_name,
            "periods":     self.periods,
            "n_obs":       int(self.observed.size),
            "start":       self.observed.index.min().isoformat(),
            "end":         self.observed.index.max().isoformat(),
            "strength":    self.strength,
        }


def decompose_series(
    series: pd.Series,
    periods: list[int],
    robust: bool = True,
) -> DecompositionResult:
    """Run MSTL on ``series``.

    Args:
        series:  Regularly spaced series; interior NaNs are interpolated and
                 leading/trailing NaNs take the nearest valid value.
        periods: Seasonal periods in grid steps (e.g. ``[24, 168]``).
        robust:  Use robust (outlier-downweighting) STL fits.

    Returns:
        ``DecompositionResult``.

    Raises:
        ValueError: If a period is < 2, or the series does not span more
            than two full cycles of its longest period.
    """
    from statsmodels.tsa.seasonal import MSTL

    if not periods:
        raise ValueError("At least one seasonal period is required.")
    periods = sorted(set(int(p) for p in periods))
    if periods[0] < 2:
        raise ValueError(f"Seasonal periods must be >= 2, got {periods}.")

    y = fill_all_gaps(series)
    if len(y) <= 2 * periods[-1]:
        raise ValueError(
            f"Series '{series.name}' has {len(y)} observations; MSTL with period "
            f"{periods[-1]} needs more than {2 * periods[-1]}."
        )

    res = MSTL(y, periods=periods, stl_kwargs={"robust": robust}).fit()

    seasonal = pd.DataFrame(
        np.asarray(res.seasonal).reshape(len(y), -1),
        index=y.index,
        columns=[f"seasonal_{p}" for p in periods],
    )

    trend = pd.Series(np.asarray(res.trend), index=y.index, name="trend")
    remainder = pd.Series(np.asarray(res.resid), index=y.index, name="remainder")

    strength = {"trend": _strength(remainder, trend)}
    for col in seasonal.columns:
        strength[col] = _strength(remainder, seasonal[col])

    logger.info(
        "MSTL '%s' | n=%d | periods=%s | strength=%s",
        series.name, len(y), periods,
        {k: round(v, 3) for k, v in strength.items()},
    )
    return DecompositionResult(
        series_name=str(series.name),
        periods=periods,
        observed=y,
        trend=trend,
        seasonal=seasonal,
        remainder=remainder,
        strength=strength,
    )


def _strength(remainder: pd.Series, component: pd.Series) -> float:
    """``max(0, 1 − Var(R) / Var(C + R))``; 0.0 when the denominator is 0."""
    denom = float(np.var(component + remainder))
    if denom <= 0.0:
        return 0.0
    return max(0.0, 1.0 - float(np.var(remainder)) / denom)

