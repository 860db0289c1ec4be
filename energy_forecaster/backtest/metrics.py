"""
Forecast accuracy metrics on held-out windows.

With ``e = actual − predicted``:

ME (Mean Error)
  Bias. Positive ME means the model under-forecasts on average.

MAE (Mean Absolute Error)
  "On average we are off by X kW." Same unit as the series.

RMSE (Root Mean Squared Error)
  Penalizes large misses more than MAE. A missed evening peak costs far
  more than many small errors overnight; RMSE > MAE shows occasional large
  misses. Default selection metric.

MPE / MAPE (Mean [Absolute] Percentage Error, in percent)
  Scale-free, so Demand and Import errors can be compared. Import crosses
  zero when the site exports, which makes percentage errors explode:
  actuals with ``|actual| < MAPE_EPSILON`` are excluded from both.

MASE (Mean Absolute Scaled Error)
  MAE divided by the in-sample MAE of the seasonal naive method on the
  training window. MASE < 1 beats "same time last cycle" on average.

ACF1
  Lag-1 autocorrelation of the errors inside each holdout window, averaged
  over folds. Values far from 0 mean the errors are still predictable, so
  the model is leaving structure unused.
"""

from __future__ import annotations

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

MAPE_EPSILON = 1e-6  # minimum |actual| to include in MPE / MAPE

METRIC_NAMES = ("me", "mae", "rmse", "mpe", "mape", "mase", "acf1")


@dataclass(frozen=True)
class PredictionRecord:
    """One prediction-vs-actual comparison for a single fold/model/timestamp.

    Attributes:
        fold_index:  Which fold this came from.
        series_name: Series being forecast.
        model_name:  Candidate that made this prediction.
        train_end:   Last timestamp the model was trained on.
        timestamp:   Timestamp being predicted.
        step:        1-based steps ahead of ``train_end``.
        actual:      Held-out value (None = missing reading).
        predicted:   Model output (None = model produced no value).
        scale:       In-sample seasonal naive MAE for MASE (None = unusable).
    """

    fold_index: int
    series_name: str
    model_name: str
    train_end: pd.Timestamp
    timestamp: pd.Timestamp
    step: int
    actual: float | None
    predicted: float | None
    scale: float | None = None


@dataclass(frozen=True)
class AccuracyMetrics:
    """Aggregated accuracy over a set of PredictionRecords.

    All float fields are None when there is insufficient data to compute them
    (e.g., n_evaluated == 0).
    """

    n_predictions: int
    n_evaluated: int
    me: float | None
    mae: float | None
    rmse: float | None
    mpe: float | None
    mape: float | None
    mase: float | None
    acf1: float | None
    model_name: str | None = None
    series_name: str | None = None

    def get(self, metric: str) -> float | None:
        """Look up a metric by lower-case name (``"rmse"``, ``"mase"``, ...)."""
        if metric not in METRIC_NAMES:
            raise ValueError(f"Unknown metric '{metric}'. Use one of {list(METRIC_NAMES)}.")
        return getattr(self, metric)

    def to_dict(self) -> dict[str, Any]:
        return {
            "model_name":    self.model_name,
            "series_name":   self.series_name,
            "n_predictions": self.n_predictions,
            "n_evaluated":   self.n_evaluated,
            **{name: getattr(self, name) for name in METRIC_NAMES},
        }


def compute_metrics(
    records: list[PredictionRecord],
    model_name: str | None = None,
    series_name: str | None = None,
) -> AccuracyMetrics:
    """Compute all accuracy metrics for a set of PredictionRecords.

    Rows where either actual or predicted is None are excluded from the
    metrics but counted in n_predictions.

    Args:
        records:     The predictions to evaluate.
        model_name:  Label to attach to the returned metrics.
        series_name: Label to attach to the returned metrics.
    """
    n_predictions = len(records)
    evaluated = [
        r for r in records
        if r.actual is not None and r.predicted is not None
    ]

    if not evaluated:
        return AccuracyMetrics(
            n_predictions=n_predictions, n_evaluated=0,
            me=None, mae=None, rmse=None, mpe=None, mape=None, mase=None, acf1=None,
            model_name=model_name, series_name=series_name,
        )

    actuals = np.array([r.actual for r in evaluated], dtype=float)
    errors  = actuals - np.array([r.predicted for r in evaluated], dtype=float)
    abs_errors = np.abs(errors)

    me   = float(errors.mean())
    mae  = float(abs_errors.mean())
    rmse = math.sqrt(float((errors ** 2).mean()))

    pct_mask = np.abs(actuals) >= MAPE_EPSILON
    if pct_mask.any():
        pct = 100.0 * errors[pct_mask] / actuals[pct_mask]
        mpe: float | None = float(pct.mean())
        mape: float | None = float(np.abs(pct).mean())
    else:
        mpe = mape = None

    scaled = [
        abs(r.actual - r.predicted) / r.scale  # type: ignore[operator]
        for r in evaluated
        if r.scale is not None and r.scale > 0
    ]
    mase = (sum(scaled) / len(scaled)) if scaled else None

    return AccuracyMetrics(
        n_predictions=n_predictions,
        n_evaluated=len(evaluated),
        me=me,
        mae=mae,
        rmse=rmse,
        mpe=mpe,
        mape=mape,
        mase=mase,
        acf1=_mean_fold_acf1(evaluated),
        model_name=model_name,
        series_name=series_name,
    )


def seasonal_naive_scale(y_train: pd.Series | np.ndarray, season: int) -> float | None:
    """In-sample MAE of the seasonal naive forecast, ``mean |y_t − y_{t−m}|``.

    Falls back to ``m = 1`` (naive) when the training series is shorter than
    ``season + 1``. Returns None when the scale is zero or undefined.
    """
    y = np.asarray(y_train, dtype=float)
    y = y[~np.isnan(y)]
    m = season if len(y) > season else 1
    if len(y) <= m:
        return None
    scale = float(np.mean(np.abs(y[m:] - y[:-m])))
    return scale if scale > 0 else None


def _mean_fold_acf1(records: list[PredictionRecord]) -> float | None:
    """Lag-1 autocorrelation of errors per (series, fold), averaged."""
    by_fold: dict[tuple[str, int], list[PredictionRecord]] = defaultdict(list)
    for r in records:
        by_fold[(r.series_name, r.fold_index)].append(r)

    values: list[float] = []
    for recs in by_fold.values():
        recs.sort(key=lambda r: r.step)
        e = np.array([r.actual - r.predicted for r in recs], dtype=float)  # type: ignore[operator]
        if len(e) < 2:
            continue
        centered = e - e.mean()
        denom = float(np.sum(centered ** 2))
        if denom == 0.0:
            continue
        values.append(float(np.sum(centered[1:] * centered[:-1]) / denom))

    return (sum(values) / len(values)) if values else None
