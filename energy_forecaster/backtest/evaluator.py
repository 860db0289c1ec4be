"""
Holdout evaluator: fit every candidate per fold and score it on hidden data.

How it works
------------
1. Receive the full (gap-free) series and the holdout folds.
2. For each fold:
   a. Slice the series into train (positions < train_stop) and test.
   b. Compute the MASE scale from the training slice only.
   c. Ask ``candidate_factory()`` for FRESH candidate instances.
   d. For each candidate:
      - model.fit(train)
      - predicted = model.predict(fold.horizon_steps)
      - Pair prediction i with the test timestamp i (step i + 1).
      - Emit one PredictionRecord per step.
3. Return all PredictionRecords plus any CandidateFailures.

Failure isolation
-----------------
One candidate that cannot fit (too little history for its seasonal period,
a numerical failure in an optimiser) must not sink the comparison. Its
exception is logged and recorded as a ``CandidateFailure``; it produces no
records for that fold and the other candidates carry on.

Leakage proof
-------------
- Models receive only ``train``; the test slice is used ONLY to look up
  actuals after prediction.
- test_start > train_end (structural guarantee from split generation).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np
import pandas as pd

from energy_forecaster.backtest.metrics import PredictionRecord, seasonal_naive_scale
from energy_forecaster.backtest.splits import HoldoutFold

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateFailure:
    """A candidate that could not produce a forecast for one fold."""

    series_name: str
    model_name: str
    fold_index: int
    error_type: str
    error_message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "series_name":   self.series_name,
            "model_name":    self.model_name,
            "fold_index":    self.fold_index,
            "error_type":    self.error_type,
            "error_message": self.error_message,
        }


@dataclass
class BacktestResult:
    """All records and failures from one ``evaluate_candidates()`` call."""

    records: list[PredictionRecord] = field(default_factory=list)
    failures: list[CandidateFailure] = field(default_factory=list)

    @property
    def model_names(self) -> list[str]:
        """Models that produced at least one record, in first-seen order."""
        return list(dict.fromkeys(r.model_name for r in self.records))

    def failed_models(self) -> set[str]:
        return {f.model_name for f in self.failures}


def evaluate_candidates(
    series: pd.Series,
    series_name: str,
    folds: list[HoldoutFold],
    candidate_factory: Callable[[], list[Any]],
    scale_season: int,
) -> BacktestResult:
    """Evaluate all candidates over all holdout folds.

    Args:
        series:            Gap-free series on a regular DatetimeIndex.
        series_name:       Label written into every record.
        folds:             Folds from ``generate_holdout_splits()``.
        candidate_factory: Returns fresh, unfitted candidates on each call.
        scale_season:      Seasonal period (steps) for the MASE scale.

    Returns:
        ``BacktestResult`` — one record per (fold × candidate × step) for
        candidates that succeeded, one failure per (fold × candidate) that
        raised or predicted a non-finite value.
    """
    result = BacktestResult()

    for fold in folds:
        train, test = fold.split(series)
        scale = seasonal_naive_scale(train, scale_season)
        log.debug(
            "Fold %d | %s | train=[%s..%s] | test=[%s..%s]",
            fold.fold_index, series_name,
            fold.train_start, fold.train_end, fold.test_start, fold.test_end,
        )

        for model in candidate_factory():
            try:
                model.fit(train)
                predicted = np.asarray(model.predict(fold.horizon_steps), dtype=float)
                if predicted.shape != (fold.horizon_steps,):
                    raise ValueError(
                        f"expected {fold.horizon_steps} predictions, got shape {predicted.shape}"
                    )
                n_bad = int(np.count_nonzero(~np.isfinite(predicted)))
                if n_bad:
                    raise ValueError(
                        f"{n_bad} of {fold.horizon_steps} predictions are not finite"
                    )
            except Exception as exc:
                log.warning(
                    "Candidate '%s' failed on %s fold %d: %s",
                    model.name, series_name, fold.fold_index, exc,
                    extra={"series": series_name, "model": model.name},
                )
                result.failures.append(CandidateFailure(
                    series_name=series_name,
                    model_name=model.name,
                    fold_index=fold.fold_index,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                ))
                continue

            for step, (timestamp, actual) in enumerate(test.items(), start=1):
                value = float(predicted[step - 1])
                result.records.append(PredictionRecord(
                    fold_index=fold.fold_index,
                    series_name=series_name,
                    model_name=model.name,
                    train_end=fold.train_end,
                    timestamp=timestamp,
                    step=step,
                    actual=None if pd.isna(actual) else float(actual),
                    predicted=value,
                    scale=scale,
                ))

    log.info(
        "Backtest complete | series=%s | folds=%d | records=%d | failures=%d",
        series_name, len(folds), len(result.records), len(result.failures),
    )
    return result
