"""
Holdout (rolling-origin) split generation.

Design
------
Model selection asks: "had we stopped observing at time T, which method
would have forecast the following window best?"  The answer comes from
hiding the last ``holdout_steps`` observations, fitting every candidate on
what remains, and scoring the forecasts against the hidden values.

A single holdout window is the classic train/test split.  With
``n_folds > 1`` the origin is moved back ``step`` observations per fold
(rolling origin), so the comparison does not hinge on one possibly unusual
week.

Split structure (expanding training window)
-------------------------------------------
Given ``n`` observations, for fold k counted back from the end
(k = 0 is the most recent):

  test_stop   = n − k·step                ← exclusive end position
  test_start  = test_stop − holdout_steps
  train_end   = test_start − 1            ← model only "knows" data up to here

Training always starts at position 0: seasonal models need as many full
cycles as possible, and early data is the same regime as late data within
a single spreadsheet.

Leakage prevention
------------------
The structural guarantee is: test_start > train_end for every fold.
No test-window information is ever accessible during training.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd


@dataclass(frozen=True)
class HoldoutFold:
    """One holdout evaluation fold.

    Attributes:
        fold_index:    Folds counted back from the end: 0 holds out the last
                       ``holdout_steps`` observations, 1 the window ``step``
                       observations earlier, and so on.
        train_start:   First timestamp in the training window.
        train_end:     Last timestamp in the training window (the origin).
                       The model must NOT use any data after this timestamp.
        test_start:    First timestamp being predicted.
        test_end:      Last timestamp being predicted.
        horizon_steps: Number of steps predicted (= holdout length).
        train_stop:    Exclusive positional end of the training slice.
        test_stop:     Exclusive positional end of the test slice.
    """

    fold_index: int
    train_start: pd.Timestamp
    train_end: pd.Timestamp
    test_start: pd.Timestamp
    test_end: pd.Timestamp
    horizon_steps: int
    train_stop: int
    test_stop: int

    def split(self, series: pd.Series) -> tuple[pd.Series, pd.Series]:
        """Return ``(train, test)`` slices of ``series`` for this fold."""
        return (
            series.iloc[: self.train_stop],
            series.iloc[self.train_stop: self.test_stop],
        )


def generate_holdout_splits(
    index: pd.DatetimeIndex,
    holdout_steps: int,
    n_folds: int = 1,
    step: int | None = None,
    min_train_steps: int = 1,
) -> list[HoldoutFold]:
    """Generate holdout folds over ``index``.

    Args:
        index:           Timestamps of the full series (sorted, regular).
        holdout_steps:   Length of each test window (>= 1).
        n_folds:         Number of origins to evaluate (>= 1).
        step:            Observations between consecutive origins (>= 1).
                         Defaults to ``holdout_steps`` (non-overlapping tests).
        min_train_steps: Folds with fewer training observations are dropped.

    Returns:
        List of HoldoutFold objects, oldest first (so ``fold_index``
        descends to 0 at the end of the list). Empty if the series is too
        short to form any valid fold.

    Raises:
        ValueError: If any parameter is out of valid range.
    """
    if holdout_steps < 1:
        raise ValueError(f"holdout_steps must be >= 1, got {holdout_steps}")
    if n_folds < 1:
        raise ValueError(f"n_folds must be >= 1, got {n_folds}")
    step = holdout_steps if step is None else step
    if step < 1:
        raise ValueError(f"step must be >= 1, got {step}")

    n = len(index)
    bounds: list[tuple[int, int]] = []
    for k in range(n_folds):
        test_stop = n - k * step
        train_stop = test_stop - holdout_steps
        if train_stop < max(min_train_steps, 1):
            break
        bounds.append((train_stop, test_stop))

    # fold_index counts back from the end (0 = most recent holdout) while the
    # returned list runs oldest first
    folds: list[HoldoutFold] = []
    for k in reversed(range(len(bounds))):
        train_stop, test_stop = bounds[k]
        folds.append(HoldoutFold(
            fold_index=k,
            train_start=index[0],
            train_end=index[train_stop - 1],
            test_start=index[train_stop],
            test_end=index[test_stop - 1],
            horizon_steps=holdout_steps,
            train_stop=train_stop,
            test_stop=test_stop,
        ))
    return folds
