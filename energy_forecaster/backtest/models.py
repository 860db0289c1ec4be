"""
Candidate forecasting models and the candidate registry.

Why baselines first?
--------------------
Before trusting a statistical model, we must establish what "doing well"
actually means. Each baseline tests a specific hypothesis:

  NaiveModel            → "Next week looks like the last reading."
                          Tests: is ANY structure present at all?

  MeanModel             → "The series fluctuates around a stable level."
                          Tests: is there anything beyond the average?

  DriftModel            → "The level keeps moving the way it has so far."
                          Tests: is a trend worth extrapolating?

  SeasonalNaiveModel    → "Tomorrow repeats today" (daily period) or
                          "next week repeats this week" (weekly period).
                          Tests: how far does plain seasonality get us?

If a statistical or ML model cannot beat the seasonal naive baselines on
the holdout, the selection step picks the baseline.

Interface contract
------------------
All candidates implement:

  name: str                 — registry name, used in reports
  family: str               — one of models.meta.VALID_MODEL_FAMILIES
  hyperparameters: dict     — settings that define the model

  fit(y: pd.Series) → None
    Receive a regularly spaced training series without NaN, sorted by time.

  predict(horizon: int) → np.ndarray
    Return ``horizon`` values for the steps right after the training series.

Candidates that cannot be fitted (series too short for their seasonal
period, numerical failure) raise; the evaluator isolates the failure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from energy_forecaster.config import LightGBMConfig


class NaiveModel:
    """Predict = most recent observed value, for every step."""

    name = "naive"
    family = "baseline"

    def __init__(self) -> None:
        self._last: float | None = None

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {}

    def fit(self, y: pd.Series) -> None:
        if len(y) == 0:
            raise ValueError("NaiveModel needs at least one observation.")
        self._last = float(y.iloc[-1])

    def predict(self, horizon: int) -> np.ndarray:
        _require_fitted(self._last, self.name)
        return np.full(horizon, self._last, dtype=float)


class MeanModel:
    """Predict = mean of the training window, for every step."""

    name = "mean"
    family = "baseline"

    def __init__(self) -> None:
        self._mean: float | None = None

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {}

    def fit(self, y: pd.Series) -> None:
        if len(y) == 0:
            raise ValueError("MeanModel needs at least one observation.")
        self._mean = float(y.mean())

    def predict(self, horizon: int) -> np.ndarray:
        _require_fitted(self._mean, self.name)
        return np.full(horizon, self._mean, dtype=float)


class DriftModel:
    """Random walk with drift: extend the line from first to last value."""

    name = "drift"
    family = "baseline"

    def __init__(self) -> None:
        self._last: float | None = None
        self._slope: float = 0.0

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {}

    def fit(self, y: pd.Series) -> None:
        n = len(y)
        if n == 0:
            raise ValueError("DriftModel needs at least one observation.")
        self._last = float(y.iloc[-1])
        self._slope = (self._last - float(y.iloc[0])) / (n - 1) if n > 1 else 0.0

    def predict(self, horizon: int) -> np.ndarray:
        _require_fitted(self._last, self.name)
        steps = np.arange(1, horizon + 1, dtype=float)
        return self._last + self._slope * steps


class SeasonalNaiveModel:
    """Predict = value from the same slot in the last observed cycle.

    ``period`` is the cycle length in grid steps (24 for daily on an hourly
    grid, 168 for weekly). Horizons longer than one period repeat the last
    cycle.
    """

    family = "baseline"

    def __init__(self, period: int, name: str = "seasonal_naive") -> None:
        if period < 1:
            raise ValueError(f"period must be >= 1, got {period}")
        self.period = period
        self.name = name
        self._last_cycle: np.ndarray | None = None

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {"period": self.period}

    def fit(self, y: pd.Series) -> None:
        if len(y) < self.period:
            raise ValueError(
                f"{self.name} needs at least {self.period} observations; got {len(y)}."
            )
        self._last_cycle = y.to_numpy(dtype=float)[-self.period:]

    def predict(self, horizon: int) -> np.ndarray:
        _require_fitted(self._last_cycle, self.name)
        return repeat_last_cycle(self._last_cycle, horizon)  # type: ignore[arg-type]


# ── Helpers ───────────────────────────────────────────────────────────────────

def repeat_last_cycle(cycle: np.ndarray, horizon: int) -> np.ndarray:
    """Tile one seasonal cycle forward to ``horizon`` steps."""
    reps = -(-horizon // len(cycle))
    return np.tile(cycle, reps)[:horizon].astype(float)


def _require_fitted(state: object, name: str) -> None:
    if state is None:
        raise RuntimeError(f"Candidate '{name}' must be fitted before predict().")


# ── Registry ──────────────────────────────────────────────────────────────────

def build_candidates(
    names: list[str],
    horizon_steps: int,
    steps_per_day: int,
    seasonal_steps: list[int],
    lgbm_config: "LightGBMConfig | None" = None,
) -> list[Any]:
    """Return one fresh instance of every named candidate, in ``names`` order.

    Each call returns new instances (no state shared between folds).

    Args:
        names:          Registry names from ``ForecastConfig.candidates``.
        horizon_steps:  Steps the candidates will be asked to predict. The
                        LightGBM candidate builds its lags from this.
        steps_per_day:  Grid steps in one day (24 on an hourly grid).
        seasonal_steps: Seasonal periods in grid steps, e.g. ``[24, 168]``.
        lgbm_config:    LightGBM hyperparameters (defaults if None).

    Raises:
        ValueError: If a name is not a known candidate.
    """
    from energy_forecaster.backtest.stat_models import (
        FourierARIMAModel,
        HoltWintersModel,
        MSTLARIMAModel,
        STLETSModel,
    )
    from energy_forecaster.ml.lgbm_model import LightGBMForecaster

    factories = {
        "naive": NaiveModel,
        "mean": MeanModel,
        "drift": DriftModel,
        "seasonal_naive_daily": lambda: SeasonalNaiveModel(
            steps_per_day, name="seasonal_naive_daily"
        ),
        "seasonal_naive_weekly": lambda: SeasonalNaiveModel(
            7 * steps_per_day, name="seasonal_naive_weekly"
        ),
        "holt_winters": lambda: HoltWintersModel(seasonal_period=steps_per_day),
        "stl_ets": lambda: STLETSModel(periods=seasonal_steps),
        "mstl_arima": lambda: MSTLARIMAModel(periods=seasonal_steps),
        "fourier_arima": lambda: FourierARIMAModel(periods=seasonal_steps),
        "lightgbm": lambda: LightGBMForecaster.from_config(
            horizon_steps=horizon_steps,
            steps_per_day=steps_per_day,
            seasonal_steps=seasonal_steps,
            config=lgbm_config,
        ),
    }

    unknown = [n for n in names if n not in factories]
    if unknown:
        raise ValueError(
            f"Unknown candidate model(s): {unknown}. Known: {sorted(factories)}"
        )
    return [factories[n]() for n in names]
