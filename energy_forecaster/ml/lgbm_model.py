"""
LightGBM-based direct forecaster for a single energy series.

Model choice rationale
----------------------
The statistical candidates model seasonality explicitly. LightGBM instead
learns it from calendar features and seasonal lags, and can pick up
non-additive interactions (e.g. a weekend evening peak that differs in
shape from weekday peaks) that additive decompositions smooth over.

Training strategy
-----------------
ONE model per (series, horizon). Features come from
``feature_builder.build_feature_frame()`` with every lag >= the horizon, so
a single model predicts all horizon steps at once (direct strategy) and
errors never compound through recursion.

Validation split
----------------
Always time-based (last ``validation_fraction`` of training rows =
validation, used for early stopping). NEVER random — random splits on
time-series data allow the model to peek into the future.

Missing values
--------------
LightGBM handles NaN natively. Lags reaching before the series start stay
NaN; rows are only dropped when the target itself is missing.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

import numpy as np
import pandas as pd

from energy_forecaster.ml.feature_builder import (
    build_feature_frame,
    direct_lags,
    feature_columns,
)

if TYPE_CHECKING:
    from energy_forecaster.config import LightGBMConfig

logger = logging.getLogger(__name__)

MIN_TRAINING_ROWS = 10


class LightGBMForecaster:
    """Direct multi-step LightGBM forecaster.

    Attributes:
        horizon_steps: Longest horizon this model can predict.
        name:          Registry name (``"lightgbm"``).
        family:        Model family (``"lightgbm"``).
    """

    name = "lightgbm"
    family = "lightgbm"

    def __init__(
        self,
        horizon_steps: int,
        steps_per_day: int,
        seasonal_steps: list[int],
        num_leaves: int = 31,
        learning_rate: float = 0.05,
        n_estimators: int = 300,
        min_child_samples: int = 10,
        feature_fraction: float = 0.9,
        early_stopping_rounds: int = 30,
        validation_fraction: float = 0.1,
    ) -> None:
        self.horizon_steps = horizon_steps
        self.steps_per_day = steps_per_day
        self.lags = direct_lags(horizon_steps, steps_per_day, seasonal_steps)
        self._hyperparams: dict[str, Any] = {
            "num_leaves":        num_leaves,
            "learning_rate":     learning_rate,
            "n_estimators":      n_estimators,
            "min_child_samples": min_child_samples,
            "feature_fraction":  feature_fraction,
        }
        self._early_stopping_rounds = early_stopping_rounds
        self._validation_fraction = validation_fraction
        self._booster = None       # lgb.Booster; None until fit()
        self._feature_cols = feature_columns(self.lags)
        self._history: pd.Series | None = None
        self._val_metrics: dict[str, float] = {}
        self._training_rows: int = 0

    @classmethod
    def from_config(
        cls,
        horizon_steps: int,
        steps_per_day: int,
        seasonal_steps: list[int],
        config: "LightGBMConfig | None" = None,
    ) -> "LightGBMForecaster":
        """Build a forecaster with hyperparameters from ``[lightgbm]``."""
        params = config.model_dump() if config is not None else {}
        return cls(
            horizon_steps=horizon_steps,
            steps_per_day=steps_per_day,
            seasonal_steps=seasonal_steps,
            **params,
        )

    # ── Properties ────────────────────────────────────────────────────────────

    @property
    def is_fitted(self) -> bool:
        """True after fit() has been called successfully."""
        return self._booster is not None

    @property
    def val_metrics(self) -> dict[str, float]:
        """Validation-set metrics from the most recent fit() call."""
        return dict(self._val_metrics)

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {
            **self._hyperparams,
            "lags": self.lags,
            "horizon_steps": self.horizon_steps,
            "early_stopping_rounds": self._early_stopping_rounds,
            "validation_fraction": self._validation_fraction,
        }

    # ── Training ──────────────────────────────────────────────────────────────

    def fit(self, y: pd.Series) -> None:
        """Train on the lag/calendar features of ``y``.

        Raises:
            ValueError: Fewer than ``MIN_TRAINING_ROWS`` rows with a usable
                target and horizon lag.
        """
        import lightgbm as lgb

        frame = build_feature_frame(y, None, self.lags, self.horizon_steps, self.steps_per_day)
        frame = frame.dropna(subset=["target", f"lag_{self.horizon_steps}"])
        if len(frame) < MIN_TRAINING_ROWS:
            raise ValueError(
                f"LightGBMForecaster.fit() needs >= {MIN_TRAINING_ROWS} training rows "
                f"after lagging by {self.horizon_steps} steps; got {len(frame)}."
            )

        n_val = int(len(frame) * self._validation_fraction)
        if len(frame) - n_val < MIN_TRAINING_ROWS:
            n_val = 0
        train = frame.iloc[: len(frame) - n_val]
        val = frame.iloc[len(frame) - n_val:]

        lgb_params = {
            "objective":        "regression",
            "metric":           "l2",
            "num_leaves":       self._hyperparams["num_leaves"],
            "learning_rate":    self._hyperparams["learning_rate"],
            "feature_fraction": self._hyperparams["feature_fraction"],
            "min_child_samples":self._hyperparams["min_child_samples"],
            "verbose":          -1,
            "n_jobs":           -1,
        }

        dtrain = lgb.Dataset(
            train[self._feature_cols].to_numpy(dtype=np.float64),
            label=train["target"].to_numpy(dtype=np.float64),
            feature_name=self._feature_cols,
            free_raw_data=False,
        )

        callbacks = [lgb.log_evaluation(period=-1)]
        valid_sets = [dtrain]
        valid_names = ["train"]

        if n_val > 0:
            dval = lgb.Dataset(
                val[self._feature_cols].to_numpy(dtype=np.float64),
                label=val["target"].to_numpy(dtype=np.float64),
                feature_name=self._feature_cols,
                reference=dtrain,
                free_raw_data=False,
            )
            valid_sets = [dtrain, dval]
            valid_names = ["train", "val"]
            callbacks.append(
                lgb.early_stopping(
                    stopping_rounds=self._early_stopping_rounds,
                    verbose=False,
                )
            )

        self._booster = lgb.train(
            lgb_params,
            dtrain,
            num_boost_round=self._hyperparams["n_estimators"],
            valid_sets=valid_sets,
            valid_names=valid_names,
            callbacks=callbacks,
        )
        self._history = y.astype(float)
        self._training_rows = len(train)
        self._val_metrics = self._evaluate(val) if n_val > 0 else {}

        logger.debug(
            "LightGBM fit | series=%s | rows=%d | val=%d | lags=%s",
            y.name, self._training_rows, n_val, self.lags,
        )

    # ── Inference ─────────────────────────────────────────────────────────────

    def predict(self, horizon: int) -> np.ndarray:
        """Predict the ``horizon`` steps following the training series.

        Raises:
            RuntimeError: If the model is not fitted.
            ValueError:   If ``horizon`` exceeds the horizon it was built for.
        """
        if not self.is_fitted or self._history is None:
            raise RuntimeError("lightgbm must be fitted before predict().")
        if horizon > self.horizon_steps:
            raise ValueError(
                f"LightGBMForecaster was built for {self.horizon_steps} steps; "
                f"cannot predict {horizon}."
            )

        index = pd.DatetimeIndex(self._history.index)
        step = index[-1] - index[-2]
        future = pd.date_range(start=index[-1] + step, periods=horizon, freq=step)

        frame = build_feature_frame(
            self._history, future, self.lags, self.horizon_steps, self.steps_per_day
        )
        X = frame[self._feature_cols].iloc[-horizon:].to_numpy(dtype=np.float64)
        return np.asarray(self._booster.predict(X), dtype=float)

    # ── Evaluation ────────────────────────────────────────────────────────────

    def _evaluate(self, val: pd.DataFrame) -> dict[str, float]:
        """MAE and RMSE on the validation rows."""
        preds = self._booster.predict(val[self._feature_cols].to_numpy(dtype=np.float64))
        errors = val["target"].to_numpy(dtype=float) - preds
        return {
            "mae":   float(np.abs(errors).mean()),
            "rmse":  math.sqrt(float((errors ** 2).mean())),
            "n_val": float(len(errors)),
        }
