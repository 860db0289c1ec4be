"""
Statistical candidate models built on statsmodels.

  HoltWintersModel   → additive Holt–Winters with damped trend, one
                       (daily) seasonal period.
  STLETSModel        → STL removes the longest usable seasonal period, an
                       ETS(A,Ad,N) model forecasts the adjusted series and
                       the seasonal component is carried forward.
  MSTLARIMAModel     → MSTL removes every usable seasonal period, an ARIMA
                       model forecasts trend + remainder, and each seasonal
                       component repeats its last cycle.
  FourierARIMAModel  → ARIMA errors with sin/cos regressors for each
                       seasonal period (dynamic harmonic regression).

Hourly energy data with a weekly cycle of 168 steps is out of reach for a
seasonal ARIMA (the seasonal lag polynomial becomes enormous), which is why
the multi-seasonal candidates move seasonality into either a decomposition
or Fourier regressors and leave ARIMA the short-memory part.

All candidates follow the ``fit(y)`` / ``predict(horizon)`` contract in
``backtest.models``. statsmodels is fed plain numpy arrays so results never
depend on whether pandas could infer a frequency for the index.

A seasonal period is *usable* when the training series spans at least two
full cycles of it. Candidates raise ``ValueError`` when no configured period
is usable.
"""

from __future__ import annotations

import logging
import warnings
from contextlib import contextmanager
from typing import Any, Iterator

import numpy as np
import pandas as pd

from energy_forecaster.backtest.models import repeat_last_cycle

logger = logging.getLogger(__name__)


@contextmanager
def logged_fit_warnings(model_name: str) -> Iterator[None]:
    """Collect warnings raised inside the block and log each distinct one.

    statsmodels reports convergence and start-parameter problems as
    warnings; they are logged at WARNING with the candidate name so they
    reach the log file next to the holdout scores.
    """
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            yield
        finally:
            seen: set[str] = set()
            for w in caught:
                text = f"{w.category.__name__}: {w.message}"
                if text in seen:
                    continue
                seen.add(text)
                logger.warning(
                    "%s fit warning | %s", model_name, text, extra={"model": model_name}
                )


def usable_periods(periods: list[int], n_obs: int) -> list[int]:
    """Seasonal periods (ascending, deduplicated) with >= 2 full cycles in ``n_obs``."""
    return [p for p in sorted(set(periods)) if p >= 2 and n_obs >= 2 * p]


def fourier_terms(
    positions: np.ndarray,
    periods: list[int],
    harmonics: dict[int, int],
) -> np.ndarray:
    """Sin/cos regressors ``sin(2πkt/p), cos(2πkt/p)`` for k = 1..K per period.

    Args:
        positions: Integer time positions (0 = first training observation).
        periods:   Seasonal periods in grid steps.
        harmonics: Number of harmonic pairs K per period.

    Returns:
        Array of shape ``(len(positions), 2 * sum(K))``.
    """
    t = np.asarray(positions, dtype=float)
    columns: list[np.ndarray] = []
    for p in periods:
        for k in range(1, harmonics[p] + 1):
            angle = 2.0 * np.pi * k * t / p
            columns.append(np.sin(angle))
            columns.append(np.cos(angle))
    if not columns:
        return np.empty((len(t), 0))
    return np.column_stack(columns)


def _as_array(y: pd.Series) -> np.ndarray:
    values = y.to_numpy(dtype=float)
    if np.isnan(values).any():
        raise ValueError(f"Training series '{y.name}' contains NaN values.")
    return values


class HoltWintersModel:
    """Additive Holt–Winters (ETS(A,Ad,A)) for a single seasonal period."""

    name = "holt_winters"
    family = "exponential_smoothing"

    def __init__(self, seasonal_period: int, damped_trend: bool = True) -> None:
        self.seasonal_period = seasonal_period
        self.damped_trend = damped_trend
        self._result = None

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {
            "seasonal_period": self.seasonal_period,
            "trend": "add",
            "damped_trend": self.damped_trend,
            "seasonal": "add",
        }

    def fit(self, y: pd.Series) -> None:
        from statsmodels.tsa.holtwinters import ExponentialSmoothing

        values = _as_array(y)
        if len(values) < 2 * self.seasonal_period:
            raise ValueError(
                f"holt_winters needs two full cycles ({2 * self.seasonal_period} "
                f"observations); got {len(values)}."
            )
        model = ExponentialSmoothing(
            values,
            trend="add",
            damped_trend=self.damped_trend,
            seasonal="add",
            seasonal_periods=self.seasonal_period,
            initialization_method="estimated",
        )
        with logged_fit_warnings(self.name):
            self._result = model.fit(optimized=True)

    def predict(self, horizon: int) -> np.ndarray:
        if self._result is None:
            raise RuntimeError("holt_winters must be fitted before predict().")
        return np.asarray(self._result.forecast(horizon), dtype=float)


class STLETSModel:
    """STL on the longest usable period, damped additive ETS on the rest."""

    name = "stl_ets"
    family = "decomposition"

    def __init__(self, periods: list[int], robust: bool = True) -> None:
        self.periods = sorted(set(periods))
        self.robust = robust
        self.period_used: int | None = None
        self._result = None

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {
            "periods": self.periods,
            "period_used": self.period_used,
            "robust": self.robust,
            "ets": "A,Ad,N",
        }

    def fit(self, y: pd.Series) -> None:
        from statsmodels.tsa.exponential_smoothing.ets import ETSModel
        from statsmodels.tsa.forecasting.stl import STLForecast

        values = _as_array(y)
        usable = usable_periods(self.periods, len(values))
        if not usable:
            raise ValueError(
                f"stl_ets: no seasonal period in {self.periods} has two full cycles "
                f"in {len(values)} observations."
            )
        self.period_used = usable[-1]

        model = STLForecast(
            values,
            ETSModel,
            model_kwargs={"error": "add", "trend": "add", "damped_trend": True},
            period=self.period_used,
            robust=self.robust,
        )
        with logged_fit_warnings(self.name):
            self._result = model.fit(fit_kwargs={"disp": False})

    def predict(self, horizon: int) -> np.ndarray:
        if self._result is None:
            raise RuntimeError("stl_ets must be fitted before predict().")
        return np.asarray(self._result.forecast(horizon), dtype=float)


class MSTLARIMAModel:
    """MSTL seasonal components + ARIMA on the seasonally adjusted series."""

    name = "mstl_arima"
    family = "decomposition"

    def __init__(
        self,
        periods: list[int],
        order: tuple[int, int, int] = (2, 1, 1),
        robust: bool = True,
    ) -> None:
        self.periods = sorted(set(periods))
        self.order = order
        self.robust = robust
        self.periods_used: list[int] = []
        self._last_cycles: list[np.ndarray] = []
        self._arima = None

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {
            "periods": self.periods,
            "periods_used": self.periods_used,
            "order": list(self.order),
            "robust": self.robust,
        }

    def fit(self, y: pd.Series) -> None:
        from statsmodels.tsa.arima.model import ARIMA
        from statsmodels.tsa.seasonal import MSTL

        values = _as_array(y)
        usable = [p for p in usable_periods(self.periods, len(values)) if len(values) > 2 * p]
        if not usable:
            raise ValueError(
                f"mstl_arima: no seasonal period in {self.periods} has more than two "
                f"full cycles in {len(values)} observations."
            )
        self.periods_used = usable

        decomposition = MSTL(values, periods=usable, stl_kwargs={"robust": self.robust}).fit()
        seasonal = np.asarray(decomposition.seasonal, dtype=float).reshape(len(values), -1)
        self._last_cycles = [
            seasonal[-p:, i] for i, p in enumerate(usable)
        ]
        adjusted = values - seasonal.sum(axis=1)

        with logged_fit_warnings(self.name):
            self._arima = ARIMA(adjusted, order=self.order).fit()

    def predict(self, horizon: int) -> np.ndarray:
        if self._arima is None:
            raise RuntimeError("mstl_arima must be fitted before predict().")
        forecast = np.asarray(self._arima.forecast(horizon), dtype=float)
        for cycle in self._last_cycles:
            forecast = forecast + repeat_last_cycle(cycle, horizon)
        return forecast


class FourierARIMAModel:
    """ARIMA errors with Fourier seasonal regressors (SARIMAX + exog)."""

    name = "fourier_arima"
    family = "arima"

    def __init__(
        self,
        periods: list[int],
        max_harmonics: int = 5,
        order: tuple[int, int, int] = (2, 0, 1),
    ) -> None:
        self.periods = sorted(set(periods))
        self.max_harmonics = max_harmonics
        self.order = order
        self.harmonics: dict[int, int] = {}
        self._n_train = 0
        self._result = None

    @property
    def hyperparameters(self) -> dict[str, Any]:
        return {
            "periods": self.periods,
            "harmonics": {str(p): k for p, k in self.harmonics.items()},
            "order": list(self.order),
            "trend": "c",
        }

    def fit(self, y: pd.Series) -> None:
        from statsmodels.tsa.statespace.sarimax import SARIMAX

        values = _as_array(y)
        usable = usable_periods(self.periods, len(values))
        # K = p/2 gives an all-zero sine column
        self.harmonics = {
            p: min(self.max_harmonics, (p - 1) // 2) for p in usable
        }
        self.harmonics = {p: k for p, k in self.harmonics.items() if k >= 1}
        if not self.harmonics:
            raise ValueError(
                f"fourier_arima: no seasonal period in {self.periods} has two full "
                f"cycles in {len(values)} observations."
            )

        self._n_train = len(values)
        exog = fourier_terms(np.arange(self._n_train), list(self.harmonics), self.harmonics)
        model = SARIMAX(values, exog=exog, order=self.order, trend="c")
        with logged_fit_warnings(self.name):
            self._result = model.fit(disp=False, maxiter=200)

    def predict(self, horizon: int) -> np.ndarray:
        if self._result is None:
            raise RuntimeError("fourier_arima must be fitted before predict().")
        positions = np.arange(self._n_train, self._n_train + horizon)
        exog = fourier_terms(positions, list(self.harmonics), self.harmonics)
        return np.asarray(self._result.forecast(steps=horizon, exog=exog), dtype=float)
