"""
Shared pytest fixtures for the Energy Forecaster test suite.

Provides:
  - ``make_readings``: factory for synthetic 5-minute readings with daily
    and weekly cycles in all six series.
  - ``readings_frame`` / ``readings_csv``: two weeks of readings, in memory
    and written to a CSV file.
  - ``small_config``: an ``AppConfig`` sized for fast tests (1-day horizon
    and holdout, outputs under ``tmp_path``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import numpy as np
import pandas as pd
import pytest

from energy_forecaster.config import (
    AppConfig,
    DataConfig,
    DecompositionConfig,
    ForecastConfig,
    LightGBMConfig,
    LoggingConfig,
)

FAST_CANDIDATES = [
    "naive",
    "mean",
    "drift",
    "seasonal_naive_daily",
    "holt_winters",
    "lightgbm",
]


# ── Synthetic readings ────────────────────────────────────────────────────────

def _synthetic_readings(
    days: int = 14,
    start: str = "2024-01-01 00:05",
    freq: str = "5min",
    seed: int = 0,
) -> pd.DataFrame:
    """Readings where Demand ≈ Generation + Import, as in a real grid feed.

    The default start of 00:05 makes every hourly bin complete, so
    ``days`` days resample to exactly ``24 * days`` hourly rows.
    """
    rng = np.random.default_rng(seed)
    steps_per_day = int(pd.Timedelta("1D") / pd.Timedelta(freq))
    index = pd.date_range(start=start, periods=days * steps_per_day, freq=freq)

    hour = index.hour.to_numpy() + index.minute.to_numpy() / 60.0
    weekday = index.dayofweek.to_numpy()
    daily = np.sin(2 * np.pi * (hour - 6) / 24)
    weekend = np.where(weekday >= 5, -8.0, 0.0)

    demand = 60 + 15 * daily + weekend + rng.normal(0, 1.0, len(index))
    solar = np.clip(25 * np.sin(np.pi * (hour - 6) / 12), 0, None) + rng.normal(0, 0.3, len(index)).clip(0)
    wind = 12 + 4 * np.sin(2 * np.pi * np.arange(len(index)) / (3 * steps_per_day)) + rng.normal(0, 0.8, len(index))
    other = 5 + rng.normal(0, 0.2, len(index))
    generation = solar + wind + other
    imports = demand - generation

    return pd.DataFrame(
        {
            "Timestamp":  index,
            "Demand":     demand,
            "Generation": generation,
            "Import":     imports,
            "Solar":      solar,
            "Wind":       wind,
            "Other":      other,
        }
    )


@pytest.fixture
def make_readings() -> Callable[..., pd.DataFrame]:
    """Return the synthetic readings factory (``days``, ``start``, ``freq``, ``seed``)."""
    return _synthetic_readings


@pytest.fixture
def readings_frame() -> pd.DataFrame:
    """Two weeks of 5-minute readings with a ``Timestamp`` column."""
    return _synthetic_readings()


@pytest.fixture
def readings_csv(tmp_path: Path, readings_frame: pd.DataFrame) -> Path:
    """``readings_frame`` written to ``tmp_path/readings.csv``."""
    path = tmp_path / "readings.csv"
    readings_frame.to_csv(path, index=False)
    return path


@pytest.fixture
def hourly_series() -> pd.Series:
    """Two weeks of hourly Demand-like values with a clean daily cycle."""
    rng = np.random.default_rng(1)
    index = pd.date_range("2024-01-01 01:00", periods=14 * 24, freq="h", name="Timestamp")
    hour = index.hour.to_numpy()
    values = 60 + 15 * np.sin(2 * np.pi * (hour - 6) / 24) + rng.normal(0, 0.5, len(index))
    return pd.Series(values, index=index, name="Demand")


# ── Config ────────────────────────────────────────────────────────────────────

@pytest.fixture
def small_config(tmp_path: Path, readings_csv: Path) -> AppConfig:
    """AppConfig pointing at ``readings_csv`` with a 1-day horizon and holdout."""
    return AppConfig(
        data=DataConfig(
            input_path=str(readings_csv),
            output_dir=str(tmp_path / "outputs"),
        ),
        decomposition=DecompositionConfig(seasonal_periods=["1D"]),
        forecast=ForecastConfig(
            horizon="1D",
            holdout="1D",
            candidates=list(FAST_CANDIDATES),
        ),
        lightgbm=LightGBMConfig(n_estimators=50, early_stopping_rounds=10),
        logging=LoggingConfig(log_file=str(tmp_path / "logs" / "test.log")),
    )
