"""
Exploratory summaries of the cleaned readings.

These tables are the data behind the usual exploratory figures (series
overview, correlation heatmap, daily and weekly load shapes). The pipeline
writes them as CSV so any plotting tool can render them.

  describe_series     → count / mean / std / quantiles / missing per series
  correlation_matrix  → Pearson correlation between series
  daily_profile       → mean by hour of day (0–23)
  weekly_profile      → mean by day of week (0 = Monday)
  energy_balance      → Demand − (Generation + Import), summarised
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd


def describe_series(frame: pd.DataFrame) -> pd.DataFrame:
    """Descriptive statistics with one row per series."""
    stats = frame.describe(percentiles=[0.25, 0.5, 0.75]).T
    stats["missing"] = frame.isna().sum()
    stats.index.name = "series"
    return stats


def correlation_matrix(frame: pd.DataFrame) -> pd.DataFrame:
    """Pairwise Pearson correlation (NaN-aware)."""
    return frame.corr(method="pearson")


def daily_profile(frame: pd.DataFrame) -> pd.DataFrame:
    """Mean of each series by hour of day."""
    profile = frame.groupby(frame.index.hour).mean()
    profile.index.name = "hour"
    return profile


def weekly_profile(frame: pd.DataFrame) -> pd.DataFrame:
    """Mean of each series by day of week (0 = Monday … 6 = Sunday)."""
    profile = frame.groupby(frame.index.dayofweek).mean()
    profile.index.name = "dayofweek"
    return profile


def energy_balance(
    frame: pd.DataFrame,
    demand_col: str = "Demand",
    generation_col: str = "Generation",
    import_col: str = "Import",
) -> dict[str, Any] | None:
    """Summarise how well Demand is explained by Generation + Import.

    Returns None when any of the three columns is absent. A mean absolute
    residual near zero means the three readings are mutually consistent.

    Outlier clipping works column by column, so on cleaned data the balance
    only holds approximately: a clipped Import reading is not matched by a
    change in Demand or Generation. Check the raw readings for the exact
    identity.
    """
    if not {demand_col, generation_col, import_col}.issubset(frame.columns):
        return None

    residual = frame[demand_col] - (frame[generation_col] + frame[import_col])
    residual = residual.dropna()
    if residual.empty:
        return {"n": 0, "mean_residual": None, "mean_abs_residual": None, "max_abs_residual": None}

    return {
        "n":                 int(residual.size),
        "mean_residual":     float(residual.mean()),
        "mean_abs_residual": float(np.abs(residual).mean()),
        "max_abs_residual":  float(np.abs(residual).max()),
    }
