"""
Export helpers for flat-file analysis.

All functions write to disk and return the written ``Path``.
``export_to_csv`` / ``export_to_json`` accept generic ``list[dict]`` / dict
data to stay decoupled from specific report shapes.

CSV exports are flat (no nested dicts) so they load directly in Excel or
pandas without any pre-processing step. DataFrames that are consumed again
by code (cleaned hourly readings, forecasts) are written as Parquet so the
DatetimeIndex and float dtypes survive the round trip.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from energy_forecaster.models.forecast import ForecastOutput


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    List of row dicts.
        path:       Destination file path (parent dirs created if missing).
        fieldnames: Column order.  If None, uses the keys of the first record.

    Returns:
        ``path`` as written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(
    data: dict | list,
    path: Path,
) -> Path:
    """Write ``data`` to a pretty-printed JSON file.

    Args:
        data: Dict or list to serialise.
        path: Destination file path (parent dirs created if missing).

    Returns:
        ``path`` as written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


def export_frame_to_csv(frame: pd.DataFrame, path: Path, index_label: str | None = None) -> Path:
    """Write a DataFrame (index included) to CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=True, index_label=index_label)
    return path


def export_frame_to_parquet(frame: pd.DataFrame, path: Path) -> Path:
    """Write a DataFrame to Parquet via pyarrow, preserving the index.

    Args:
        frame: DataFrame to write (e.g. cleaned readings on a DatetimeIndex).
        path:  Destination file path (parent dirs created if missing).

    Returns:
        ``path`` as written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    table = pa.Table.from_pandas(frame, preserve_index=True)
    pq.write_table(table, str(path))
    return path


def forecast_rows(outputs: list[ForecastOutput]) -> list[dict]:
    """Flatten ForecastOutputs into export rows with an interval-width column."""
    rows: list[dict] = []
    for o in outputs:
        rows.append({
            "run_slug":       o.run_slug,
            "series_name":    o.series_name,
            "model_slug":     o.model_slug,
            "target_time":    o.target_time.isoformat(),
            "step":           o.step,
            "point_forecast": o.point_forecast,
            "lower":          o.lower,
            "upper":          o.upper,
            "interval_width": round(o.upper - o.lower, 4),
            "confidence_pct": o.confidence_pct,
        })
    return rows


def forecasts_to_frame(outputs: list[ForecastOutput]) -> pd.DataFrame:
    """ForecastOutputs as a DataFrame with a ``target_time`` datetime column."""
    frame = pd.DataFrame(forecast_rows(outputs))
    if not frame.empty:
        frame["target_time"] = pd.to_datetime(frame["target_time"])
    return frame
