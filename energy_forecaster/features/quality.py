"""
Data quality checks for the loaded readings.

Purpose
-------
Before cleaning, ``build_quality_report()`` inspects the regularized reading
grid and produces a ``DataQualityReport`` describing:

- Missingness fraction per series column.
- Duplicate timestamps that were dropped while regularizing.
- Grid slots that had to be inserted (gaps in the logger output).
- Negative readings per column (expected for Import when exporting, a
  warning sign for Demand / Solar / Wind).
- Rows dropped or cells coerced while loading.

``is_clean`` is set to False only for hard errors (duplicate timestamps, a
column with no readings at all). High missingness is reported but does not
mark the report as unclean — gaps are refilled by the cleaning step.

Usage
-----
``build_quality_report()`` works on a plain DataFrame, so it can be called
without touching the filesystem and is straightforward to unit-test.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import pandas as pd


@dataclass
class DataQualityReport:
    """Summary of data quality checks on the regularized readings.

    Attributes:
        total_rows:             Grid rows after regularizing.
        date_range_start:       First timestamp, or None if empty.
        date_range_end:         Last timestamp, or None if empty.
        missingness:            Column → fraction of NaN values [0.0, 1.0].
        high_missingness_cols:  Columns where missingness > threshold.
        empty_cols:             Columns with no readings at all.
        duplicate_timestamps:   Duplicate timestamps dropped while regularizing.
        inserted_steps:         Grid slots inserted to fill timestamp gaps.
        negative_counts:        Column → count of readings below zero.
        dropped_timestamp_rows: Rows dropped at load time (bad timestamps).
        coerced_nan_counts:     Column → non-numeric cells coerced to NaN.
        is_clean:               False if duplicates were found or any column
                                is entirely missing.
    """

    total_rows: int
    date_range_start: datetime | None
    date_range_end: datetime | None
    missingness: dict[str, float]
    high_missingness_cols: list[str]
    empty_cols: list[str]
    duplicate_timestamps: int
    inserted_steps: int
    negative_counts: dict[str, int]
    dropped_timestamp_rows: int = 0
    coerced_nan_counts: dict[str, int] = field(default_factory=dict)
    is_clean: bool = True

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        for key in ("date_range_start", "date_range_end"):
            if payload[key] is not None:
                payload[key] = payload[key].isoformat()
        return payload


def build_quality_report(
    frame: pd.DataFrame,
    duplicates_dropped: int = 0,
    inserted_steps: int = 0,
    missingness_threshold: float = 0.30,
    dropped_timestamp_rows: int = 0,
    coerced_nan_counts: dict[str, int] | None = None,
) -> DataQualityReport:
    """Build a quality report for a regularized reading frame.

    Args:
        frame:                  Output of ``ingestion.spreadsheet.regularize()``.
        duplicates_dropped:     Duplicate count returned by ``regularize()``.
        inserted_steps:         Inserted grid slots returned by ``regularize()``.
        missingness_threshold:  Columns with NaN fraction > this appear in
                                ``high_missingness_cols``.
        dropped_timestamp_rows: Bad-timestamp rows from ``load_readings()``.
        coerced_nan_counts:     Non-numeric cell counts from ``load_readings()``.

    Returns:
        A ``DataQualityReport`` instance.
    """
    coerced = dict(coerced_nan_counts or {})

    if frame.empty:
        return DataQualityReport(
            total_rows=0,
            date_range_start=None,
            date_range_end=None,
            missingness={},
            high_missingness_cols=[],
            empty_cols=list(frame.columns),
            duplicate_timestamps=duplicates_dropped,
            inserted_steps=inserted_steps,
            negative_counts={},
            dropped_timestamp_rows=dropped_timestamp_rows,
            coerced_nan_counts=coerced,
            is_clean=False,
        )

    missingness = {
        str(col): float(frame[col].isna().mean()) for col in frame.columns
    }
    high = [col for col, frac in missingness.items() if frac > missingness_threshold]
    empty = [col for col, frac in missingness.items() if frac >= 1.0]
    negatives = {str(col): int((frame[col] < 0).sum()) for col in frame.columns}

    return DataQualityReport(
        total_rows=len(frame),
        date_range_start=frame.index.min().to_pydatetime(),
        date_range_end=frame.index.max().to_pydatetime(),
        missingness=missingness,
        high_missingness_cols=high,
        empty_cols=empty,
        duplicate_timestamps=duplicates_dropped,
        inserted_steps=inserted_steps,
        negative_counts=negatives,
        dropped_timestamp_rows=dropped_timestamp_rows,
        coerced_nan_counts=coerced,
        is_clean=duplicates_dropped == 0 and not empty,
    )
