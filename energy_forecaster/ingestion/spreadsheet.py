"""
Spreadsheet loader for 5-minute energy readings.

Format — one row per reading, with a header row.
Required columns:
  the timestamp column (``data.timestamp_column``, default ``Timestamp``)
  every configured series column (default Demand, Generation, Import,
  Solar, Wind, Other)

Extra columns are ignored. Column names are matched case-insensitively and
with surrounding whitespace stripped, so ``" demand "`` satisfies ``Demand``.

Supported files (detected by extension):
  .xlsx / .xlsm / .xls  → ``pandas.read_excel`` (openpyxl engine for xlsx)
  .csv                  → ``pandas.read_csv``

Bad cells:
  - Unparsable timestamps drop the row (counted in ``dropped_timestamp_rows``).
  - Unparsable values become NaN (counted per column in ``coerced_nan_counts``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import pandas as pd

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = frozenset({".xlsx", ".xlsm", ".xls"})
CSV_SUFFIXES = frozenset({".csv"})


@dataclass
class LoadedReadings:
    """Readings loaded from disk, indexed by timestamp.

    Attributes:
        frame:                  Float columns named by canonical series name,
                                sorted ascending by a ``DatetimeIndex``.
        source_path:            File the readings came from.
        dropped_timestamp_rows: Rows removed because the timestamp did not parse.
        coerced_nan_counts:     Column → count of cells that were present but
                                not numeric.
    """

    frame: pd.DataFrame
    source_path: Path
    dropped_timestamp_rows: int = 0
    coerced_nan_counts: dict[str, int] = field(default_factory=dict)


def load_readings(
    path: Path,
    timestamp_column: str,
    series_columns: list[str],
    sheet_name: Union[int, str] = 0,
) -> LoadedReadings:
    """Load a spreadsheet of energy readings into a timestamp-indexed frame.

    Args:
        path:             Spreadsheet or CSV file.
        timestamp_column: Name of the timestamp column.
        series_columns:   Canonical names of the series to keep.
        sheet_name:       Excel sheet name or index (ignored for CSV).

    Returns:
        ``LoadedReadings`` with the canonical columns only.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: On unsupported extension, missing columns, or when no
            timestamp can be parsed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Readings file not found: {path}")

    raw = _read_table(path, sheet_name)
    if raw.empty:
        raise ValueError(f"Readings file contains no rows: {path}")

    rename = _resolve_columns(raw.columns, [timestamp_column, *series_columns], path)
    frame = raw[list(rename)].rename(columns=rename)

    timestamps = pd.to_datetime(frame[timestamp_column], errors="coerce")
    bad_ts = int(timestamps.isna().sum())
    if bad_ts == len(frame):
        raise ValueError(
            f"No parsable timestamps in column '{timestamp_column}' of {path.name}."
        )
    if bad_ts:
        logger.warning("Dropping %d row(s) with unparsable timestamps from %s", bad_ts, path.name)

    frame = frame.loc[timestamps.notna()].copy()
    frame.index = pd.DatetimeIndex(timestamps[timestamps.notna()], name=timestamp_column)
    frame = frame.drop(columns=[timestamp_column])

    coerced: dict[str, int] = {}
    for col in series_columns:
        original = frame[col]
        numeric = pd.to_numeric(original, errors="coerce")
        n_bad = int((numeric.isna() & original.notna()).sum())
        if n_bad:
            coerced[col] = n_bad
            logger.warning("Column '%s': %d non-numeric cell(s) set to NaN", col, n_bad)
        frame[col] = numeric.astype(float)

    frame = frame.sort_index(kind="mergesort")

    logger.info(
        "Loaded %d readings from %s | %s → %s",
        len(frame), path.name, frame.index.min(), frame.index.max(),
    )
    return LoadedReadings(
        frame=frame,
        source_path=path,
        dropped_timestamp_rows=bad_ts,
        coerced_nan_counts=coerced,
    )


def regularize(frame: pd.DataFrame, freq: str) -> tuple[pd.DataFrame, int, int]:
    """Put readings onto a complete, evenly spaced grid.

    Duplicate timestamps keep their first occurrence. Missing grid slots are
    inserted as all-NaN rows.

    Args:
        frame: Sorted, timestamp-indexed readings.
        freq:  Grid frequency, e.g. ``"5min"``.

    Returns:
        Tuple ``(regular_frame, duplicates_dropped, inserted_steps)``.
    """
    if frame.empty:
        return frame.copy(), 0, 0

    dup_mask = frame.index.duplicated(keep="first")
    duplicates = int(dup_mask.sum())
    deduped = frame.loc[~dup_mask]

    grid = pd.date_range(
        start=deduped.index.min().floor(freq),
        end=deduped.index.max().ceil(freq),
        freq=freq,
        name=deduped.index.name,
    )
    off_grid = deduped.index.difference(grid)
    if len(off_grid):
        logger.warning(
            "%d reading(s) are not aligned to the %s grid and will be dropped",
            len(off_grid), freq,
        )
    regular = deduped.reindex(grid)
    inserted = int(len(grid) - grid.isin(deduped.index).sum())

    if duplicates or inserted:
        logger.info(
            "Regularized to %s grid | duplicates_dropped=%d | inserted_steps=%d",
            freq, duplicates, inserted,
        )
    return regular, duplicates, inserted


# ── Private helpers ────────────────────────────────────────────────────────────

def _read_table(path: Path, sheet_name: Union[int, str]) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return pd.read_excel(path, sheet_name=sheet_name)
    if suffix in CSV_SUFFIXES:
        return pd.read_csv(path)
    raise ValueError(
        f"Unsupported file format '{suffix}'. "
        f"Use one of {sorted(EXCEL_SUFFIXES | CSV_SUFFIXES)}."
    )


def _resolve_columns(found: pd.Index, wanted: list[str], path: Path) -> dict[str, str]:
    """Map actual column labels → canonical names, case/whitespace-insensitive."""
    by_key = {str(col).strip().lower(): col for col in found}
    rename: dict[str, str] = {}
    missing: list[str] = []
    for name in wanted:
        actual = by_key.get(name.strip().lower())
        if actual is None:
            missing.append(name)
        else:
            rename[actual] = name
    if missing:
        raise ValueError(
            f"{path.name} is missing required columns: {missing}\n"
            f"Found columns: {[str(c) for c in found]}"
        )
    return rename
