"""
Tests for loading readings from spreadsheets and regularizing the grid.

What we test
------------
1. CSV and XLSX files load into a sorted, timestamp-indexed float frame.
2. Column names are matched case- and whitespace-insensitively.
3. Missing columns, unsupported suffixes and missing files raise.
4. Rows with unparsable timestamps are dropped and counted.
5. Non-numeric cells become NaN and are counted per column.
6. regularize() drops duplicates and inserts missing grid slots.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from energy_forecaster.config import ALL_SERIES
from energy_forecaster.ingestion.spreadsheet import load_readings, regularize


def _tiny_frame(n: int = 6) -> pd.DataFrame:
    index = pd.date_range("2024-03-01 00:00", periods=n, freq="5min")
    data = {"Timestamp": index.astype(str)}
    for i, col in enumerate(ALL_SERIES):
        data[col] = np.arange(n, dtype=float) + 10 * i
    return pd.DataFrame(data)


# ── load_readings ─────────────────────────────────────────────────────────────

def test_load_csv(readings_csv: Path) -> None:
    loaded = load_readings(readings_csv, "Timestamp", list(ALL_SERIES))
    frame = loaded.frame

    assert list(frame.columns) == list(ALL_SERIES)
    assert isinstance(frame.index, pd.DatetimeIndex)
    assert frame.index.name == "Timestamp"
    assert frame.index.is_monotonic_increasing
    assert len(frame) == 14 * 288
    assert all(frame[c].dtype == float for c in frame.columns)
    assert loaded.dropped_timestamp_rows == 0
    assert loaded.coerced_nan_counts == {}


def test_load_xlsx(tmp_path: Path) -> None:
    path = tmp_path / "readings.xlsx"
    _tiny_frame().to_excel(path, index=False, sheet_name="Data")

    loaded = load_readings(path, "Timestamp", ["Demand", "Import"], sheet_name="Data")
    assert list(loaded.frame.columns) == ["Demand", "Import"]
    assert len(loaded.frame) == 6
    assert loaded.frame["Import"].iloc[0] == pytest.approx(20.0)


def test_columns_matched_case_insensitively(tmp_path: Path) -> None:
    frame = _tiny_frame().rename(columns={"Demand": " demand ", "Timestamp": "TIMESTAMP"})
    path = tmp_path / "r.csv"
    frame.to_csv(path, index=False)

    loaded = load_readings(path, "Timestamp", ["Demand"])
    assert list(loaded.frame.columns) == ["Demand"]
    assert loaded.frame.index.name == "Timestamp"


def test_unsorted_input_is_sorted(tmp_path: Path) -> None:
    path = tmp_path / "r.csv"
    _tiny_frame().iloc[::-1].to_csv(path, index=False)

    loaded = load_readings(path, "Timestamp", ["Demand"])
    assert loaded.frame.index.is_monotonic_increasing
    assert loaded.frame["Demand"].tolist() == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]


def test_missing_column_raises(tmp_path: Path) -> None:
    path = tmp_path / "r.csv"
    _tiny_frame().drop(columns=["Wind"]).to_csv(path, index=False)

    with pytest.raises(ValueError, match="Wind"):
        load_readings(path, "Timestamp", list(ALL_SERIES))


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_readings(tmp_path / "absent.xlsx", "Timestamp", ["Demand"])


def test_unsupported_suffix_raises(tmp_path: Path) -> None:
    path = tmp_path / "r.json"
    path.write_text("{}", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported"):
        load_readings(path, "Timestamp", ["Demand"])


def test_bad_timestamps_dropped_and_counted(tmp_path: Path) -> None:
    frame = _tiny_frame()
    frame.loc[2, "Timestamp"] = "not a time"
    path = tmp_path / "r.csv"
    frame.to_csv(path, index=False)

    loaded = load_readings(path, "Timestamp", ["Demand"])
    assert loaded.dropped_timestamp_rows == 1
    assert len(loaded.frame) == 5


def test_all_bad_timestamps_raise(tmp_path: Path) -> None:
    frame = _tiny_frame()
    frame["Timestamp"] = "garbage"
    path = tmp_path / "r.csv"
    frame.to_csv(path, index=False)

    with pytest.raises(ValueError, match="No parsable timestamps"):
        load_readings(path, "Timestamp", ["Demand"])


def test_non_numeric_cells_coerced(tmp_path: Path) -> None:
    frame = _tiny_frame().astype({"Demand": object})
    frame.loc[1, "Demand"] = "error"
    frame.loc[4, "Demand"] = "--"
    path = tmp_path / "r.csv"
    frame.to_csv(path, index=False)

    loaded = load_readings(path, "Timestamp", ["Demand"])
    assert loaded.coerced_nan_counts == {"Demand": 2}
    assert loaded.frame["Demand"].isna().sum() == 2


# ── regularize ────────────────────────────────────────────────────────────────

def test_regularize_complete_grid_is_unchanged() -> None:
    index = pd.date_range("2024-01-01", periods=5, freq="5min", name="Timestamp")
    frame = pd.DataFrame({"Demand": [1.0, 2.0, 3.0, 4.0, 5.0]}, index=index)

    regular, duplicates, inserted = regularize(frame, "5min")
    assert duplicates == 0
    assert inserted == 0
    pd.testing.assert_frame_equal(regular, frame, check_freq=False)


def test_regularize_inserts_gaps_and_drops_duplicates() -> None:
    index = pd.DatetimeIndex(
        ["2024-01-01 00:00", "2024-01-01 00:05", "2024-01-01 00:05", "2024-01-01 00:20"],
        name="Timestamp",
    )
    frame = pd.DataFrame({"Demand": [1.0, 2.0, 99.0, 5.0]}, index=index)

    regular, duplicates, inserted = regularize(frame, "5min")
    assert duplicates == 1
    assert inserted == 2
    assert len(regular) == 5
    assert regular.index.name == "Timestamp"
    # first occurrence of a duplicate wins
    assert regular.loc["2024-01-01 00:05", "Demand"] == 2.0
    assert regular["Demand"].isna().sum() == 2


def test_regularize_empty_frame() -> None:
    frame = pd.DataFrame({"Demand": []}, index=pd.DatetimeIndex([], name="Timestamp"))
    regular, duplicates, inserted = regularize(frame, "5min")
    assert regular.empty
    assert (duplicates, inserted) == (0, 0)
