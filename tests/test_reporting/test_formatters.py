"""
Tests for the terminal formatters.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pandas as pd

from energy_forecaster.backtest.metrics import PredictionRecord, compute_metrics
from energy_forecaster.features.quality import build_quality_report
from energy_forecaster.models.forecast import ForecastOutput
from energy_forecaster.reporting.formatters import (
    format_accuracy_table,
    format_forecast_summary,
    format_quality_report,
)


def _metrics(name: str, err: float):
    train_end = pd.Timestamp("2024-01-07 23:00")
    rec = PredictionRecord(
        fold_index=0, series_name="Demand", model_name=name, train_end=train_end,
        timestamp=train_end + pd.Timedelta(hours=1), step=1, actual=10.0, predicted=10.0 + err,
    )
    return compute_metrics([rec], model_name=name)


def test_quality_report_lists_series() -> None:
    index = pd.date_range("2024-01-01", periods=4, freq="5min")
    frame = pd.DataFrame({"Demand": [1.0, None, None, None], "Import": [-1.0, 1.0, 2.0, 3.0]}, index=index)
    text = format_quality_report(build_quality_report(frame, duplicates_dropped=1))

    assert "[ISSUES]" in text
    assert "Demand" in text
    assert "<- high" in text
    assert "Duplicates:      1" in text


def test_accuracy_table_marks_selected_and_unranked() -> None:
    metrics = {"naive": _metrics("naive", 2.0), "mean": _metrics("mean", 1.0), "broken": _metrics("broken", 0.5)}
    text = format_accuracy_table(metrics, ["mean", "naive"], selected="mean", series_name="Demand")
    lines = text.splitlines()

    assert "Holdout Accuracy: Demand" in text
    assert "Selected: mean" in text
    mean_line = next(line for line in lines if "mean" in line and "*" in line)
    assert mean_line.strip().startswith("1")
    broken_line = next(line for line in lines if "broken" in line)
    assert not broken_line.strip()[0].isdigit()


def test_accuracy_table_empty() -> None:
    assert "no candidate" in format_accuracy_table({}, [])


def test_forecast_summary_groups_by_day() -> None:
    start = datetime(2024, 1, 14, 22, 0)
    outputs = [
        ForecastOutput(
            run_slug="r", series_name="Demand", model_slug="naive",
            target_time=start + timedelta(hours=i), step=i + 1,
            point_forecast=50.0 + i, lower=45.0 + i, upper=55.0 + i,
        )
        for i in range(4)
    ]
    text = format_forecast_summary(outputs)

    assert "[Demand]  model=naive" in text
    assert "2024-01-14" in text
    assert "2024-01-15" in text
    assert "(4 steps)" in text


def test_forecast_summary_empty() -> None:
    assert "no forecasts" in format_forecast_summary([])
