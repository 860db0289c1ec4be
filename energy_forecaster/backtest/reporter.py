"""
Backtest result reporting: CSV files and JSON manifest.

Output layout (one backtest run):
  outputs/backtest/{run_slug}/
    {series}/
      accuracy.csv          — one row per candidate, ranked best first
      per_prediction.csv    — one row per PredictionRecord (full raw data)
      manifest.json         — folds, ranking, failures, config snapshot

These outputs enable:
  - Quick review in a spreadsheet from the CSV files.
  - Re-plotting holdout forecasts against actuals from per_prediction.csv.
  - The ``backtest`` CLI command to display the comparison table.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from energy_forecaster.backtest.evaluator import CandidateFailure
from energy_forecaster.backtest.metrics import METRIC_NAMES, AccuracyMetrics, PredictionRecord
from energy_forecaster.backtest.splits import HoldoutFold

log = logging.getLogger(__name__)


# ── CSV output ─────────────────────────────────────────────────────────────────

def write_accuracy_csv(
    metrics_by_model: dict[str, AccuracyMetrics],
    ranking: list[str],
    path: Path,
) -> None:
    """Write per-candidate holdout metrics as CSV, ranked models first.

    Candidates that scored but are not in ``ranking`` (they failed on a
    fold) follow with an empty rank.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = ["rank", "model_name", "n_predictions", "n_evaluated", *METRIC_NAMES]
    unranked = [name for name in metrics_by_model if name not in ranking]
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for position, name in enumerate(ranking + unranked, start=1):
            m = metrics_by_model[name]
            writer.writerow({
                "rank":          position if name in ranking else "",
                "model_name":    name,
                "n_predictions": m.n_predictions,
                "n_evaluated":   m.n_evaluated,
                **{metric: _fmt(m.get(metric)) for metric in METRIC_NAMES},
            })
    log.info("Accuracy CSV written: %s", path)


def write_per_prediction_csv(records: list[PredictionRecord], path: Path) -> None:
    """Write all raw PredictionRecords as CSV (for detailed inspection)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fieldnames = [
        "fold_index", "series_name", "model_name", "train_end",
        "timestamp", "step", "actual", "predicted", "error",
    ]
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for r in records:
            if r.actual is not None and r.predicted is not None:
                error: float | None = r.actual - r.predicted
            else:
                error = None
            writer.writerow({
                "fold_index":  r.fold_index,
                "series_name": r.series_name,
                "model_name":  r.model_name,
                "train_end":   r.train_end.isoformat(),
                "timestamp":   r.timestamp.isoformat(),
                "step":        r.step,
                "actual":      r.actual,
                "predicted":   r.predicted,
                "error":       _fmt(error),
            })
    log.info("Per-prediction CSV written: %s (%d rows)", path, len(records))


# ── JSON manifest ──────────────────────────────────────────────────────────────

def build_backtest_manifest(
    series_name: str,
    run_slug: str,
    folds: list[HoldoutFold],
    model_names: list[str],
    ranking: list[str],
    selection_metric: str,
    failures: list[CandidateFailure],
    output_dir: Path,
    config_snapshot: dict[str, Any],
) -> dict[str, Any]:
    """Build a JSON manifest summarising the holdout comparison for one series."""
    return {
        "schema_version": "1.0",
        "built_at":    datetime.now(tz=timezone.utc).isoformat(),
        "run_slug":    run_slug,
        "series_name": series_name,
        "folds": [
            {
                "fold_index":    f.fold_index,
                "train_start":   f.train_start.isoformat(),
                "train_end":     f.train_end.isoformat(),
                "test_start":    f.test_start.isoformat(),
                "test_end":      f.test_end.isoformat(),
                "horizon_steps": f.horizon_steps,
            }
            for f in folds
        ],
        "model_names":      model_names,
        "selection_metric": selection_metric,
        "ranking":          ranking,
        "best_model":       ranking[0] if ranking else None,
        "failures":         [f.to_dict() for f in failures],
        "output_files": {
            "accuracy_csv":       str(output_dir / "accuracy.csv"),
            "per_prediction_csv": str(output_dir / "per_prediction.csv"),
        },
        "config_snapshot": config_snapshot,
    }


def write_manifest(manifest: dict[str, Any], path: Path) -> None:
    """Write the manifest dict as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, default=str)
    log.info("Backtest manifest written: %s", path)


def _fmt(v: float | None) -> str:
    """Format float to 4 decimal places, or empty string for None."""
    if v is None:
        return ""
    return f"{v:.4f}"
