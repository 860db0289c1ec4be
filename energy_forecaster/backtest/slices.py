"""
Evaluation slicing — break down metrics by different dimensions.

  slice_by_model        → one entry per candidate (which method is best?)
  slice_by_fold         → (model, fold) grid (is the winner stable?)
  slice_by_step_window  → (model, day of horizon) (does skill fade with lead time?)

All slicers return dict[key, AccuracyMetrics] and reuse compute_metrics().
"""

from __future__ import annotations

from collections import defaultdict

from energy_forecaster.backtest.metrics import AccuracyMetrics, PredictionRecord, compute_metrics


def slice_by_model(records: list[PredictionRecord]) -> dict[str, AccuracyMetrics]:
    """Aggregate metrics per model name, in first-seen order."""
    groups: dict[str, list[PredictionRecord]] = defaultdict(list)
    for r in records:
        groups[r.model_name].append(r)
    return {
        name: compute_metrics(recs, model_name=name, series_name=recs[0].series_name)
        for name, recs in groups.items()
    }


def slice_by_fold(
    records: list[PredictionRecord],
) -> dict[tuple[str, int], AccuracyMetrics]:
    """Aggregate metrics per (model_name, fold_index) pair."""
    groups: dict[tuple[str, int], list[PredictionRecord]] = defaultdict(list)
    for r in records:
        groups[(r.model_name, r.fold_index)].append(r)
    return {
        key: compute_metrics(recs, model_name=key[0], series_name=recs[0].series_name)
        for key, recs in groups.items()
    }


def slice_by_step_window(
    records: list[PredictionRecord],
    window: int,
) -> dict[tuple[str, int], AccuracyMetrics]:
    """Aggregate metrics per (model_name, lead-time window).

    Window ``w`` covers steps ``w·window + 1 … (w + 1)·window``; with an
    hourly grid and ``window=24`` that is day ``w + 1`` of the horizon.
    """
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    groups: dict[tuple[str, int], list[PredictionRecord]] = defaultdict(list)
    for r in records:
        groups[(r.model_name, (r.step - 1) // window)].append(r)
    return {
        key: compute_metrics(recs, model_name=key[0], series_name=recs[0].series_name)
        for key, recs in groups.items()
    }
