"""
Rank candidates on holdout accuracy and pick the winner.

Every supported selection metric is an error measure, so lower is better.
Candidates whose metric could not be computed (None) rank last. Python's
sort is stable, so equal scores keep the order candidates were configured
in, which makes the choice deterministic.
"""

from __future__ import annotations

from energy_forecaster.backtest.metrics import METRIC_NAMES, AccuracyMetrics
from energy_forecaster.config import VALID_METRICS


def _check_metric(metric: str) -> str:
    metric = metric.lower()
    if metric not in VALID_METRICS or metric not in METRIC_NAMES:
        raise ValueError(
            f"Cannot select on '{metric}'. Use one of {sorted(VALID_METRICS)}."
        )
    return metric


def rank_candidates(
    metrics_by_model: dict[str, AccuracyMetrics],
    metric: str = "rmse",
) -> list[str]:
    """Candidate names ordered best → worst on ``metric``."""
    metric = _check_metric(metric)

    def sort_key(name: str) -> tuple[int, float]:
        value = metrics_by_model[name].get(metric)
        return (1, 0.0) if value is None else (0, value)

    return sorted(metrics_by_model, key=sort_key)


def select_best(
    metrics_by_model: dict[str, AccuracyMetrics],
    metric: str = "rmse",
) -> str:
    """Return the name of the best-scoring candidate.

    Raises:
        ValueError: If the metric is unknown or no candidate has a score.
    """
    ranking = rank_candidates(metrics_by_model, metric)
    if not ranking or metrics_by_model[ranking[0]].get(metric.lower()) is None:
        raise ValueError(
            f"No candidate produced a usable '{metric}' score; cannot select a model."
        )
    return ranking[0]
