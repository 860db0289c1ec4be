"""
Model selection and the final one-week forecast for one series.

Flow per target series
----------------------
1. ``build_plan()`` turns the duration settings in ``AppConfig`` into grid
   steps (horizon, holdout, seasonal periods) for the resampled grid.
2. ``backtest_series()`` evaluates every configured candidate on the
   holdout fold(s) and ranks them on the selection metric.
3. ``forecast_series()`` refits the winner on the FULL series and predicts
   ``horizon_steps`` past the last observation, with a z·σ interval where σ
   is the winner's holdout RMSE.

A candidate that failed on any fold is excluded from the ranking: its
score would cover fewer windows than the others and is not comparable.
It still appears in the accuracy table when it scored on other folds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from energy_forecaster.backtest.evaluator import BacktestResult, evaluate_candidates
from energy_forecaster.backtest.metrics import METRIC_NAMES, AccuracyMetrics
from energy_forecaster.backtest.models import build_candidates
from energy_forecaster.backtest.selection import rank_candidates, select_best
from energy_forecaster.backtest.slices import slice_by_model
from energy_forecaster.backtest.splits import HoldoutFold, generate_holdout_splits
from energy_forecaster.config import AppConfig
from energy_forecaster.forecasting.intervals import compute_prediction_interval
from energy_forecaster.models.forecast import ForecastOutput
from energy_forecaster.models.meta import SelectedModel
from energy_forecaster.utils.time_utils import future_index, steps_per_period

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ForecastPlan:
    """Durations from the config expressed in steps of the modelling grid."""

    rule: str
    steps_per_day: int
    seasonal_steps: list[int]
    horizon_steps: int
    holdout_steps: int
    fold_step: int


@dataclass
class SeriesBacktest:
    """Holdout comparison of all candidates for one series."""

    series_name: str
    folds: list[HoldoutFold]
    result: BacktestResult
    metrics_by_model: dict[str, AccuracyMetrics]
    ranking: list[str] = field(default_factory=list)


@dataclass
class SeriesForecast:
    """Selected model and forecast for one series."""

    series_name: str
    selected: SelectedModel
    outputs: list[ForecastOutput]
    backtest: SeriesBacktest


def build_plan(config: AppConfig) -> ForecastPlan:
    """Convert config durations into grid steps of ``config.resample.rule``.

    Raises:
        ValueError: If a duration is not a whole number of grid steps.
    """
    rule = config.resample.rule
    fc = config.forecast
    holdout_steps = steps_per_period(rule, fc.holdout)
    return ForecastPlan(
        rule=rule,
        steps_per_day=steps_per_period(rule, "1D"),
        seasonal_steps=[steps_per_period(rule, p) for p in config.decomposition.seasonal_periods],
        horizon_steps=steps_per_period(rule, fc.horizon),
        holdout_steps=holdout_steps,
        fold_step=steps_per_period(rule, fc.fold_step) if fc.fold_step else holdout_steps,
    )


def backtest_series(
    series: pd.Series,
    series_name: str,
    config: AppConfig,
    plan: ForecastPlan,
) -> SeriesBacktest:
    """Evaluate the configured candidates on the holdout fold(s) of ``series``.

    Args:
        series:      Gap-free series on the modelling grid.
        series_name: Label for records and logs.
        config:      Application config (candidates, folds, metric).
        plan:        Output of ``build_plan(config)``.

    Raises:
        ValueError: If the series is too short for even one holdout fold.
    """
    fc = config.forecast
    folds = generate_holdout_splits(
        series.index,
        holdout_steps=plan.holdout_steps,
        n_folds=fc.n_folds,
        step=plan.fold_step,
        min_train_steps=plan.steps_per_day,
    )
    if not folds:
        raise ValueError(
            f"Series '{series_name}' has {len(series)} steps; a holdout of "
            f"{plan.holdout_steps} steps needs at least {plan.holdout_steps + plan.steps_per_day}."
        )
    if len(folds) < fc.n_folds:
        logger.warning(
            "Series '%s': only %d of %d holdout fold(s) fit in the data.",
            series_name, len(folds), fc.n_folds,
        )

    def candidate_factory() -> list:
        return build_candidates(
            fc.candidates,
            horizon_steps=plan.holdout_steps,
            steps_per_day=plan.steps_per_day,
            seasonal_steps=plan.seasonal_steps,
            lgbm_config=config.lightgbm,
        )

    result = evaluate_candidates(
        series,
        series_name,
        folds,
        candidate_factory,
        scale_season=max(plan.seasonal_steps, default=plan.steps_per_day),
    )

    sliced = slice_by_model(result.records)
    metrics_by_model = {name: sliced[name] for name in fc.candidates if name in sliced}
    failed = result.failed_models()
    eligible = {name: m for name, m in metrics_by_model.items() if name not in failed}
    ranking = rank_candidates(eligible, fc.selection_metric)

    return SeriesBacktest(
        series_name=series_name,
        folds=folds,
        result=result,
        metrics_by_model=metrics_by_model,
        ranking=ranking,
    )


def forecast_series(
    series: pd.Series,
    series_name: str,
    config: AppConfig,
    plan: ForecastPlan,
    run_slug: str,
    backtest: SeriesBacktest | None = None,
) -> SeriesForecast:
    """Select the best candidate for ``series`` and forecast past its end.

    Args:
        series:      Gap-free series on the modelling grid.
        series_name: Label for outputs and logs.
        config:      Application config.
        plan:        Output of ``build_plan(config)``.
        run_slug:    Run that the ForecastOutputs belong to.
        backtest:    Reuse an existing holdout comparison (computed if None).

    Returns:
        ``SeriesForecast`` with one ``ForecastOutput`` per horizon step.

    Raises:
        ValueError: If no candidate has a usable holdout score, or the
            selected model cannot be refitted on the full series or
            predicts non-finite values after the refit.
    """
    fc = config.forecast
    if backtest is None:
        backtest = backtest_series(series, series_name, config, plan)

    eligible = {n: backtest.metrics_by_model[n] for n in backtest.ranking}
    best = select_best(eligible, fc.selection_metric)
    best_metrics = backtest.metrics_by_model[best]

    model = build_candidates(
        [best],
        horizon_steps=plan.horizon_steps,
        steps_per_day=plan.steps_per_day,
        seasonal_steps=plan.seasonal_steps,
        lgbm_config=config.lightgbm,
    )[0]
    model.fit(series)
    points = np.asarray(model.predict(plan.horizon_steps), dtype=float)
    if points.shape != (plan.horizon_steps,) or not np.isfinite(points).all():
        raise ValueError(
            f"Refitted '{best}' for '{series_name}' returned "
            f"{int(np.count_nonzero(~np.isfinite(points)))} non-finite of {points.size} "
            f"predictions (expected {plan.horizon_steps} finite values)."
        )

    non_negative = series_name in fc.non_negative_series
    index = future_index(series.index[-1], plan.horizon_steps, plan.rule)

    outputs: list[ForecastOutput] = []
    for step, (target_time, point) in enumerate(zip(index, points), start=1):
        point = float(point)
        if non_negative:
            point = max(0.0, point)
        lower, upper = compute_prediction_interval(
            point,
            best_metrics.rmse,
            confidence_pct=fc.confidence_pct,
            non_negative=non_negative,
        )
        outputs.append(ForecastOutput(
            run_slug=run_slug,
            series_name=series_name,
            model_slug=best,
            target_time=target_time.to_pydatetime(),
            step=step,
            point_forecast=round(point, 4),
            lower=round(lower, 4),
            upper=round(upper, 4),
            confidence_pct=fc.confidence_pct,
        ))

    selected = SelectedModel(
        series_name=series_name,
        slug=best,
        model_family=model.family,
        selection_metric=fc.selection_metric,
        hyperparameters=model.hyperparameters,
        training_data_start=series.index[0].to_pydatetime(),
        training_data_end=series.index[-1].to_pydatetime(),
        holdout_metrics={k: best_metrics.get(k) for k in METRIC_NAMES},
        ranking=backtest.ranking,
    )

    logger.info(
        "Forecast '%s' | model=%s | %s=%.4f | steps=%d",
        series_name, best, fc.selection_metric,
        best_metrics.get(fc.selection_metric), plan.horizon_steps,
    )
    return SeriesForecast(
        series_name=series_name,
        selected=selected,
        outputs=outputs,
        backtest=backtest,
    )
