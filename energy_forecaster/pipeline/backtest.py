"""
BacktestStage — holdout comparison of all candidate models.

This stage:
1. Prepares the resampled readings (or reuses ``prepared``).
2. For each target series, hides the last ``forecast.holdout`` window
   (``n_folds`` rolling origins), fits every configured candidate on the
   rest and scores it against the hidden values.
3. Writes per-candidate accuracy, raw predictions and a manifest.

One BacktestStage run covers every target series. The comparisons are
kept on ``self.backtests`` so ``ForecastStage`` can reuse them.

Output layout:
  outputs/backtest/{run_slug}/
    {series}/
      accuracy.csv, per_prediction.csv, manifest.json
"""

from __future__ import annotations

import logging
from pathlib import Path

from energy_forecaster.forecasting.forecaster import SeriesBacktest
from energy_forecaster.models.meta import RunMetadata
from energy_forecaster.pipeline.base import PipelineStage
from energy_forecaster.pipeline.prepare import (
    PreparedData,
    file_slug,
    prepare_data,
    select_series,
)

log = logging.getLogger(__name__)


class BacktestStage(PipelineStage):
    """Holdout evaluation pipeline stage."""

    stage_name = "backtest"

    backtests: dict[str, SeriesBacktest] | None = None

    def _execute(
        self,
        run: RunMetadata,
        input_path: Path | None = None,
        series: list[str] | None = None,
        prepared: PreparedData | None = None,
    ) -> int:
        """Run the holdout comparison for each target series.

        Args:
            run:        RunMetadata being tracked.
            input_path: Readings file (defaults to ``config.data.input_path``).
            series:     Target series (defaults to ``forecast.target_series``).
            prepared:   Reuse already prepared data instead of reloading.

        Returns:
            Total number of PredictionRecords across series.
        """
        from energy_forecaster.backtest.reporter import (
            build_backtest_manifest,
            write_accuracy_csv,
            write_manifest,
            write_per_prediction_csv,
        )
        from energy_forecaster.forecasting.forecaster import backtest_series, build_plan

        cfg = self.config
        data = prepared or prepare_data(cfg, input_path)
        run.input_path = str(data.source_path)
        names = select_series(data, series or cfg.forecast.target_series)
        run.series_names = names

        plan = build_plan(cfg)
        out_dir = self.stage_dir(run)
        self.backtests = {}
        total_records = 0

        for name in names:
            bt = backtest_series(data.model_series(name), name, cfg, plan)
            self.backtests[name] = bt
            total_records += len(bt.result.records)

            s_dir = out_dir / file_slug(name)
            accuracy_path = s_dir / "accuracy.csv"
            per_pred_path = s_dir / "per_prediction.csv"
            manifest_path = s_dir / "manifest.json"

            write_accuracy_csv(bt.metrics_by_model, bt.ranking, accuracy_path)
            write_per_prediction_csv(bt.result.records, per_pred_path)
            manifest = build_backtest_manifest(
                series_name=name,
                run_slug=run.run_slug,
                folds=bt.folds,
                model_names=list(cfg.forecast.candidates),
                ranking=bt.ranking,
                selection_metric=cfg.forecast.selection_metric,
                failures=bt.result.failures,
                output_dir=s_dir,
                config_snapshot=run.config_snapshot,
            )
            write_manifest(manifest, manifest_path)
            for path in (accuracy_path, per_pred_path, manifest_path):
                self._record_output(run, path)

            log.info(
                "Backtest '%s' | folds=%d | ranking=%s",
                name, len(bt.folds), bt.ranking,
            )

        return total_records
