"""
ForecastStage — select the best model per series and forecast one week ahead.

This stage:
1. Prepares the resampled readings (or reuses ``prepared``).
2. For each target series, runs the holdout comparison (or reuses the
   comparisons from a preceding ``BacktestStage``), selects the best
   candidate, refits it on the full series and forecasts
   ``forecast.horizon`` past the last observation.
3. Writes one CSV per series, a combined Parquet and a manifest recording
   the selected model for each series.

Output layout:
  outputs/forecast/{run_slug}/
    {series}_forecast.csv
    {series}_accuracy.csv
    forecasts.parquet
    forecast_manifest.json
"""

from __future__ import annotations

import logging
from pathlib import Path

from energy_forecaster.forecasting.forecaster import SeriesBacktest, SeriesForecast
from energy_forecaster.models.meta import RunMetadata
from energy_forecaster.pipeline.base import PipelineStage
from energy_forecaster.pipeline.prepare import (
    PreparedData,
    file_slug,
    prepare_data,
    select_series,
)
from energy_forecaster.utils.time_utils import utcnow

log = logging.getLogger(__name__)


class ForecastStage(PipelineStage):
    """Model selection + final forecast pipeline stage."""

    stage_name = "forecast"

    forecasts: list[SeriesForecast] | None = None

    def _execute(
        self,
        run: RunMetadata,
        input_path: Path | None = None,
        series: list[str] | None = None,
        prepared: PreparedData | None = None,
        backtests: dict[str, SeriesBacktest] | None = None,
    ) -> int:
        """Forecast each target series.

        Args:
            run:        RunMetadata being tracked.
            input_path: Readings file (defaults to ``config.data.input_path``).
            series:     Target series (defaults to ``forecast.target_series``).
            prepared:   Reuse already prepared data instead of reloading.
            backtests:  Reuse holdout comparisons keyed by series name.

        Returns:
            Total number of ForecastOutputs produced.
        """
        from energy_forecaster.backtest.reporter import write_accuracy_csv
        from energy_forecaster.forecasting.forecaster import build_plan, forecast_series
        from energy_forecaster.reporting.export import (
            export_frame_to_parquet,
            export_to_csv,
            export_to_json,
            forecast_rows,
            forecasts_to_frame,
        )

        cfg = self.config
        data = prepared or prepare_data(cfg, input_path)
        run.input_path = str(data.source_path)
        names = select_series(data, series or cfg.forecast.target_series)
        run.series_names = names

        plan = build_plan(cfg)
        out_dir = self.stage_dir(run)
        self.forecasts = []

        for name in names:
            reuse = (backtests or {}).get(name)
            fc = forecast_series(
                data.model_series(name), name, cfg, plan, run.run_slug, backtest=reuse,
            )
            self.forecasts.append(fc)

            slug = file_slug(name)
            self._record_output(run, export_to_csv(
                forecast_rows(fc.outputs), out_dir / f"{slug}_forecast.csv"))
            accuracy_path = out_dir / f"{slug}_accuracy.csv"
            write_accuracy_csv(fc.backtest.metrics_by_model, fc.backtest.ranking, accuracy_path)
            self._record_output(run, accuracy_path)

        all_outputs = [o for fc in self.forecasts for o in fc.outputs]
        self._record_output(run, export_frame_to_parquet(
            forecasts_to_frame(all_outputs), out_dir / "forecasts.parquet"))

        manifest = {
            "schema_version": "1.0",
            "built_at":       utcnow().isoformat(),
            "run_slug":       run.run_slug,
            "input_path":     run.input_path,
            "horizon":        cfg.forecast.horizon,
            "horizon_steps":  plan.horizon_steps,
            "resample_rule":  plan.rule,
            "confidence_pct": cfg.forecast.confidence_pct,
            "selected_models": [fc.selected.model_dump(mode="json") for fc in self.forecasts],
            "failures": [
                f.to_dict() for fc in self.forecasts for f in fc.backtest.result.failures
            ],
        }
        self._record_output(run, export_to_json(manifest, out_dir / "forecast_manifest.json"))

        log.info(
            "Forecasts written to %s | %s",
            out_dir, {fc.series_name: fc.selected.slug for fc in self.forecasts},
        )
        return len(all_outputs)
