"""
InspectStage — data quality and exploratory summaries.

This stage:
1. Loads, regularizes, cleans and resamples the readings (``prepare_data``).
2. Writes the quality report and the outlier/cleaning summary.
3. Writes the exploratory tables behind the usual EDA figures:
   descriptive statistics, correlations, daily and weekly profiles and the
   Demand = Generation + Import energy balance.
4. Writes the cleaned, resampled readings as Parquet for later analysis.

Output layout:
  outputs/inspect/{run_slug}/
    quality_report.json
    cleaning_summary.json
    describe.csv, correlation.csv, daily_profile.csv, weekly_profile.csv
    energy_balance.json
    readings_{rule}.parquet
"""

from __future__ import annotations

import logging
from pathlib import Path

from energy_forecaster.models.meta import RunMetadata
from energy_forecaster.pipeline.base import PipelineStage
from energy_forecaster.pipeline.prepare import PreparedData, prepare_data, select_series

log = logging.getLogger(__name__)


class InspectStage(PipelineStage):
    """Quality report, cleaning summary and exploratory tables."""

    stage_name = "inspect"

    prepared: PreparedData | None = None

    def _execute(
        self,
        run: RunMetadata,
        input_path: Path | None = None,
        series: list[str] | None = None,
        prepared: PreparedData | None = None,
    ) -> int:
        """Inspect the readings.

        Args:
            run:        RunMetadata being tracked.
            input_path: Readings file (defaults to ``config.data.input_path``).
            series:     Restrict the exploratory tables to these series.
            prepared:   Reuse already prepared data instead of reloading.

        Returns:
            Number of resampled rows summarised.
        """
        from energy_forecaster.analysis.summary import (
            correlation_matrix,
            daily_profile,
            describe_series,
            energy_balance,
            weekly_profile,
        )
        from energy_forecaster.reporting.export import (
            export_frame_to_csv,
            export_frame_to_parquet,
            export_to_json,
        )

        data = prepared or prepare_data(self.config, input_path)
        self.prepared = data
        run.input_path = str(data.source_path)

        names = select_series(data, series)
        run.series_names = names
        frame = data.resampled[names]

        out_dir = self.stage_dir(run)
        rule = self.config.resample.rule

        self._record_output(run, export_to_json(
            data.quality.to_dict(), out_dir / "quality_report.json"))
        self._record_output(run, export_to_json(
            {col: s.to_dict() for col, s in data.outlier_summaries.items()},
            out_dir / "cleaning_summary.json",
        ))
        self._record_output(run, export_frame_to_csv(
            describe_series(frame), out_dir / "describe.csv"))
        self._record_output(run, export_frame_to_csv(
            correlation_matrix(frame), out_dir / "correlation.csv", index_label="series"))
        self._record_output(run, export_frame_to_csv(
            daily_profile(frame), out_dir / "daily_profile.csv"))
        self._record_output(run, export_frame_to_csv(
            weekly_profile(frame), out_dir / "weekly_profile.csv"))
        self._record_output(run, export_to_json(
            {"raw": energy_balance(data.raw), "cleaned": energy_balance(data.resampled)},
            out_dir / "energy_balance.json"))
        self._record_output(run, export_frame_to_parquet(
            frame, out_dir / f"readings_{rule}.parquet"))

        log.info(
            "Inspection written to %s | series=%s | rows=%d",
            out_dir, names, len(frame),
        )
        return len(frame)

