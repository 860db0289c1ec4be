"""
DecomposeStage — multi-seasonal decomposition of each series.

This stage:
1. Prepares the resampled readings (or reuses ``prepared``).
2. For each selected series, runs MSTL with the configured seasonal
   periods (those that fit more than twice into the series).
3. Writes the components and the trend/seasonal strength per series.

A series that cannot be decomposed (no readings, too short for every
period) is skipped with a warning; the stage fails only when no series
could be decomposed at all.

Output layout:
  outputs/decompose/{run_slug}/
    {series}_components.csv   — observed, trend, seasonal_<p>..., remainder
    {series}_strength.json    — DecompositionResult.to_dict()
"""

from __future__ import annotations

import logging
from pathlib import Path

from energy_forecaster.analysis.decomposition import DecompositionResult
from energy_forecaster.models.meta import RunMetadata
from energy_forecaster.pipeline.base import PipelineStage
from energy_forecaster.pipeline.prepare import (
    PreparedData,
    file_slug,
    prepare_data,
    select_series,
)

log = logging.getLogger(__name__)


class DecomposeStage(PipelineStage):
    """MSTL decomposition of each selected series."""

    stage_name = "decompose"

    results: dict[str, DecompositionResult] | None = None

    def _execute(
        self,
        run: RunMetadata,
        input_path: Path | None = None,
        series: list[str] | None = None,
        prepared: PreparedData | None = None,
    ) -> int:
        """Decompose each selected series.

        Returns:
            Total number of decomposed observations across series.

        Raises:
            ValueError: If no selected series could be decomposed.
        """
        from energy_forecaster.analysis.decomposition import decompose_series
        from energy_forecaster.reporting.export import export_frame_to_csv, export_to_json
        from energy_forecaster.utils.time_utils import steps_per_period

        data = prepared or prepare_data(self.config, input_path)
        run.input_path = str(data.source_path)
        names = select_series(data, series)
        run.series_names = names

        rule = self.config.resample.rule
        periods = [
            steps_per_period(rule, p) for p in self.config.decomposition.seasonal_periods
        ]
        out_dir = self.stage_dir(run)
        self.results = {}
        total = 0

        for name in names:
            try:
                y = data.model_series(name)
            except ValueError as exc:
                log.warning("Skipping decomposition of '%s': %s", name, exc)
                continue

            fitting = [p for p in periods if len(y) > 2 * p]
            if not fitting:
                log.warning(
                    "Skipping decomposition of '%s': %d steps is too short for periods %s.",
                    name, len(y), periods,
                )
                continue
            if len(fitting) < len(periods):
                log.warning(
                    "'%s': dropping seasonal period(s) %s that do not fit twice into %d steps.",
                    name, sorted(set(periods) - set(fitting)), len(y),
                )

            result = decompose_series(y, fitting, robust=self.config.decomposition.robust)
            self.results[name] = result
            total += len(result.observed)

            slug = file_slug(name)
            self._record_output(run, export_frame_to_csv(
                result.components_frame(), out_dir / f"{slug}_components.csv"))
            self._record_output(run, export_to_json(
                result.to_dict(), out_dir / f"{slug}_strength.json"))

        if not self.results:
            raise ValueError(f"None of the series {names} could be decomposed.")
        return total
