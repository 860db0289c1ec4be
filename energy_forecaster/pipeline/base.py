"""
Base class for the four pipeline stages (inspect, decompose, backtest, forecast).

A stage is built from an ``AppConfig`` and driven through ``run(**kwargs)``:

  - a ``RunMetadata`` is opened with a fresh run slug and the config snapshot;
  - ``_execute(run, **kwargs)`` does the stage's work, writes its files under
    ``stage_dir(run)`` and returns a count for ``rows_processed``;
  - the record is closed as ``success`` or ``failed`` and written to
    ``<output_dir>/runs/<run_slug>.json``. A failure is re-raised after the
    record is written.

Subclass sketch::

    class InspectStage(PipelineStage):
        stage_name = "inspect"

        def _execute(self, run: RunMetadata, input_path: Path | None = None) -> int:
            data = prepare_data(self.config, input_path)
            ...
            return len(data.resampled)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import uuid4

from energy_forecaster.config import AppConfig
from energy_forecaster.models.meta import RunMetadata
from energy_forecaster.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """One step of the analysis, recorded as a ``RunMetadata``.

    Attributes:
        stage_name: ``RunMetadata.pipeline_stage`` value; set by subclasses.
        config: Resolved application config.
        output_dir: Root for stage outputs and run records; defaults to
            ``config.data.output_dir``.
    """

    stage_name: str

    def __init__(self, config: AppConfig, output_dir: str | None = None) -> None:
        self.config = config
        self.output_dir = Path(output_dir or config.data.output_dir)

    def run(self, **kwargs) -> RunMetadata:
        """Execute the stage and return its closed run record.

        Raises:
            Exception: Whatever ``_execute()`` raised, after the failed run
                record has been written.
        """
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            config_snapshot=self.config.model_dump(mode="json"),
            started_at=utcnow(),
        )
        logger.info("[%s] run %s started", self.stage_name, run.run_slug)

        try:
            run.rows_processed = self._execute(run=run, **kwargs)
        except Exception as exc:
            run.finish("failed", exc)
            logger.error(
                "[%s] run %s failed after %.1fs: %s",
                self.stage_name, run.run_slug, run.duration_seconds, exc,
            )
            self._write_run_record(run)
            raise

        run.finish("success")
        logger.info(
            "[%s] run %s finished in %.1fs | rows=%d | files=%d",
            self.stage_name, run.run_slug, run.duration_seconds,
            run.rows_processed, len(run.output_files),
        )
        self._write_run_record(run)
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Do the stage's work; return the count stored as ``rows_processed``."""

    def stage_dir(self, run: RunMetadata) -> Path:
        """``<output_dir>/<stage_name>/<run_slug>`` (not created here)."""
        return self.output_dir / self.stage_name / run.run_slug

    def _record_output(self, run: RunMetadata, path: Path) -> Path:
        run.output_files.append(str(path))
        return path

    def _write_run_record(self, run: RunMetadata) -> None:
        # A failure here is logged only; it must not replace the stage's own error.
        from energy_forecaster.reporting.export import export_to_json

        path = self.output_dir / "runs" / f"{run.run_slug}.json"
        try:
            export_to_json(run.model_dump(mode="json"), path)
        except OSError as exc:
            logger.error("Could not write run record %s: %s", path, exc)
