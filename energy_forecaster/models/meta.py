"""
Metadata about model selection and pipeline runs.

``SelectedModel`` is what the forecast manifest records for each target
series: the winning candidate, the window it was refit on, its holdout scores
and the ranking it came out of.

``RunMetadata`` is the JSON record every stage leaves under
``<output_dir>/runs/``. It embeds the resolved ``AppConfig`` so a run can be
repeated from its record alone. Unlike the other models it is mutable: the
stage fills in status, counts and output paths as it goes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from energy_forecaster.utils.time_utils import utcnow

VALID_PIPELINE_STAGES = frozenset({"inspect", "decompose", "backtest", "forecast"})
VALID_RUN_STATUSES = frozenset({"started", "success", "failed", "skipped"})

# Families group the candidate registry in reports:
#   baseline               naive, mean, drift, seasonal naive
#   exponential_smoothing  holt_winters, stl_ets
#   decomposition          mstl_arima
#   arima                  fourier_arima
#   lightgbm               lightgbm
VALID_MODEL_FAMILIES = frozenset({
    "baseline", "exponential_smoothing", "decomposition", "arima", "lightgbm",
})


def _check_member(field: str, value: str, allowed: frozenset[str]) -> str:
    if value not in allowed:
        raise ValueError(f"{field} '{value}' is not one of {sorted(allowed)}.")
    return value


class SelectedModel(BaseModel):
    """Winning candidate for one series.

    Attributes:
        series_name: Target series, e.g. ``"Import"``.
        slug: Candidate registry name, e.g. ``"mstl_arima"``.
        model_family: One of ``VALID_MODEL_FAMILIES``.
        selection_metric: Metric the candidates were ranked on.
        hyperparameters: Settings reported by the candidate.
        training_data_start: First timestamp of the refit series.
        training_data_end: Last timestamp of the refit series.
        holdout_metrics: The candidate's holdout scores, by metric name.
        ranking: Usable candidates, best first.
    """

    model_config = ConfigDict(frozen=True)

    series_name: str
    slug: str
    model_family: str
    selection_metric: str
    hyperparameters: Optional[dict[str, Any]] = None
    training_data_start: Optional[datetime] = None
    training_data_end: Optional[datetime] = None
    holdout_metrics: dict[str, Optional[float]] = {}
    ranking: list[str] = []

    @field_validator("model_family")
    @classmethod
    def validate_model_family(cls, v: str) -> str:
        return _check_member("model_family", v, VALID_MODEL_FAMILIES)


class RunMetadata(BaseModel):
    """Record of one stage execution.

    Attributes:
        run_slug: UUID4 string; also the run's output sub-directory name.
        pipeline_stage: One of ``VALID_PIPELINE_STAGES``.
        status: One of ``VALID_RUN_STATUSES``.
        input_path: Readings file the stage loaded.
        series_names: Series the stage worked on.
        config_snapshot: ``AppConfig.model_dump(mode="json")`` at start.
        rows_processed: Stage-specific count (rows, records or forecast steps).
        output_files: Files written, in write order.
        error_message: ``str(exc)`` when the stage failed.
        started_at / finished_at: UTC timestamps.
    """

    model_config = ConfigDict(frozen=False)

    run_slug: str
    pipeline_stage: str
    status: str = "started"
    input_path: Optional[str] = None
    series_names: list[str] = []
    config_snapshot: dict[str, Any]
    rows_processed: int = 0
    output_files: list[str] = []
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None

    @field_validator("pipeline_stage")
    @classmethod
    def validate_pipeline_stage(cls, v: str) -> str:
        return _check_member("pipeline_stage", v, VALID_PIPELINE_STAGES)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return _check_member("status", v, VALID_RUN_STATUSES)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def finish(self, status: str, error: Optional[BaseException] = None) -> None:
        """Stamp ``finished_at`` and set the final status (validated)."""
        self.status = _check_member("status", status, VALID_RUN_STATUSES)
        self.error_message = None if error is None else str(error)
        self.finished_at = utcnow()