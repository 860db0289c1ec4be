"""
Forecast output model.

``ForecastOutput`` represents a single point forecast with a prediction
interval for one (series, target_time) pair of the final one-week forecast.

The model is frozen — once a forecast is produced and written, it should
not be mutated.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class ForecastOutput(BaseModel):
    """Point forecast with prediction interval for one step of one series.

    Attributes:
        run_slug: Run that produced this forecast.
        series_name: Forecast series, e.g. ``"Demand"`` or ``"Import"``.
        model_slug: Candidate that produced the forecast (the holdout winner).
        target_time: Timestamp being forecast.
        step: 1-based step ahead of the last observation.
        point_forecast: Central estimate.
        lower: Lower bound of the prediction interval.
        upper: Upper bound of the prediction interval.
        confidence_pct: Coverage level of the interval, e.g. ``0.80``.
    """

    model_config = ConfigDict(frozen=True)

    run_slug: str
    series_name: str
    model_slug: str
    target_time: datetime
    step: int
    point_forecast: float
    lower: float
    upper: float
    confidence_pct: float = 0.80

    @field_validator("step")
    @classmethod
    def validate_step(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"step must be >= 1, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_interval(self) -> "ForecastOutput":
        if not self.lower <= self.point_forecast <= self.upper:
            raise ValueError(
                f"Interval must contain the point forecast: "
                f"lower={self.lower}, point={self.point_forecast}, upper={self.upper}."
            )
        if not 0.0 < self.confidence_pct < 1.0:
            raise ValueError(
                f"confidence_pct must be in (0.0, 1.0), got {self.confidence_pct}."
            )
        return self
