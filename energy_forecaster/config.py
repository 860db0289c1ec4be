"""
Configuration for the Energy Forecaster.

``load_config()`` builds one frozen ``AppConfig`` from, in increasing
priority: ``config/default.toml`` (or ``--config``), an optional
``local.toml`` beside it, the repository ``.env`` file and
``ENERGY_FORECASTER_*`` environment variables. The CLI then applies its
command-line options with ``with_overrides()``.

Durations (``horizon``, ``holdout``, seasonal periods) are kept as pandas
strings such as ``"7D"`` and converted to grid steps by
``forecasting.forecaster.build_plan()``.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

ALL_SERIES: list[str] = ["Demand", "Generation", "Import", "Solar", "Wind", "Other"]

VALID_METRICS = frozenset({"rmse", "mae", "mape", "mase"})

DEFAULT_CANDIDATES: list[str] = [
    "naive",
    "mean",
    "drift",
    "seasonal_naive_daily",
    "seasonal_naive_weekly",
    "holt_winters",
    "stl_ets",
    "mstl_arima",
    "fourier_arima",
    "lightgbm",
]

# ── Sub-config models ─────────────────────────────────────────────────────────


class DataConfig(BaseModel):
    """Input spreadsheet layout and output location."""

    model_config = ConfigDict(frozen=True)

    input_path: str = "data/raw/energy_readings.xlsx"
    sheet_name: Union[int, str] = 0
    timestamp_column: str = "Timestamp"
    series_columns: list[str] = list(ALL_SERIES)
    source_freq: str = "5min"
    output_dir: str = "outputs"

    @field_validator("series_columns")
    @classmethod
    def validate_series_columns(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("series_columns must name at least one column.")
        if len(set(v)) != len(v):
            raise ValueError(f"series_columns contains duplicates: {v}")
        return v


class CleaningConfig(BaseModel):
    """IQR outlier removal and gap filling."""

    model_config = ConfigDict(frozen=True)

    iqr_multiplier: float = 1.5
    outlier_method: Literal["clip", "interpolate"] = "clip"
    max_gap_steps: int = 12            # 1 hour of 5-minute readings
    series: Optional[list[str]] = None  # None → every loaded series

    @field_validator("iqr_multiplier")
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"iqr_multiplier must be > 0, got {v}.")
        return v

    @field_validator("max_gap_steps")
    @classmethod
    def validate_max_gap(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_gap_steps must be >= 0, got {v}.")
        return v


class ResampleConfig(BaseModel):
    """Aggregation of raw readings onto the analysis grid."""

    model_config = ConfigDict(frozen=True)

    rule: str = "1h"
    how: Literal["mean", "sum"] = "mean"


class DecompositionConfig(BaseModel):
    """Multi-seasonal (MSTL) decomposition settings."""

    model_config = ConfigDict(frozen=True)

    seasonal_periods: list[str] = ["1D", "7D"]
    robust: bool = True

    @field_validator("seasonal_periods")
    @classmethod
    def validate_periods(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("seasonal_periods must contain at least one period.")
        return v


class ForecastConfig(BaseModel):
    """Candidate evaluation, model selection, and final forecast settings."""

    model_config = ConfigDict(frozen=True)

    target_series: list[str] = ["Demand", "Import"]
    horizon: str = "7D"
    holdout: str = "7D"
    n_folds: int = 1
    fold_step: Optional[str] = None    # None → same as holdout
    selection_metric: str = "rmse"
    candidates: list[str] = list(DEFAULT_CANDIDATES)
    confidence_pct: float = 0.80
    non_negative_series: list[str] = ["Demand", "Generation", "Solar", "Wind"]

    @field_validator("confidence_pct")
    @classmethod
    def validate_confidence(cls, v: float) -> float:
        if not 0.0 < v < 1.0:
            raise ValueError(f"confidence_pct must be in (0.0, 1.0), got {v}.")
        return v

    @field_validator("selection_metric")
    @classmethod
    def validate_metric(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_METRICS:
            raise ValueError(
                f"selection_metric must be one of {sorted(VALID_METRICS)}, got '{v}'."
            )
        return v

    @field_validator("n_folds")
    @classmethod
    def validate_folds(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"n_folds must be >= 1, got {v}.")
        return v

    @field_validator("candidates")
    @classmethod
    def validate_candidates(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one candidate model must be configured.")
        unknown = [c for c in v if c not in DEFAULT_CANDIDATES]
        if unknown:
            raise ValueError(
                f"Unknown candidate model(s) {unknown}. Known: {DEFAULT_CANDIDATES}."
            )
        return v


class LightGBMConfig(BaseModel):
    """Hyperparameters for the LightGBM candidate."""

    model_config = ConfigDict(frozen=True)

    num_leaves: int = 31
    learning_rate: float = 0.05
    n_estimators: int = 300
    min_child_samples: int = 10
    feature_fraction: float = 0.9
    early_stopping_rounds: int = 30
    validation_fraction: float = 0.1


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "outputs/logs/energy_forecaster.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration.

    All pipeline stages and CLI commands receive an ``AppConfig`` instance.
    It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    data: DataConfig = DataConfig()
    cleaning: CleaningConfig = CleaningConfig()
    resample: ResampleConfig = ResampleConfig()
    decomposition: DecompositionConfig = DecompositionConfig()
    forecast: ForecastConfig = ForecastConfig()
    lightgbm: LightGBMConfig = LightGBMConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False

    @model_validator(mode="after")
    def validate_target_series(self) -> "AppConfig":
        unknown = [s for s in self.forecast.target_series if s not in self.data.series_columns]
        if unknown:
            raise ValueError(
                f"forecast.target_series {unknown} are not in data.series_columns "
                f"{self.data.series_columns}."
            )
        return self


# ── Loader ────────────────────────────────────────────────────────────────────

# (environment variable, config section or None for top level, field)
_ENV_OVERRIDES: tuple[tuple[str, Optional[str], str], ...] = (
    ("ENERGY_FORECASTER_INPUT_PATH", "data", "input_path"),
    ("ENERGY_FORECASTER_OUTPUT_DIR", "data", "output_dir"),
    ("ENERGY_FORECASTER_LOG_LEVEL", "logging", "level"),
    ("ENERGY_FORECASTER_DEBUG", None, "debug"),
)
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _repo_root() -> Path:
    """Directory holding ``pyproject.toml`` above this package, else the parent dir."""
    here = Path(__file__).resolve().parent
    for directory in (here, *here.parents[:4]):
        if (directory / "pyproject.toml").is_file():
            return directory
    return here.parent


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _merged(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated by ``overlay``; nested tables merge key by key."""
    out = dict(base)
    for key, value in overlay.items():
        current = out.get(key)
        out[key] = (
            _merged(current, value)
            if isinstance(current, dict) and isinstance(value, dict)
            else value
        )
    return out


def _env_layer() -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for var, section, field in _ENV_OVERRIDES:
        value = os.environ.get(var)
        if not value:
            continue
        if field == "debug":
            layer["debug"] = value.strip().lower() in _TRUTHY
        else:
            layer.setdefault(section, {})[field] = value
    return layer


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Resolve the ``AppConfig`` for this invocation.

    Layers, later ones winning: ``config_path`` (default
    ``<repo>/config/default.toml``), a ``local.toml`` next to it, the
    repository ``.env`` file, and ``ENERGY_FORECASTER_*`` variables already
    set in the environment (``.env`` never overrides those).

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        pydantic.ValidationError: If a merged value is invalid.
    """
    root = _repo_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / "config" / "default.toml"
    if not path.is_file():
        raise FileNotFoundError(
            f"No config file at {path}. Pass --config or create config/default.toml."
        )

    raw = _read_toml(path)
    local = path.with_name("local.toml")
    if local.is_file() and local != path:
        raw = _merged(raw, _read_toml(local))
    raw = _merged(raw, _env_layer())
    return AppConfig.model_validate(raw)


def with_overrides(config: AppConfig, **sections: dict[str, Any]) -> AppConfig:
    """Copy of ``config`` with the given section fields replaced (re-validated).

    ``with_overrides(cfg, data={"input_path": "march.xlsx"})`` is how the CLI
    applies ``--input`` and friends; empty sections are ignored.
    """
    raw = config.model_dump()
    for section, values in sections.items():
        if values:
            raw[section] = {**raw.get(section, {}), **values}
    return AppConfig.model_validate(raw)
