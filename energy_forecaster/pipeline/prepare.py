"""
Shared data preparation for every pipeline stage.

    load → regularize → quality report → clean (IQR + short gaps) → resample

Cleaning runs on the raw 5-minute grid, before aggregation, so a single
spike cannot leak into an hourly mean where it would no longer look like
an outlier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from energy_forecaster.config import AppConfig
from energy_forecaster.features.aggregate import resample_readings
from energy_forecaster.features.cleaning import OutlierSummary, clean_frame, fill_all_gaps
from energy_forecaster.features.quality import DataQualityReport, build_quality_report
from energy_forecaster.ingestion.spreadsheet import load_readings, regularize

logger = logging.getLogger(__name__)


@dataclass
class PreparedData:
    """Readings at each preparation step, plus the reports produced on the way.

    Attributes:
        source_path:       File the readings were loaded from.
        raw:               Regularized source-grid readings, before cleaning.
        cleaned:           Source-grid readings after outlier removal and
                           short-gap filling.
        resampled:         ``cleaned`` aggregated to ``config.resample.rule``.
        quality:           Quality report on ``raw``.
        outlier_summaries: Column → outlier counts and IQR bounds.
    """

    source_path: Path
    raw: pd.DataFrame
    cleaned: pd.DataFrame
    resampled: pd.DataFrame
    quality: DataQualityReport
    outlier_summaries: dict[str, OutlierSummary] = field(default_factory=dict)

    @property
    def series_names(self) -> list[str]:
        return [str(c) for c in self.resampled.columns]

    def model_series(self, name: str) -> pd.Series:
        """Gap-free resampled series, ready for decomposition and models.

        Raises:
            KeyError:   If ``name`` was not loaded.
            ValueError: If the series has no readings.
        """
        if name not in self.resampled.columns:
            raise KeyError(f"Series '{name}' is not loaded; have {self.series_names}.")
        return fill_all_gaps(self.resampled[name]).rename(name)


def prepare_data(
    config: AppConfig,
    input_path: Path | None = None,
) -> PreparedData:
    """Run load → regularize → quality → clean → resample.

    Args:
        config:     Application config (data, cleaning and resample sections).
        input_path: Readings file; defaults to ``config.data.input_path``.

    Raises:
        FileNotFoundError: If the readings file does not exist.
        ValueError: On unreadable content (see ``load_readings()``).
    """
    cfg = config.data
    path = Path(input_path or cfg.input_path)

    loaded = load_readings(
        path,
        timestamp_column=cfg.timestamp_column,
        series_columns=cfg.series_columns,
        sheet_name=cfg.sheet_name,
    )
    raw, duplicates, inserted = regularize(loaded.frame, cfg.source_freq)

    quality = build_quality_report(
        raw,
        duplicates_dropped=duplicates,
        inserted_steps=inserted,
        dropped_timestamp_rows=loaded.dropped_timestamp_rows,
        coerced_nan_counts=loaded.coerced_nan_counts,
    )
    if not quality.is_clean:
        logger.warning(
            "Quality issues in %s | duplicates=%d | empty=%s",
            path.name, quality.duplicate_timestamps, quality.empty_cols,
        )

    cleaned, summaries = clean_frame(raw, config.cleaning)
    resampled = resample_readings(
        cleaned,
        config.resample.rule,
        how=config.resample.how,
        source_freq=cfg.source_freq,
    )
    logger.info(
        "Prepared %s | %d source rows → %d %s rows",
        path.name, len(raw), len(resampled), config.resample.rule,
    )
    return PreparedData(
        source_path=path,
        raw=raw,
        cleaned=cleaned,
        resampled=resampled,
        quality=quality,
        outlier_summaries=summaries,
    )


def select_series(data: PreparedData, series: list[str] | None) -> list[str]:
    """Validate a requested subset of series against the loaded ones.

    None or an empty list selects every loaded series.
    """
    if not series:
        return data.series_names
    unknown = [s for s in series if s not in data.series_names]
    if unknown:
        raise ValueError(
            f"Unknown series {unknown}; loaded series are {data.series_names}."
        )
    return list(series)


def file_slug(series_name: str) -> str:
    """Series name as used in output file names (``"Demand"`` → ``"demand"``)."""
    return series_name.strip().lower().replace(" ", "_")
