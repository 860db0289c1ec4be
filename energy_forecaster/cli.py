"""
Energy Forecaster — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()`` and apply command-line options.
  2. Configure logging.
  3. Execute the pipeline stage(s).
  4. Report result to stdout; ``[ERROR]`` and exit code 1 on failure.

Install and run::

    pip install -e .
    energy-forecaster --help
    energy-forecaster validate-config
    energy-forecaster inspect   --input data/raw/readings.xlsx
    energy-forecaster decompose --input data/raw/readings.xlsx --series Demand
    energy-forecaster backtest  --input data/raw/readings.xlsx
    energy-forecaster forecast  --input data/raw/readings.xlsx
    energy-forecaster run-all   --input data/raw/readings.xlsx
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="energy-forecaster",
    help="Energy readings analysis and one-week-ahead forecasting CLI.",
    add_completion=False,
)

_INPUT_OPTION = typer.Option(
    None, "--input", "-i", help="Readings spreadsheet (.xlsx/.xls/.csv). Default: data.input_path."
)
_OUTPUT_OPTION = typer.Option(
    None, "--output-dir", help="Output root directory. Default: data.output_dir."
)
_SERIES_OPTION = typer.Option(
    None, "--series", help="Series to process (repeatable). Default depends on the command."
)
_TIMESTAMP_OPTION = typer.Option(
    None, "--timestamp-column", help="Name of the timestamp column. Default: data.timestamp_column."
)
_CONFIG_OPTION = typer.Option(
    None, "--config", help="Path to TOML config file (default: config/default.toml)."
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from energy_forecaster.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _resolve_config_or_exit(
    config_path: Optional[str],
    input_path: Optional[str],
    output_dir: Optional[str],
    timestamp_column: Optional[str],
):
    """Load config, apply command-line overrides and configure logging."""
    from energy_forecaster.config import with_overrides

    config = _load_config_or_exit(config_path)
    data_overrides = {
        key: value
        for key, value in (
            ("input_path", input_path),
            ("output_dir", output_dir),
            ("timestamp_column", timestamp_column),
        )
        if value
    }
    try:
        config = with_overrides(config, data=data_overrides)
    except Exception as exc:
        typer.echo(f"[ERROR] Invalid option: {exc}", err=True)
        raise typer.Exit(code=1)

    _configure_logging(config)
    return config


def _configure_logging(config):
    """Set up logging from config."""
    from energy_forecaster.utils.logging import configure_logging
    configure_logging(config.logging)


def _run_stage_or_exit(stage, **kwargs):
    """Run one stage; on failure print ``[ERROR]`` and exit with code 1."""
    try:
        return stage.run(**kwargs)
    except Exception as exc:
        typer.echo(f"[ERROR] {stage.stage_name} failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _report_stage_failure(stage_name: str, exc: Exception, failed: list[str]) -> None:
    """run-all keeps going after a failed stage; print it and remember it."""
    typer.echo(f"[ERROR] {stage_name} failed: {exc}", err=True)
    failed.append(stage_name)


def _echo_run(run) -> None:
    typer.echo(
        f"  status={run.status} | rows={run.rows_processed} | run_slug={run.run_slug}"
    )
    typer.echo(f"  outputs: {len(run.output_files)} file(s)")


def _echo_backtests(backtests, selected: dict[str, str] | None = None) -> None:
    from energy_forecaster.reporting.formatters import format_accuracy_table

    for name, bt in backtests.items():
        best = (selected or {}).get(name) or (bt.ranking[0] if bt.ranking else None)
        typer.echo(format_accuracy_table(bt.metrics_by_model, bt.ranking, best, series_name=name))
        if bt.result.failures:
            typer.echo(f"  Failed candidates: {sorted(bt.result.failed_models())}")


# ── Commands ──────────────────────────────────────────────────────────────────


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPTION,
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Input path:       {config.data.input_path}")
    typer.echo(f"  Output dir:       {config.data.output_dir}")
    typer.echo(f"  Series:           {', '.join(config.data.series_columns)}")
    typer.echo(f"  Resample rule:    {config.resample.rule} ({config.resample.how})")
    typer.echo(f"  Target series:    {', '.join(config.forecast.target_series)}")
    typer.echo(f"  Horizon/holdout:  {config.forecast.horizon} / {config.forecast.holdout}")
    typer.echo(f"  Candidates:       {', '.join(config.forecast.candidates)}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("inspect")
def inspect(
    input_path: Optional[str] = _INPUT_OPTION,
    output_dir: Optional[str] = _OUTPUT_OPTION,
    series: Optional[list[str]] = _SERIES_OPTION,
    timestamp_column: Optional[str] = _TIMESTAMP_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Data quality report, outlier summary and exploratory tables."""
    from energy_forecaster.pipeline.inspection import InspectStage
    from energy_forecaster.reporting.formatters import format_quality_report

    config = _resolve_config_or_exit(config_path, input_path, output_dir, timestamp_column)
    stage = InspectStage(config=config)
    run = _run_stage_or_exit(stage, series=series or None)

    typer.echo(format_quality_report(stage.prepared.quality))
    typer.echo("")
    for col, summary in stage.prepared.outlier_summaries.items():
        typer.echo(
            f"  {col:<12} outliers={summary.n_outliers:>6} ({summary.outlier_pct:.2%}) "
            f"bounds=[{summary.bounds.lower:.3f}, {summary.bounds.upper:.3f}]"
        )
    _echo_run(run)
    typer.echo("[OK] Inspection complete.")


@app.command("decompose")
def decompose(
    input_path: Optional[str] = _INPUT_OPTION,
    output_dir: Optional[str] = _OUTPUT_OPTION,
    series: Optional[list[str]] = _SERIES_OPTION,
    timestamp_column: Optional[str] = _TIMESTAMP_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Multi-seasonal (MSTL) decomposition and component strengths."""
    from energy_forecaster.pipeline.decompose import DecomposeStage

    config = _resolve_config_or_exit(config_path, input_path, output_dir, timestamp_column)
    stage = DecomposeStage(config=config)
    run = _run_stage_or_exit(stage, series=series or None)

    typer.echo("")
    typer.echo("=== Component Strength ===")
    for name, result in (stage.results or {}).items():
        strengths = "  ".join(f"{k}={v:.3f}" for k, v in result.strength.items())
        typer.echo(f"  {name:<12} {strengths}")
    _echo_run(run)
    typer.echo("[OK] Decomposition complete.")


@app.command("backtest")
def backtest(
    input_path: Optional[str] = _INPUT_OPTION,
    output_dir: Optional[str] = _OUTPUT_OPTION,
    series: Optional[list[str]] = _SERIES_OPTION,
    timestamp_column: Optional[str] = _TIMESTAMP_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Compare all candidate models on the holdout window."""
    from energy_forecaster.pipeline.backtest import BacktestStage

    config = _resolve_config_or_exit(config_path, input_path, output_dir, timestamp_column)
    stage = BacktestStage(config=config)
    run = _run_stage_or_exit(stage, series=series or None)

    _echo_backtests(stage.backtests or {})
    _echo_run(run)
    typer.echo("[OK] Backtest complete.")


@app.command("forecast")
def forecast(
    input_path: Optional[str] = _INPUT_OPTION,
    output_dir: Optional[str] = _OUTPUT_OPTION,
    series: Optional[list[str]] = _SERIES_OPTION,
    timestamp_column: Optional[str] = _TIMESTAMP_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Select the best model per series and forecast one horizon ahead."""
    from energy_forecaster.pipeline.forecast import ForecastStage
    from energy_forecaster.reporting.formatters import format_forecast_summary

    config = _resolve_config_or_exit(config_path, input_path, output_dir, timestamp_column)
    stage = ForecastStage(config=config)
    run = _run_stage_or_exit(stage, series=series or None)

    forecasts = stage.forecasts or []
    _echo_backtests(
        {fc.series_name: fc.backtest for fc in forecasts},
        {fc.series_name: fc.selected.slug for fc in forecasts},
    )
    typer.echo(format_forecast_summary([o for fc in forecasts for o in fc.outputs]))
    _echo_run(run)
    typer.echo("[OK] Forecast complete.")


@app.command("run-all")
def run_all(
    input_path: Optional[str] = _INPUT_OPTION,
    output_dir: Optional[str] = _OUTPUT_OPTION,
    series: Optional[list[str]] = _SERIES_OPTION,
    timestamp_column: Optional[str] = _TIMESTAMP_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Inspect, decompose, backtest and forecast in one go.

    The readings are loaded and cleaned once and shared by all stages.
    ``--series`` selects the target series for backtest and forecast;
    inspect and decompose always cover every loaded series.
    """
    from energy_forecaster.pipeline.backtest import BacktestStage
    from energy_forecaster.pipeline.decompose import DecomposeStage
    from energy_forecaster.pipeline.forecast import ForecastStage
    from energy_forecaster.pipeline.inspection import InspectStage
    from energy_forecaster.pipeline.prepare import prepare_data
    from energy_forecaster.reporting.formatters import format_forecast_summary

    config = _resolve_config_or_exit(config_path, input_path, output_dir, timestamp_column)

    typer.echo(f"Loading readings from: {config.data.input_path}")
    try:
        prepared = prepare_data(config)
    except Exception as exc:
        typer.echo(f"[ERROR] prepare failed: {exc}", err=True)
        raise typer.Exit(code=1)

    failed: list[str] = []
    backtests = None

    typer.echo("  [1/4] InspectStage ...")
    try:
        run = InspectStage(config=config).run(prepared=prepared)
        typer.echo(f"        status={run.status} | rows={run.rows_processed}")
    except Exception as exc:
        _report_stage_failure("inspect", exc, failed)

    typer.echo("  [2/4] DecomposeStage ...")
    try:
        run = DecomposeStage(config=config).run(prepared=prepared)
        typer.echo(f"        status={run.status} | rows={run.rows_processed}")
    except Exception as exc:
        _report_stage_failure("decompose", exc, failed)

    typer.echo("  [3/4] BacktestStage ...")
    try:
        bt_stage = BacktestStage(config=config)
        run = bt_stage.run(prepared=prepared, series=series or None)
        backtests = bt_stage.backtests
        typer.echo(f"        status={run.status} | records={run.rows_processed}")
    except Exception as exc:
        _report_stage_failure("backtest", exc, failed)

    typer.echo("  [4/4] ForecastStage ...")
    fc_stage = ForecastStage(config=config)
    try:
        run = fc_stage.run(prepared=prepared, series=series or None, backtests=backtests)
        typer.echo(f"        status={run.status} | forecasts={run.rows_processed}")
    except Exception as exc:
        _report_stage_failure("forecast", exc, failed)

    if fc_stage.forecasts:
        forecasts = fc_stage.forecasts
        _echo_backtests(
            {fc.series_name: fc.backtest for fc in forecasts},
            {fc.series_name: fc.selected.slug for fc in forecasts},
        )
        typer.echo(format_forecast_summary([o for fc in forecasts for o in fc.outputs]))

    typer.echo("")
    if failed:
        typer.echo(f"[FAILED] {len(failed)} of 4 stages failed: {', '.join(failed)}", err=True)
        raise typer.Exit(code=1)
    typer.echo("[OK] All stages complete.")


if __name__ == "__main__":
    app()
