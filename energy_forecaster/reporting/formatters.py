"""
ASCII terminal formatters for CLI reporting commands.

All formatters accept report objects / record lists and return plain
multi-line strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

Accuracy table
--------------
``format_accuracy_table()`` lists every candidate that produced holdout
predictions, best first, and marks the selected model with ``*``.
Candidates that failed on a fold are shown after the ranked ones with an
empty rank so it is obvious they were not eligible.
"""

from __future__ import annotations

from collections import defaultdict

from energy_forecaster.backtest.metrics import AccuracyMetrics
from energy_forecaster.features.quality import DataQualityReport
from energy_forecaster.models.forecast import ForecastOutput


def _num(v: float | None, width: int = 10, digits: int = 3) -> str:
    return f"{v:>{width}.{digits}f}" if v is not None else f"{'-':>{width}}"


# ── Quality report ────────────────────────────────────────────────────────────


def format_quality_report(report: DataQualityReport) -> str:
    """Format a ``DataQualityReport`` as an indented text block."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Data Quality ===")
    status = "[OK]" if report.is_clean else "[ISSUES]"
    lines.append(f"  Status:          {status}")
    lines.append(f"  Rows:            {report.total_rows}")
    lines.append(f"  Range:           {report.date_range_start} .. {report.date_range_end}")
    lines.append(f"  Duplicates:      {report.duplicate_timestamps}")
    lines.append(f"  Inserted steps:  {report.inserted_steps}")
    if report.dropped_timestamp_rows:
        lines.append(f"  Bad timestamps:  {report.dropped_timestamp_rows}")

    if report.missingness:
        lines.append("")
        lines.append(f"    {'Series':<14}  {'Missing':>8}  {'Negative':>8}  {'Coerced':>8}")
        lines.append("    " + "-" * 44)
        for col, frac in report.missingness.items():
            flag = "  <- high" if col in report.high_missingness_cols else ""
            lines.append(
                f"    {col:<14}  {frac:>8.1%}  {report.negative_counts.get(col, 0):>8}  "
                f"{report.coerced_nan_counts.get(col, 0):>8}{flag}"
            )

    if report.empty_cols:
        lines.append("")
        lines.append(f"  Empty columns: {', '.join(report.empty_cols)}")
    return "\n".join(lines)


# ── Accuracy table ────────────────────────────────────────────────────────────


def format_accuracy_table(
    metrics_by_model: dict[str, AccuracyMetrics],
    ranking: list[str],
    selected: str | None = None,
    series_name: str = "",
) -> str:
    """Format holdout accuracy per candidate, ranked best first.

    Args:
        metrics_by_model: Candidate name → holdout metrics.
        ranking:          Eligible candidates ordered best → worst.
        selected:         Name of the chosen model (marked with ``*``).
        series_name:      Header label.

    Returns:
        Multi-line string.
    """
    lines: list[str] = []
    lines.append("")
    title = f"=== Holdout Accuracy: {series_name} ===" if series_name else "=== Holdout Accuracy ==="
    lines.append(title)

    if not metrics_by_model:
        lines.append("  (no candidate produced holdout predictions)")
        return "\n".join(lines)

    header = (
        f"    {'Rank':>4}  {'Model':<24}  {'MAE':>10}  {'RMSE':>10}  "
        f"{'MAPE %':>10}  {'MASE':>10}  {'ACF1':>10}"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))

    unranked = [name for name in metrics_by_model if name not in ranking]
    for position, name in enumerate(ranking + unranked, start=1):
        m = metrics_by_model[name]
        rank = str(position) if name in ranking else ""
        marker = "*" if name == selected else " "
        lines.append(
            f"    {rank:>4}  {marker}{name:<23}  {_num(m.mae)}  {_num(m.rmse)}  "
            f"{_num(m.mape, digits=2)}  {_num(m.mase)}  {_num(m.acf1)}"
        )

    if selected:
        lines.append("")
        lines.append(f"  Selected: {selected}")
    return "\n".join(lines)


# ── Forecast summary ──────────────────────────────────────────────────────────


def format_forecast_summary(outputs: list[ForecastOutput]) -> str:
    """Summarise forecasts per series: model, window, daily means and range."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Forecast Summary ===")

    if not outputs:
        lines.append("  (no forecasts produced)")
        return "\n".join(lines)

    by_series: dict[str, list[ForecastOutput]] = defaultdict(list)
    for o in outputs:
        by_series[o.series_name].append(o)

    for series_name, rows in by_series.items():
        rows = sorted(rows, key=lambda o: o.step)
        first, last = rows[0], rows[-1]
        lines.append("")
        lines.append(f"  [{series_name}]  model={first.model_slug}  "
                     f"CI={first.confidence_pct:.0%}")
        lines.append(f"    {first.target_time.isoformat()} .. {last.target_time.isoformat()} "
                     f"({len(rows)} steps)")
        lines.append(f"    {'Day':<12}  {'Mean':>10}  {'Min':>10}  {'Max':>10}  {'Avg width':>10}")
        lines.append("    " + "-" * 58)

        by_day: dict[str, list[ForecastOutput]] = defaultdict(list)
        for o in rows:
            by_day[o.target_time.date().isoformat()].append(o)
        for day, day_rows in by_day.items():
            points = [o.point_forecast for o in day_rows]
            width = sum(o.upper - o.lower for o in day_rows) / len(day_rows)
            lines.append(
                f"    {day:<12}  {_num(sum(points) / len(points))}  "
                f"{_num(min(points))}  {_num(max(points))}  {_num(width)}"
            )
    return "\n".join(lines)
