"""
Prediction intervals for the final forecast.

The interval is symmetric around the point forecast:

    half_width = z · σ

where ``z`` is the two-sided normal quantile for ``confidence_pct`` and
``σ`` is the RMSE the selected model achieved on the holdout window(s).
That RMSE is an out-of-sample error estimate at exactly the lead times
being forecast, which in-sample residuals would understate.

Uncertainty note
----------------
These intervals are HEURISTIC. They assume roughly normal, homoscedastic
errors and a constant width across the horizon; in reality errors grow with
lead time and are larger around demand peaks.
"""

from __future__ import annotations

from statistics import NormalDist

# z-score for 80% CI two-sided: P(|Z| <= 1.28) ≈ 0.80
_Z_LOOKUP: dict[float, float] = {
    0.50: 0.674,
    0.80: 1.280,
    0.90: 1.645,
    0.95: 1.960,
    0.99: 2.576,
}

# Fallback half-width when no holdout RMSE is available (20% of |point|)
_DEFAULT_UNCERTAINTY_FRAC = 0.20


def z_score(confidence_pct: float) -> float:
    """Two-sided normal quantile for a coverage level in (0, 1)."""
    if not 0.0 < confidence_pct < 1.0:
        raise ValueError(f"confidence_pct must be in (0, 1), got {confidence_pct}")
    z = _Z_LOOKUP.get(round(confidence_pct, 4))
    if z is None:
        z = NormalDist().inv_cdf(0.5 + confidence_pct / 2.0)
    return z


def compute_prediction_interval(
    point: float,
    sigma: float | None,
    confidence_pct: float = 0.80,
    non_negative: bool = False,
) -> tuple[float, float]:
    """Compute the interval ``(lower, upper)`` around one point forecast.

    Args:
        point:          Point forecast.
        sigma:          Holdout RMSE of the model. None or non-positive values
                        fall back to 20% of ``|point|``.
        confidence_pct: Target coverage (default 0.80 = 80% two-sided).
        non_negative:   Clip the lower bound at 0 (Demand, Solar, ...).
    """
    if sigma is not None and sigma > 0:
        half = z_score(confidence_pct) * sigma
    else:
        half = _DEFAULT_UNCERTAINTY_FRAC * abs(point)

    lower = point - half
    upper = point + half
    if non_negative:
        lower = max(0.0, lower)
    return lower, upper
