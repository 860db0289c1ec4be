"""
Final forecast layer.

Modules:
  forecaster — Plan (durations → steps), holdout comparison, selection,
               refit on the full series and forecast.
  intervals  — z·σ prediction intervals from the holdout RMSE.
"""
