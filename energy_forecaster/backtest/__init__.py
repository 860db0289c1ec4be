"""
Holdout backtesting framework for energy series forecasting.

Modules
-------
splits       Holdout (rolling-origin) fold generation.
models       Baseline candidates and the candidate registry.
stat_models  statsmodels candidates (Holt-Winters, STL+ETS, MSTL+ARIMA, Fourier ARIMA).
metrics      ME, MAE, RMSE, MPE, MAPE, MASE, ACF1 and supporting types.
evaluator    Fits every candidate on every fold and isolates failures.
selection    Ranks candidates and picks the best one.
slices       Slice aggregate metrics by model, fold and lead time.
reporter     Write CSV summaries and the JSON manifest.
"""
