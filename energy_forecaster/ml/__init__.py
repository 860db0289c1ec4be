"""
ML forecasting layer — LightGBM direct multi-step forecasting.

Modules
-------
feature_builder : Lag (>= horizon), rolling and calendar features for one
                  series; shared by training and prediction.
lgbm_model      : LightGBMForecaster class (fit, predict) following the
                  candidate interface of backtest.models.
"""
