"""Reading preparation package for the energy forecaster.

Modules
-------
quality    — DataQualityReport for the regularized readings
cleaning   — IQR outlier removal and gap filling
aggregate  — Resampling of 5-minute readings onto the analysis grid
"""
