"""
Exploratory analysis of the cleaned readings.

Modules:
  summary       — Descriptive statistics, correlations, load profiles, energy balance.
  decomposition — MSTL decomposition and trend/seasonal strength.
"""
