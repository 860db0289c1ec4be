"""
energy_forecaster.reporting — Export and terminal formatting.

Modules:
  formatters — ASCII terminal table formatters for Typer CLI commands.
  export     — CSV/JSON/Parquet flat-file export helpers.
"""
