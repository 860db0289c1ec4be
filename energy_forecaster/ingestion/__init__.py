"""
Ingestion layer — spreadsheet loading and grid regularization.

Submodules:
  spreadsheet — Excel/CSV reader with column resolution, numeric coercion
                and regularization onto the source grid
"""
