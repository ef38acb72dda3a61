"""
Top-level package for the taxi trip enrichment pipeline.
Stage code lives in `ingestion`, `features`, `validation` and `spatial`; `pipeline` wires them together.
"""
