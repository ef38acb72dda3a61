"""
Package marker for trip batch and zone polygon ingestion in `src.ingestion`.
It groups related modules under a stable import path and keeps package boundaries explicit.
"""
