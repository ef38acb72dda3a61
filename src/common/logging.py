"""
Process-wide logging setup for enrichment runs.
Stage modules log through named loggers (`ingestion`, `spatial`, `validation`, `enrichment`).
The level comes from `LOG_LEVEL` unless a run overrides it.
"""

from __future__ import annotations

import logging

from src.common.settings import get_settings

PIPELINE_LOGGERS = ["ingestion", "spatial", "validation", "enrichment"]
# Geometry readers log per-file driver details at INFO.
QUIET_LIBRARY_LOGGERS = ["pyogrio", "fiona", "pyproj"]

_LOGGING_CONFIGURED = False


def configure_logging(level: str | None = None) -> None:
    """Attach one stream handler and set pipeline logger levels; repeated calls only adjust levels."""

    global _LOGGING_CONFIGURED

    level_name = (level or get_settings().LOG_LEVEL).upper()
    resolved_level = getattr(logging, level_name, logging.INFO)

    if not _LOGGING_CONFIGURED:
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        )
        for name in QUIET_LIBRARY_LOGGERS:
            logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))
        _LOGGING_CONFIGURED = True

    for name in PIPELINE_LOGGERS:
        logging.getLogger(name).setLevel(resolved_level)
