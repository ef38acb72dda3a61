"""
Process settings loaded from `.env` and the environment.
Run tuning (bounds, hours, CRS, concurrency) lives in the YAML enrichment config; this only names where it is.
Every setting has a default so a run needs no environment to start.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Final

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

LOG_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class Settings(BaseModel):
    """Typed runtime configuration."""

    model_config = ConfigDict(extra="ignore")

    LOG_LEVEL: str = "INFO"
    ENRICHMENT_CONFIG_PATH: str = "configs/enrichment.yaml"

    @field_validator("LOG_LEVEL")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}, got: {value}")
        return level


def load_settings(*, load_env: bool = True) -> Settings:
    """Load and validate settings from `.env` and the process environment; blank values fall back to defaults."""

    if load_env:
        load_dotenv()

    values = {key: value for key, value in os.environ.items() if key in Settings.model_fields and value.strip()}
    try:
        return Settings.model_validate(values)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid environment configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached accessor for application settings."""

    return load_settings()
