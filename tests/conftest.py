"""
Shared pytest configuration for the enrichment suites.
Every test runs with pinned process settings and a fresh settings cache.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from src.common.settings import get_settings  # noqa: E402

TEST_ENV = {
    "LOG_LEVEL": "INFO",
    "ENRICHMENT_CONFIG_PATH": "configs/enrichment.yaml",
}
ENRICHMENT_OVERRIDES = [
    "ENRICHMENT_DAY_START_HOUR",
    "ENRICHMENT_NIGHT_START_HOUR",
    "ENRICHMENT_TRIP_CRS",
    "ENRICHMENT_MAX_WORKERS",
    "ENRICHMENT_CHUNK_SIZE",
]


@pytest.fixture(autouse=True)
def enrichment_test_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Pin test settings, drop stray run overrides and reset the settings cache."""

    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ENRICHMENT_OVERRIDES:
        monkeypatch.delenv(key, raising=False)

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
