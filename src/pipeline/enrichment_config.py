# This file defines run configuration for the trip enrichment pipeline.
# It exists so bounds, hour boundaries, CRS choices and season batches are tuned in one place, not in stage code.
# The loader merges YAML defaults with environment overrides and validates the result.

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from src.features.airport_flags import DEFAULT_AIRPORT_RATE_CODES, DEFAULT_AIRPORT_SERVICE_ZONES
from src.validation.record_checks import ValidationBounds

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = "configs/enrichment.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config at {path} must be a mapping, got: {type(loaded).__name__}")
    return dict(loaded)


def _env_str(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value


def _env_int(name: str, default: int | None = None) -> int | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return int(value)


def _resolve_path(config_path: str | Path) -> Path:
    path = Path(config_path)
    if path.is_absolute() or path.exists():
        return path
    return PROJECT_ROOT / path


def _as_season_batches(value: Any) -> dict[str, list[str]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("season_batches must be a mapping of season -> list of batch ids")
    mapped: dict[str, list[str]] = {}
    for season, batch_ids in value.items():
        if isinstance(batch_ids, (str, int)):
            batch_ids = [batch_ids]
        mapped[str(season)] = [str(batch_id) for batch_id in list(batch_ids or [])]
    return mapped


def _bounds_from_mapping(value: Any) -> ValidationBounds:
    if value is None:
        return ValidationBounds()
    if not isinstance(value, dict):
        raise ValueError("validation_bounds must be a mapping")

    def _pair(key: str, default: tuple[float, float]) -> tuple[float, float]:
        raw = value.get(key)
        if raw is None:
            return default
        if not isinstance(raw, (list, tuple)) or len(raw) != 2:
            raise ValueError(f"validation_bounds.{key} must be a [min, max] pair")
        return float(raw[0]), float(raw[1])

    defaults = ValidationBounds()
    passenger = _pair("passenger_count", (defaults.passenger_count_min, defaults.passenger_count_max))
    latitude = _pair("latitude", (defaults.latitude_min, defaults.latitude_max))
    longitude = _pair("longitude", (defaults.longitude_min, defaults.longitude_max))
    tip = _pair("tip_amount", (defaults.tip_amount_min, defaults.tip_amount_max))
    total = _pair("total_amount", (defaults.total_amount_min, defaults.total_amount_max))
    duration = _pair("trip_duration", (defaults.trip_duration_min, defaults.trip_duration_max))
    distance = _pair("trip_distance", (defaults.trip_distance_min, defaults.trip_distance_max))
    payment_types = value.get("allowed_payment_types", sorted(defaults.allowed_payment_types))

    return ValidationBounds(
        passenger_count_min=int(passenger[0]),
        passenger_count_max=int(passenger[1]),
        latitude_min=latitude[0],
        latitude_max=latitude[1],
        longitude_min=longitude[0],
        longitude_max=longitude[1],
        tip_amount_min=tip[0],
        tip_amount_max=tip[1],
        total_amount_min=total[0],
        total_amount_max=total[1],
        trip_duration_min=duration[0],
        trip_duration_max=duration[1],
        trip_distance_min=distance[0],
        trip_distance_max=distance[1],
        allowed_payment_types=frozenset(int(code) for code in payment_types),
    )


@dataclass(frozen=True)
class EnrichmentConfig:
    season_batches: dict[str, list[str]] = field(default_factory=dict)
    day_start_hour: int = 6
    night_start_hour: int = 18
    trip_crs: str = "EPSG:4326"
    airport_rate_codes: frozenset[int] = DEFAULT_AIRPORT_RATE_CODES
    airport_service_zones: frozenset[str] = DEFAULT_AIRPORT_SERVICE_ZONES
    max_workers: int = 4
    chunk_size: int = 250_000
    bounds: ValidationBounds = field(default_factory=ValidationBounds)

    def __post_init__(self) -> None:
        for name, hour in (("day_start_hour", self.day_start_hour), ("night_start_hour", self.night_start_hour)):
            if not 0 <= hour <= 24:
                raise ValueError(f"{name} must be within [0, 24], got: {hour}")
        if self.day_start_hour >= self.night_start_hour:
            raise ValueError("day_start_hour must be earlier than night_start_hour")
        if self.max_workers <= 0:
            raise ValueError(f"max_workers must be positive, got: {self.max_workers}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got: {self.chunk_size}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_batches": {season: list(batch_ids) for season, batch_ids in self.season_batches.items()},
            "day_start_hour": self.day_start_hour,
            "night_start_hour": self.night_start_hour,
            "trip_crs": self.trip_crs,
            "airport_rate_codes": sorted(self.airport_rate_codes),
            "airport_service_zones": sorted(self.airport_service_zones),
            "max_workers": self.max_workers,
            "chunk_size": self.chunk_size,
            "bounds": self.bounds.to_dict(),
        }


def load_enrichment_config(*, config_path: str | Path = DEFAULT_CONFIG_PATH) -> EnrichmentConfig:
    cfg = _load_yaml(_resolve_path(config_path))
    day_night_cfg = dict(cfg.get("day_night", {}) or {})
    airport_cfg = dict(cfg.get("airport", {}) or {})

    defaults = EnrichmentConfig()
    day_start_hour = int(_env_int("ENRICHMENT_DAY_START_HOUR", int(day_night_cfg.get("day_start_hour", defaults.day_start_hour))))
    night_start_hour = int(
        _env_int("ENRICHMENT_NIGHT_START_HOUR", int(day_night_cfg.get("night_start_hour", defaults.night_start_hour)))
    )
    trip_crs = str(_env_str("ENRICHMENT_TRIP_CRS", str(cfg.get("trip_crs", defaults.trip_crs))))
    max_workers = int(_env_int("ENRICHMENT_MAX_WORKERS", int(cfg.get("max_workers", defaults.max_workers))))
    chunk_size = int(_env_int("ENRICHMENT_CHUNK_SIZE", int(cfg.get("chunk_size", defaults.chunk_size))))

    airport_rate_codes = frozenset(int(code) for code in airport_cfg.get("rate_codes", sorted(defaults.airport_rate_codes)))
    airport_service_zones = frozenset(
        str(zone) for zone in airport_cfg.get("service_zones", sorted(defaults.airport_service_zones))
    )

    return EnrichmentConfig(
        season_batches=_as_season_batches(cfg.get("season_batches")),
        day_start_hour=day_start_hour,
        night_start_hour=night_start_hour,
        trip_crs=trip_crs,
        airport_rate_codes=airport_rate_codes,
        airport_service_zones=airport_service_zones,
        max_workers=max_workers,
        chunk_size=chunk_size,
        bounds=_bounds_from_mapping(cfg.get("validation_bounds")),
    )
