# This module is the end-to-end entrypoint for the trip enrichment pipeline.
# It runs ingestion, temporal features, validation, zone assignment and airport classification in that fixed order.
# Each stage is a pure transform over the trip table and reports how many records entered and survived.
# Only ingestion and zone-set failures abort a run; per-record problems surface as counts.

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from src.common.logging import configure_logging
from src.common.schema_map import ENRICHED_TRIP_COLUMNS, INTEGER_CODE_COLUMNS
from src.common.settings import get_settings
from src.common.stage_summary import StageSummary
from src.features.airport_flags import classify_airport_trips
from src.features.temporal_features import derive_temporal_features
from src.ingestion.load_trip_batches import BatchReader, ingest_trip_batches
from src.ingestion.load_zone_polygons import ZonePolygonSet
from src.pipeline.enrichment_config import EnrichmentConfig, load_enrichment_config
from src.pipeline.utils import frame_checksum
from src.spatial.geometry_index import ZoneIndex
from src.spatial.zone_assigner import assign_zones
from src.validation.record_checks import validate_trips

LOGGER = logging.getLogger("enrichment")

STEP_ORDER = [
    "ingest",
    "temporal-features",
    "validate",
    "assign-zones",
    "classify",
]


@dataclass(frozen=True)
class EnrichmentResult:
    trips: pd.DataFrame
    stage_summaries: list[StageSummary]
    checksum: str
    completed_step: str

    def summary_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "stage_name": summary.stage_name,
                    "rows_in": summary.rows_in,
                    "rows_out": summary.rows_out,
                    "rows_dropped": summary.rows_dropped,
                }
                for summary in self.stage_summaries
            ]
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "completed_step": self.completed_step,
            "rows": len(self.trips),
            "checksum": self.checksum,
            "stages": [summary.to_dict() for summary in self.stage_summaries],
        }


def build_zone_index(zone_set: ZonePolygonSet, config: EnrichmentConfig) -> ZoneIndex:
    """Reproject the zone set into the trip CRS once and index it."""

    return ZoneIndex(zone_set, target_crs=config.trip_crs)


def finalize_enriched_table(trips: pd.DataFrame) -> pd.DataFrame:
    """Project onto the enriched schema with integer codes as nullable integers."""

    frame = trips[ENRICHED_TRIP_COLUMNS].reset_index(drop=True).copy()
    for column in INTEGER_CODE_COLUMNS + ["pickup_zone", "dropoff_zone", "pickup_hour"]:
        frame[column] = frame[column].astype("Int64")
    frame["airport_trip"] = frame["airport_trip"].astype(bool)
    return frame


def _result(trips: pd.DataFrame, summaries: list[StageSummary], step: str) -> EnrichmentResult:
    frame = trips.reset_index(drop=True)
    return EnrichmentResult(trips=frame, stage_summaries=summaries, checksum=frame_checksum(frame), completed_step=step)


def run_enrichment(
    reader: BatchReader,
    zones: ZoneIndex | ZonePolygonSet,
    *,
    season_batches: Mapping[str, Sequence[str]] | None = None,
    config: EnrichmentConfig | None = None,
    step: str = "classify",
) -> EnrichmentResult:
    """Run every stage up to and including `step` and return the table with per-stage counts."""

    if step not in STEP_ORDER:
        raise ValueError(f"step must be one of {STEP_ORDER}, got {step!r}")

    configure_logging()
    enrichment_config = config or load_enrichment_config(config_path=get_settings().ENRICHMENT_CONFIG_PATH)
    batches = season_batches if season_batches is not None else enrichment_config.season_batches
    LOGGER.info("enrichment started step=%s config=%s", step, enrichment_config.to_dict())

    try:
        index = zones if isinstance(zones, ZoneIndex) else build_zone_index(zones, enrichment_config)
        summaries: list[StageSummary] = []

        trips = ingest_trip_batches(batches, reader, max_workers=enrichment_config.max_workers)
        summaries.append(
            StageSummary(
                stage_name="ingestion",
                rows_in=len(trips),
                rows_out=len(trips),
                details={"batches": sum(len(batch_ids) for batch_ids in batches.values()), "seasons": list(batches)},
            )
        )
        if step == "ingest":
            return _result(trips, summaries, step)

        rows_in = len(trips)
        trips = derive_temporal_features(
            trips,
            day_start_hour=enrichment_config.day_start_hour,
            night_start_hour=enrichment_config.night_start_hour,
        )
        summaries.append(StageSummary(stage_name="temporal_features", rows_in=rows_in, rows_out=len(trips)))
        if step == "temporal-features":
            return _result(trips, summaries, step)

        trips, validation_summary = validate_trips(trips, enrichment_config.bounds)
        summaries.append(validation_summary)
        if step == "validate":
            return _result(trips, summaries, step)

        trips, zone_summary = assign_zones(
            trips,
            index,
            crs=enrichment_config.trip_crs,
            chunk_size=enrichment_config.chunk_size,
            max_workers=enrichment_config.max_workers,
        )
        summaries.append(zone_summary)
        if step == "assign-zones":
            return _result(trips, summaries, step)

        trips, airport_summary = classify_airport_trips(
            trips,
            index.service_zone_map(),
            airport_rate_codes=enrichment_config.airport_rate_codes,
            airport_service_zones=enrichment_config.airport_service_zones,
        )
        summaries.append(airport_summary)

        result = _result(finalize_enriched_table(trips), summaries, step)
    except Exception:
        LOGGER.exception("enrichment run failed step=%s", step)
        raise

    LOGGER.info("enrichment completed rows=%d checksum=%s", len(result.trips), result.checksum)
    return result
