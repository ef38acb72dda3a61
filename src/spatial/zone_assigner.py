"""
Assign pickup and dropoff taxi zones to validated trips.
The table is split into row chunks resolved concurrently against one shared read-only `ZoneIndex`.
A trip is kept only when both of its coordinates resolve to a zone.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

import pandas as pd

from src.common.stage_summary import StageSummary, count_reasons
from src.spatial.geometry_index import ZoneIndex
from src.validation import reason_codes

LOGGER = logging.getLogger("spatial")


def _resolve_chunk(chunk: pd.DataFrame, index: ZoneIndex, crs: str | None) -> pd.DataFrame:
    resolved = pd.DataFrame(index=chunk.index)
    resolved["pickup_zone"] = index.resolve(chunk["pickup_longitude"], chunk["pickup_latitude"], crs=crs)
    resolved["dropoff_zone"] = index.resolve(chunk["dropoff_longitude"], chunk["dropoff_latitude"], crs=crs)
    return resolved


def resolve_trip_zones(
    trips: pd.DataFrame,
    index: ZoneIndex,
    *,
    crs: str | None = None,
    chunk_size: int = 250_000,
    max_workers: int = 4,
) -> pd.DataFrame:
    """Return pickup/dropoff zone ids aligned to `trips.index` (missing when unassigned)."""

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if trips.empty:
        return pd.DataFrame(
            {
                "pickup_zone": pd.Series(dtype="Int64"),
                "dropoff_zone": pd.Series(dtype="Int64"),
            },
            index=trips.index,
        )

    chunks = [trips.iloc[start : start + chunk_size] for start in range(0, len(trips), chunk_size)]
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(chunks)))) as pool:
        resolved_chunks = list(pool.map(lambda chunk: _resolve_chunk(chunk, index, crs), chunks))
    return pd.concat(resolved_chunks)


def zone_coverage(zones: pd.DataFrame) -> dict[str, float | int]:
    """Percent of trips whose pickup and dropoff resolved to a zone."""

    total_rows = len(zones)
    if total_rows == 0:
        return {"trip_rows": 0, "pickup_coverage_pct": 0.0, "dropoff_coverage_pct": 0.0}
    return {
        "trip_rows": total_rows,
        "pickup_coverage_pct": round(float(zones["pickup_zone"].notna().mean()) * 100, 2),
        "dropoff_coverage_pct": round(float(zones["dropoff_zone"].notna().mean()) * 100, 2),
    }


def assign_zones(
    trips: pd.DataFrame,
    index: ZoneIndex,
    *,
    crs: str | None = None,
    chunk_size: int = 250_000,
    max_workers: int = 4,
) -> tuple[pd.DataFrame, StageSummary]:
    """Attach zone ids and drop trips with an unresolved pickup or dropoff."""

    zones = resolve_trip_zones(trips, index, crs=crs, chunk_size=chunk_size, max_workers=max_workers)

    unresolved = {
        reason_codes.UNRESOLVED_PICKUP_ZONE: zones["pickup_zone"].isna(),
        reason_codes.UNRESOLVED_DROPOFF_ZONE: zones["dropoff_zone"].isna(),
    }
    outcomes = pd.Series(pd.NA, index=trips.index, dtype="string")
    for reason in reason_codes.SPATIAL_REASON_ORDER:
        outcomes = outcomes.mask(outcomes.isna() & unresolved[reason], reason)

    assigned = trips.copy()
    assigned["pickup_zone"] = zones["pickup_zone"]
    assigned["dropoff_zone"] = zones["dropoff_zone"]
    assigned = assigned.loc[outcomes.isna()].copy()

    summary = StageSummary(
        stage_name="zone_assignment",
        rows_in=len(trips),
        rows_out=len(assigned),
        rejected_by_reason=count_reasons(outcomes),
        details={"index_crs": index.crs, "zone_count": len(index), **zone_coverage(zones)},
    )
    LOGGER.info(
        "zone assignment rows_in=%d rows_out=%d pickup_coverage_pct=%s dropoff_coverage_pct=%s",
        summary.rows_in,
        summary.rows_out,
        summary.details["pickup_coverage_pct"],
        summary.details["dropoff_coverage_pct"],
    )
    return assigned, summary
