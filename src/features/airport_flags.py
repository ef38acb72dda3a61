"""Flag airport trips from rate codes and resolved dropoff zones."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

import pandas as pd

from src.common.stage_summary import StageSummary

LOGGER = logging.getLogger("enrichment")

DEFAULT_AIRPORT_RATE_CODES = frozenset({2, 3})
DEFAULT_AIRPORT_SERVICE_ZONES = frozenset({"Airports", "EWR"})


def is_airport_trip(
    rate_code_id: int | None,
    dropoff_service_zone: str | None,
    *,
    airport_rate_codes: Iterable[int] = DEFAULT_AIRPORT_RATE_CODES,
    airport_service_zones: Iterable[str] = DEFAULT_AIRPORT_SERVICE_ZONES,
) -> bool:
    if rate_code_id is not None and not pd.isna(rate_code_id) and int(rate_code_id) in set(airport_rate_codes):
        return True
    return dropoff_service_zone is not None and dropoff_service_zone in set(airport_service_zones)


def classify_airport_trips(
    trips: pd.DataFrame,
    service_zones: Mapping[int, str],
    *,
    airport_rate_codes: Iterable[int] = DEFAULT_AIRPORT_RATE_CODES,
    airport_service_zones: Iterable[str] = DEFAULT_AIRPORT_SERVICE_ZONES,
) -> tuple[pd.DataFrame, StageSummary]:
    """Add the boolean `airport_trip` column; never drops a record."""

    frame = trips.copy()
    by_rate_code = frame["rate_code_id"].isin(sorted(set(airport_rate_codes)))
    dropoff_service_zone = frame["dropoff_zone"].map(lambda zone_id: service_zones.get(int(zone_id)) if pd.notna(zone_id) else None)
    by_dropoff_zone = dropoff_service_zone.isin(sorted(set(airport_service_zones)))
    frame["airport_trip"] = (by_rate_code | by_dropoff_zone).astype(bool)

    summary = StageSummary(
        stage_name="airport_classification",
        rows_in=len(trips),
        rows_out=len(frame),
        details={
            "airport_trips": int(frame["airport_trip"].sum()),
            "by_rate_code": int(by_rate_code.sum()),
            "by_dropoff_zone": int(by_dropoff_zone.sum()),
        },
    )
    LOGGER.info("airport classification rows=%d airport_trips=%d", summary.rows_in, summary.details["airport_trips"])
    return frame, summary
