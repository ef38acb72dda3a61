"""
Record-level data quality predicates for trip records.
A record survives only if it satisfies every predicate; failing records are dropped, never repaired.
Out-of-bounds values are the expected rejection path, so they are counted rather than raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pandas as pd

from src.common.schema_map import CANONICAL_TRIP_COLUMNS, PARSE_FAILED_COLUMN
from src.common.stage_summary import StageSummary, count_reasons
from src.validation import reason_codes

LOGGER = logging.getLogger("validation")


@dataclass(frozen=True)
class ValidationBounds:
    """Inclusion bounds; the comment on each pair gives the interval shape."""

    passenger_count_min: int = 1  # [min, max]
    passenger_count_max: int = 7
    latitude_min: float = 39.0  # (min, max)
    latitude_max: float = 42.0
    longitude_min: float = -76.0  # (min, max)
    longitude_max: float = -72.0
    tip_amount_min: float = 0.0  # [min, max]
    tip_amount_max: float = 200.0
    total_amount_min: float = 0.0  # (min, max]
    total_amount_max: float = 300.0
    trip_duration_min: float = 1.0  # [min, max]
    trip_duration_max: float = 720.0
    trip_distance_min: float = 0.0  # (min, max]
    trip_distance_max: float = 100.0
    allowed_payment_types: frozenset[int] = frozenset({1, 2})

    def __post_init__(self) -> None:
        pairs = [
            ("passenger_count", self.passenger_count_min, self.passenger_count_max),
            ("latitude", self.latitude_min, self.latitude_max),
            ("longitude", self.longitude_min, self.longitude_max),
            ("tip_amount", self.tip_amount_min, self.tip_amount_max),
            ("total_amount", self.total_amount_min, self.total_amount_max),
            ("trip_duration", self.trip_duration_min, self.trip_duration_max),
            ("trip_distance", self.trip_distance_min, self.trip_distance_max),
        ]
        for name, lower, upper in pairs:
            if lower > upper:
                raise ValueError(f"{name} lower bound {lower} exceeds upper bound {upper}")
        if not self.allowed_payment_types:
            raise ValueError("allowed_payment_types must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "passenger_count": [self.passenger_count_min, self.passenger_count_max],
            "latitude": [self.latitude_min, self.latitude_max],
            "longitude": [self.longitude_min, self.longitude_max],
            "tip_amount": [self.tip_amount_min, self.tip_amount_max],
            "total_amount": [self.total_amount_min, self.total_amount_max],
            "trip_duration": [self.trip_duration_min, self.trip_duration_max],
            "trip_distance": [self.trip_distance_min, self.trip_distance_max],
            "allowed_payment_types": sorted(self.allowed_payment_types),
        }


def _coordinate_out_of_bounds(latitude: pd.Series, longitude: pd.Series, bounds: ValidationBounds) -> pd.Series:
    inside = (
        (latitude > bounds.latitude_min)
        & (latitude < bounds.latitude_max)
        & (longitude > bounds.longitude_min)
        & (longitude < bounds.longitude_max)
    )
    return ~inside


def rejection_masks(trips: pd.DataFrame, bounds: ValidationBounds) -> dict[str, pd.Series]:
    """Return one failure mask per predicate, keyed by reason code."""

    required = CANONICAL_TRIP_COLUMNS + ["trip_duration"]
    if PARSE_FAILED_COLUMN in trips.columns:
        parse_failed = trips[PARSE_FAILED_COLUMN].fillna(False).astype(bool)
    else:
        parse_failed = pd.Series(False, index=trips.index)

    passenger_count = trips["passenger_count"]
    tip_amount = trips["tip_amount"]
    total_amount = trips["total_amount"]
    trip_duration = trips["trip_duration"]
    trip_distance = trips["trip_distance"]

    return {
        reason_codes.PARSE_ERROR: parse_failed,
        reason_codes.MISSING_REQUIRED_FIELD: trips[required].isna().any(axis=1),
        reason_codes.PASSENGER_COUNT_OUT_OF_RANGE: ~passenger_count.between(
            bounds.passenger_count_min, bounds.passenger_count_max, inclusive="both"
        ),
        reason_codes.PICKUP_COORDINATE_OUT_OF_BOUNDS: _coordinate_out_of_bounds(
            trips["pickup_latitude"], trips["pickup_longitude"], bounds
        ),
        reason_codes.DROPOFF_COORDINATE_OUT_OF_BOUNDS: _coordinate_out_of_bounds(
            trips["dropoff_latitude"], trips["dropoff_longitude"], bounds
        ),
        reason_codes.TIP_AMOUNT_OUT_OF_RANGE: ~tip_amount.between(
            bounds.tip_amount_min, bounds.tip_amount_max, inclusive="both"
        ),
        reason_codes.TOTAL_AMOUNT_OUT_OF_RANGE: ~total_amount.between(
            bounds.total_amount_min, bounds.total_amount_max, inclusive="right"
        ),
        reason_codes.TRIP_DURATION_OUT_OF_RANGE: ~trip_duration.between(
            bounds.trip_duration_min, bounds.trip_duration_max, inclusive="both"
        ),
        reason_codes.TRIP_DISTANCE_OUT_OF_RANGE: ~trip_distance.between(
            bounds.trip_distance_min, bounds.trip_distance_max, inclusive="right"
        ),
        reason_codes.PAYMENT_TYPE_NOT_ALLOWED: ~trips["payment_type"].isin(sorted(bounds.allowed_payment_types)),
    }


def evaluate_trip_records(trips: pd.DataFrame, bounds: ValidationBounds) -> pd.Series:
    """Return each record's outcome: missing when accepted, else its first failing reason code."""

    masks = rejection_masks(trips, bounds)
    outcomes = pd.Series(pd.NA, index=trips.index, dtype="string")
    for reason in reason_codes.VALIDATION_REASON_ORDER:
        failed = masks[reason].fillna(True).astype(bool)
        outcomes = outcomes.mask(outcomes.isna() & failed, reason)
    return outcomes


def validate_trips(trips: pd.DataFrame, bounds: ValidationBounds) -> tuple[pd.DataFrame, StageSummary]:
    """Keep records passing every predicate and report rejection counts by reason."""

    outcomes = evaluate_trip_records(trips, bounds)
    accepted = outcomes.isna()
    valid = trips.loc[accepted].drop(columns=[PARSE_FAILED_COLUMN], errors="ignore").copy()

    summary = StageSummary(
        stage_name="validation",
        rows_in=len(trips),
        rows_out=len(valid),
        rejected_by_reason=count_reasons(outcomes),
        details={"bounds": bounds.to_dict()},
    )
    LOGGER.info(
        "validation rows_in=%d rows_out=%d rejected=%s",
        summary.rows_in,
        summary.rows_out,
        summary.rejected_by_reason,
    )
    return valid, summary
