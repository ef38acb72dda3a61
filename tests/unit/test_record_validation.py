"""
Unit tests for record validation.
Each case mutates exactly one field of an otherwise valid trip and checks whether the record survives.
"""

from __future__ import annotations

from typing import Any

import pandas as pd
import pytest

from src.common.schema_map import PARSE_FAILED_COLUMN, normalize_trip_dataframe
from src.features.temporal_features import derive_temporal_features
from src.validation import reason_codes
from src.validation.record_checks import ValidationBounds, evaluate_trip_records, validate_trips
from tests.support import raw_trip_frame, raw_trip_row


def _prepared(*rows: dict[str, Any]) -> pd.DataFrame:
    normalized = normalize_trip_dataframe(raw_trip_frame(*rows), season="winter", batch_id="2016-01")
    return derive_temporal_features(normalized)


@pytest.mark.parametrize(
    ("overrides", "expected_reason"),
    [
        ({"passenger_count": 0}, reason_codes.PASSENGER_COUNT_OUT_OF_RANGE),
        ({"passenger_count": 1}, None),
        ({"passenger_count": 7}, None),
        ({"passenger_count": 8}, reason_codes.PASSENGER_COUNT_OUT_OF_RANGE),
        ({"pickup_latitude": 39.0}, reason_codes.PICKUP_COORDINATE_OUT_OF_BOUNDS),
        ({"pickup_latitude": 42.0}, reason_codes.PICKUP_COORDINATE_OUT_OF_BOUNDS),
        ({"pickup_longitude": -76.0}, reason_codes.PICKUP_COORDINATE_OUT_OF_BOUNDS),
        ({"pickup_longitude": 0.0, "pickup_latitude": 0.0}, reason_codes.PICKUP_COORDINATE_OUT_OF_BOUNDS),
        ({"dropoff_longitude": -72.0}, reason_codes.DROPOFF_COORDINATE_OUT_OF_BOUNDS),
        ({"dropoff_latitude": 41.99}, None),
        ({"tip_amount": -0.01}, reason_codes.TIP_AMOUNT_OUT_OF_RANGE),
        ({"tip_amount": 0.0}, None),
        ({"tip_amount": 200.0}, None),
        ({"tip_amount": 200.5}, reason_codes.TIP_AMOUNT_OUT_OF_RANGE),
        ({"total_amount": 0.0}, reason_codes.TOTAL_AMOUNT_OUT_OF_RANGE),
        ({"total_amount": 300.0}, None),
        ({"total_amount": 300.01}, reason_codes.TOTAL_AMOUNT_OUT_OF_RANGE),
        ({"tpep_dropoff_datetime": "2016-01-05 08:00:30"}, reason_codes.TRIP_DURATION_OUT_OF_RANGE),
        ({"tpep_dropoff_datetime": "2016-01-05 08:01:00"}, None),
        ({"tpep_dropoff_datetime": "2016-01-05 20:00:00"}, None),
        ({"tpep_dropoff_datetime": "2016-01-05 20:01:00"}, reason_codes.TRIP_DURATION_OUT_OF_RANGE),
        ({"tpep_dropoff_datetime": "2016-01-05 07:50:00"}, reason_codes.TRIP_DURATION_OUT_OF_RANGE),
        ({"trip_distance": 0.0}, reason_codes.TRIP_DISTANCE_OUT_OF_RANGE),
        ({"trip_distance": 100.0}, None),
        ({"trip_distance": 100.1}, reason_codes.TRIP_DISTANCE_OUT_OF_RANGE),
        ({"payment_type": 2}, None),
        ({"payment_type": 3}, reason_codes.PAYMENT_TYPE_NOT_ALLOWED),
        ({"payment_type": 4}, reason_codes.PAYMENT_TYPE_NOT_ALLOWED),
        ({"tip_amount": None}, reason_codes.MISSING_REQUIRED_FIELD),
        ({"RatecodeID": None}, reason_codes.MISSING_REQUIRED_FIELD),
        ({"tpep_pickup_datetime": "yesterday-ish"}, reason_codes.PARSE_ERROR),
    ],
)
def test_single_field_mutation(overrides: dict[str, Any], expected_reason: str | None) -> None:
    trips = _prepared(raw_trip_row(), raw_trip_row(**overrides))

    outcomes = evaluate_trip_records(trips, ValidationBounds())
    valid, summary = validate_trips(trips, ValidationBounds())

    assert pd.isna(outcomes.iloc[0])
    if expected_reason is None:
        assert pd.isna(outcomes.iloc[1])
        assert len(valid) == 2
    else:
        assert outcomes.iloc[1] == expected_reason
        assert len(valid) == 1
        assert summary.rejected_by_reason == {expected_reason: 1}


def test_first_failing_predicate_is_reported() -> None:
    trips = _prepared(raw_trip_row(passenger_count=0, payment_type=4, tip_amount=-5.0))

    outcomes = evaluate_trip_records(trips, ValidationBounds())

    assert outcomes.iloc[0] == reason_codes.PASSENGER_COUNT_OUT_OF_RANGE


def test_survivors_satisfy_every_bound_and_lose_parse_flag() -> None:
    trips = _prepared(
        raw_trip_row(),
        raw_trip_row(passenger_count=0),
        raw_trip_row(passenger_count=6, tip_amount=10.0, total_amount=80.0, trip_distance=17.2),
        raw_trip_row(total_amount=-3.0),
    )
    bounds = ValidationBounds()

    valid, summary = validate_trips(trips, bounds)

    assert PARSE_FAILED_COLUMN not in valid.columns
    assert summary.rows_in == 4
    assert summary.rows_out == 2
    assert summary.rows_dropped == 2
    assert valid["passenger_count"].between(1, 7).all()
    assert valid["tip_amount"].between(0, 200).all()
    assert valid["total_amount"].between(0, 300, inclusive="right").all()
    assert valid["trip_duration"].between(1, 720).all()
    assert valid["trip_distance"].between(0, 100, inclusive="right").all()
    assert valid["payment_type"].isin([1, 2]).all()


def test_bounds_are_configurable() -> None:
    trips = _prepared(raw_trip_row(passenger_count=6))

    valid, summary = validate_trips(trips, ValidationBounds(passenger_count_max=5))

    assert valid.empty
    assert summary.rejected_by_reason == {reason_codes.PASSENGER_COUNT_OUT_OF_RANGE: 1}


def test_inverted_bounds_are_rejected() -> None:
    with pytest.raises(ValueError, match="trip_distance"):
        ValidationBounds(trip_distance_min=10.0, trip_distance_max=1.0)
