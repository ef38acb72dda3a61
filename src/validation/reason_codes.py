"""
Machine-readable reasons a trip record leaves the working set.
A record's outcome is either accepted (no code) or exactly one of these codes.
"""

from __future__ import annotations

PARSE_ERROR = "parse_error"
MISSING_REQUIRED_FIELD = "missing_required_field"
PASSENGER_COUNT_OUT_OF_RANGE = "passenger_count_out_of_range"
PICKUP_COORDINATE_OUT_OF_BOUNDS = "pickup_coordinate_out_of_bounds"
DROPOFF_COORDINATE_OUT_OF_BOUNDS = "dropoff_coordinate_out_of_bounds"
TIP_AMOUNT_OUT_OF_RANGE = "tip_amount_out_of_range"
TOTAL_AMOUNT_OUT_OF_RANGE = "total_amount_out_of_range"
TRIP_DURATION_OUT_OF_RANGE = "trip_duration_out_of_range"
TRIP_DISTANCE_OUT_OF_RANGE = "trip_distance_out_of_range"
PAYMENT_TYPE_NOT_ALLOWED = "payment_type_not_allowed"
UNRESOLVED_PICKUP_ZONE = "unresolved_pickup_zone"
UNRESOLVED_DROPOFF_ZONE = "unresolved_dropoff_zone"

# Validator precedence: a record failing several predicates is reported under the first.
VALIDATION_REASON_ORDER = [
    PARSE_ERROR,
    MISSING_REQUIRED_FIELD,
    PASSENGER_COUNT_OUT_OF_RANGE,
    PICKUP_COORDINATE_OUT_OF_BOUNDS,
    DROPOFF_COORDINATE_OUT_OF_BOUNDS,
    TIP_AMOUNT_OUT_OF_RANGE,
    TOTAL_AMOUNT_OUT_OF_RANGE,
    TRIP_DURATION_OUT_OF_RANGE,
    TRIP_DISTANCE_OUT_OF_RANGE,
    PAYMENT_TYPE_NOT_ALLOWED,
]

# Zone assignment precedence: an unresolved pickup is reported before an unresolved dropoff.
SPATIAL_REASON_ORDER = [
    UNRESOLVED_PICKUP_ZONE,
    UNRESOLVED_DROPOFF_ZONE,
]
