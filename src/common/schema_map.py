"""
Schema normalization for NYC TLC trip batches.
It maps the source field names of every yellow-taxi vintage onto one canonical trip schema.
Downstream stages only ever see canonical names; derived columns are listed per stage.
"""

from __future__ import annotations

import re

import numpy as np
import pandas as pd

COLUMN_ALIASES = {
    "tpep_pickup_datetime": "pickup_datetime",
    "lpep_pickup_datetime": "pickup_datetime",
    "pickup_datetime": "pickup_datetime",
    "tpep_dropoff_datetime": "dropoff_datetime",
    "lpep_dropoff_datetime": "dropoff_datetime",
    "dropoff_datetime": "dropoff_datetime",
    "trip_distance": "trip_distance",
    "tip_amount": "tip_amount",
    "total_amount": "total_amount",
    "passenger_count": "passenger_count",
    "payment_type": "payment_type",
    "pickup_longitude": "pickup_longitude",
    "pickup_latitude": "pickup_latitude",
    "dropoff_longitude": "dropoff_longitude",
    "dropoff_latitude": "dropoff_latitude",
    "ratecodeid": "rate_code_id",
    "rate_code_id": "rate_code_id",
    "rate_code": "rate_code_id",
}

TIMESTAMP_COLUMNS = ["pickup_datetime", "dropoff_datetime"]
INTEGER_CODE_COLUMNS = ["passenger_count", "payment_type", "rate_code_id"]
FLOAT_COLUMNS = [
    "trip_distance",
    "tip_amount",
    "total_amount",
    "pickup_longitude",
    "pickup_latitude",
    "dropoff_longitude",
    "dropoff_latitude",
]

CANONICAL_TRIP_COLUMNS = [
    "pickup_datetime",
    "dropoff_datetime",
    "trip_distance",
    "tip_amount",
    "total_amount",
    "passenger_count",
    "payment_type",
    "pickup_longitude",
    "pickup_latitude",
    "dropoff_longitude",
    "dropoff_latitude",
    "rate_code_id",
]

PROVENANCE_COLUMNS = ["season", "batch_id", "source_row_number"]

# Set by normalization, consumed and removed by the validator.
PARSE_FAILED_COLUMN = "record_parse_failed"

TEMPORAL_FEATURE_COLUMNS = [
    "trip_duration",
    "pickup_weekday",
    "pickup_hour",
    "pickup_date",
    "day_night",
]
ZONE_COLUMNS = ["pickup_zone", "dropoff_zone"]
CLASSIFICATION_COLUMNS = ["airport_trip"]

# TLC timestamps are NYC wall-clock times.
TRIP_LOCAL_TIMEZONE = "America/New_York"
_UTC_OFFSET_SUFFIX = re.compile(r"(?:Z|[+-]\d{2}:?\d{2})$")

ENRICHED_TRIP_COLUMNS = (
    PROVENANCE_COLUMNS
    + CANONICAL_TRIP_COLUMNS
    + TEMPORAL_FEATURE_COLUMNS
    + ZONE_COLUMNS
    + CLASSIFICATION_COLUMNS
)


def _to_snake_case(value: str) -> str:
    normalized = re.sub(r"[^a-zA-Z0-9]+", "_", value.strip()).strip("_")
    return normalized.lower()


def canonical_column_names(columns: pd.Index | list[str]) -> dict[str, str]:
    """Return the source -> canonical rename map for a batch's columns."""

    return {column: COLUMN_ALIASES.get(_to_snake_case(column), _to_snake_case(column)) for column in columns}


def _carries_utc_offset(value: object) -> bool:
    if isinstance(value, str):
        return bool(_UTC_OFFSET_SUFFIX.search(value.strip()))
    return getattr(value, "tzinfo", None) is not None


def parse_trip_timestamps(raw: pd.Series) -> pd.Series:
    """Parse timestamps to naive local wall-clock time; unparsable values become NaT.

    Values carrying a UTC offset are converted to the local timezone before the
    offset is dropped, so a batch spanning a daylight-saving change (mixed
    ``-05:00`` and ``-04:00`` offsets) parses cleanly. Naive values are kept as recorded.
    """

    if isinstance(raw.dtype, pd.DatetimeTZDtype):
        return raw.dt.tz_convert(TRIP_LOCAL_TIMEZONE).dt.tz_localize(None)
    if pd.api.types.is_datetime64_dtype(raw.dtype):
        return raw

    with_offset = raw.map(_carries_utc_offset).astype(bool)
    parsed = pd.Series(pd.NaT, index=raw.index, dtype="datetime64[ns]")
    if (~with_offset).any():
        parsed.loc[~with_offset] = pd.to_datetime(raw[~with_offset], errors="coerce", format="mixed")
    if with_offset.any():
        aware = pd.to_datetime(raw[with_offset], errors="coerce", format="mixed", utc=True)
        parsed.loc[with_offset] = aware.dt.tz_convert(TRIP_LOCAL_TIMEZONE).dt.tz_localize(None)
    return parsed


def missing_required_fields(columns: pd.Index | list[str]) -> list[str]:
    """List canonical fields a batch cannot supply under any known alias."""

    available = set(canonical_column_names(columns).values())
    return [column for column in CANONICAL_TRIP_COLUMNS if column not in available]


def normalize_trip_dataframe(df: pd.DataFrame, *, season: str, batch_id: str) -> pd.DataFrame:
    """Project a raw batch onto the canonical schema and tag its provenance.

    Unparsable timestamps and numerics are coerced to missing and flagged in
    ``record_parse_failed`` so the validator can reject them as parse errors
    instead of treating them as absent values.
    """

    renamed = df.rename(columns=canonical_column_names(df.columns))
    renamed = renamed.loc[:, ~renamed.columns.duplicated()]
    normalized = renamed[CANONICAL_TRIP_COLUMNS].copy().reset_index(drop=True)

    parse_failed = pd.Series(False, index=normalized.index)

    for column in TIMESTAMP_COLUMNS:
        raw = normalized[column]
        parsed = parse_trip_timestamps(raw)
        parse_failed |= raw.notna() & parsed.isna()
        normalized[column] = parsed

    for column in FLOAT_COLUMNS:
        raw = normalized[column]
        parsed = pd.to_numeric(raw, errors="coerce").astype("float64")
        parse_failed |= raw.notna() & parsed.isna()
        normalized[column] = parsed

    for column in INTEGER_CODE_COLUMNS:
        raw = normalized[column]
        parsed = pd.to_numeric(raw, errors="coerce").astype("float64")
        non_integral = parsed.notna() & (np.floor(parsed) != parsed)
        parse_failed |= (raw.notna() & parsed.isna()) | non_integral
        normalized[column] = parsed.mask(non_integral)

    normalized.insert(0, "season", season)
    normalized.insert(1, "batch_id", batch_id)
    normalized.insert(2, "source_row_number", pd.Series(range(1, len(normalized) + 1), dtype="int64"))
    normalized[PARSE_FAILED_COLUMN] = parse_failed

    return normalized
