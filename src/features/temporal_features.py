"""
Derive per-trip temporal features from pickup and dropoff timestamps.
Every feature is a pure function of the record's own timestamps; there is no cross-record state.
Records whose timestamps could not be parsed carry missing features and are rejected by the validator.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import pandas as pd

DAYTIME = "Daytime"
NIGHTTIME = "Nighttime"


def is_daytime_hour(hour: Any, *, day_start_hour: int = 6, night_start_hour: int = 18) -> Any:
    """Daytime covers [day_start_hour, night_start_hour); works on an int or an hour Series."""

    return (hour >= day_start_hour) & (hour < night_start_hour)


def day_night_bucket(hour: int, *, day_start_hour: int = 6, night_start_hour: int = 18) -> str:
    """Return the day/night bucket for an hour of day."""

    daytime = is_daytime_hour(hour, day_start_hour=day_start_hour, night_start_hour=night_start_hour)
    return DAYTIME if daytime else NIGHTTIME


def trip_duration_minutes(pickup: datetime, dropoff: datetime) -> float:
    """Minutes from pickup to dropoff, rounded to one decimal."""

    return round((pd.Timestamp(dropoff) - pd.Timestamp(pickup)).total_seconds() / 60.0, 1)


def derive_temporal_features(
    trips: pd.DataFrame,
    *,
    day_start_hour: int = 6,
    night_start_hour: int = 18,
) -> pd.DataFrame:
    """Add duration, weekday, hour, date and day/night columns to a canonical trip frame."""

    frame = trips.copy()
    pickup = frame["pickup_datetime"]
    dropoff = frame["dropoff_datetime"]

    frame["trip_duration"] = ((dropoff - pickup).dt.total_seconds() / 60.0).round(1)
    frame["pickup_weekday"] = pickup.dt.day_name()
    frame["pickup_hour"] = pickup.dt.hour.astype("Int64")
    frame["pickup_date"] = pickup.dt.normalize()

    hour = frame["pickup_hour"]
    is_daytime = is_daytime_hour(hour, day_start_hour=day_start_hour, night_start_hour=night_start_hour)
    day_night = pd.Series(NIGHTTIME, index=frame.index, dtype="string")
    day_night = day_night.mask(is_daytime.fillna(False), DAYTIME)
    frame["day_night"] = day_night.mask(hour.isna())

    return frame
