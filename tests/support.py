"""
Shared synthetic fixtures for enrichment tests.
Zones are small rectangles (plus one L-shaped, non-convex zone) around real NYC taxi zone locations.
"""

from __future__ import annotations

from typing import Any

import geopandas as gpd
import pandas as pd
from shapely.geometry import Polygon, box

from src.ingestion.load_zone_polygons import ZonePolygonSet, zones_from_geodataframe

MIDTOWN_CENTER = 161
TIMES_SQUARE = 230
JFK_AIRPORT = 132
NEWARK_AIRPORT = 1
GARMENT_DISTRICT = 100

MIDTOWN_POINT = (-73.99, 40.75)
JFK_POINT = (-73.784, 40.644)
NEWARK_POINT = (-74.175, 40.685)
TIMES_SQUARE_POINT = (-73.99, 40.77)
OPEN_WATER_POINT = (-73.50, 40.40)


def zone_geodataframe(crs: str = "EPSG:4326") -> gpd.GeoDataFrame:
    """Taxi-zone-shaped GeoDataFrame in WGS84, optionally projected to `crs`."""

    gdf = gpd.GeoDataFrame(
        {
            "LocationID": [MIDTOWN_CENTER, TIMES_SQUARE, JFK_AIRPORT, NEWARK_AIRPORT, GARMENT_DISTRICT],
            "zone": ["Midtown Center", "Times Sq/Theatre District", "JFK Airport", "Newark Airport", "Garment District"],
            "borough": ["Manhattan", "Manhattan", "Queens", "EWR", "Manhattan"],
            "service_zone": ["Yellow Zone", "Yellow Zone", "Airports", "EWR", "Yellow Zone"],
            "geometry": [
                box(-74.00, 40.74, -73.98, 40.76),
                box(-74.00, 40.76, -73.98, 40.78),
                box(-73.80, 40.63, -73.77, 40.66),
                box(-74.19, 40.67, -74.16, 40.70),
                Polygon(
                    [
                        (-73.97, 40.70),
                        (-73.95, 40.70),
                        (-73.95, 40.71),
                        (-73.96, 40.71),
                        (-73.96, 40.72),
                        (-73.97, 40.72),
                    ]
                ),
            ],
        },
        crs="EPSG:4326",
    )
    if crs != "EPSG:4326":
        gdf = gdf.to_crs(crs)
    return gdf


def zone_polygon_set(crs: str = "EPSG:4326") -> ZonePolygonSet:
    return zones_from_geodataframe(zone_geodataframe(crs))


def raw_trip_row(**overrides: Any) -> dict[str, Any]:
    """One valid trip under 2016 yellow-taxi source column names."""

    row: dict[str, Any] = {
        "VendorID": 2,
        "tpep_pickup_datetime": "2016-01-05 08:00:00",
        "tpep_dropoff_datetime": "2016-01-05 08:20:00",
        "passenger_count": 1,
        "trip_distance": 2.5,
        "pickup_longitude": MIDTOWN_POINT[0],
        "pickup_latitude": MIDTOWN_POINT[1],
        "RatecodeID": 1,
        "store_and_fwd_flag": "N",
        "dropoff_longitude": TIMES_SQUARE_POINT[0],
        "dropoff_latitude": TIMES_SQUARE_POINT[1],
        "payment_type": 1,
        "fare_amount": 12.5,
        "tip_amount": 2.0,
        "total_amount": 15.3,
    }
    row.update(overrides)
    return row


def raw_trip_frame(*rows: dict[str, Any]) -> pd.DataFrame:
    return pd.DataFrame(list(rows) if rows else [raw_trip_row()])
