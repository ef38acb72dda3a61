"""
Unit tests for the zone geometry index.
It asserts expected behavior and guards against regressions in the corresponding component.
These tests are executed by `pytest` locally and in CI and should remain deterministic.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from pyproj import Transformer
from shapely.geometry import box

from src.ingestion.load_zone_polygons import ZoneGeometryError, ZonePolygon, ZonePolygonSet
from src.spatial.geometry_index import ZoneIndex
from tests.support import (
    GARMENT_DISTRICT,
    JFK_AIRPORT,
    JFK_POINT,
    MIDTOWN_CENTER,
    MIDTOWN_POINT,
    NEWARK_AIRPORT,
    NEWARK_POINT,
    OPEN_WATER_POINT,
    TIMES_SQUARE,
    TIMES_SQUARE_POINT,
    zone_polygon_set,
)


def test_point_inside_single_polygon_resolves_to_its_zone() -> None:
    index = ZoneIndex(zone_polygon_set())

    assert index.resolve_point(*MIDTOWN_POINT) == MIDTOWN_CENTER
    assert index.resolve_point(*TIMES_SQUARE_POINT) == TIMES_SQUARE
    assert index.resolve_point(*JFK_POINT) == JFK_AIRPORT
    assert index.resolve_point(*NEWARK_POINT) == NEWARK_AIRPORT


def test_point_outside_all_polygons_is_unassigned() -> None:
    index = ZoneIndex(zone_polygon_set())

    assert index.resolve_point(*OPEN_WATER_POINT) is None


def test_non_convex_zone_uses_exact_containment_not_bounding_box() -> None:
    index = ZoneIndex(zone_polygon_set())

    assert index.resolve_point(-73.965, 40.715) == GARMENT_DISTRICT
    # Inside the L-shape's bounding box but in its notch.
    assert index.resolve_point(-73.955, 40.715) is None


def test_shared_boundary_resolves_to_lowest_zone_id() -> None:
    index = ZoneIndex(zone_polygon_set())

    assert index.resolve_point(-73.99, 40.76) == MIDTOWN_CENTER


def test_overlapping_polygons_tie_break_by_lowest_zone_id() -> None:
    zone_set = ZonePolygonSet(
        zones=(
            ZonePolygon(20, "Outer", "Queens", "Boro Zone", box(-73.9, 40.7, -73.7, 40.9)),
            ZonePolygon(7, "Inner", "Queens", "Boro Zone", box(-73.85, 40.75, -73.75, 40.85)),
        ),
        crs="EPSG:4326",
    )

    index = ZoneIndex(zone_set)

    assert index.resolve_point(-73.8, 40.8) == 7
    assert index.resolve_point(-73.88, 40.72) == 20


def test_resolution_is_stable_across_index_rebuilds_and_input_order() -> None:
    longitudes = np.array([MIDTOWN_POINT[0], OPEN_WATER_POINT[0], JFK_POINT[0], TIMES_SQUARE_POINT[0]])
    latitudes = np.array([MIDTOWN_POINT[1], OPEN_WATER_POINT[1], JFK_POINT[1], TIMES_SQUARE_POINT[1]])

    first = ZoneIndex(zone_polygon_set()).resolve(longitudes, latitudes)
    second = ZoneIndex(zone_polygon_set()).resolve(longitudes, latitudes)
    reversed_result = ZoneIndex(zone_polygon_set()).resolve(longitudes[::-1], latitudes[::-1])

    assert first.tolist() == second.tolist()
    assert first.tolist() == reversed_result[::-1].tolist()
    assert first.tolist() == [MIDTOWN_CENTER, pd.NA, JFK_AIRPORT, TIMES_SQUARE]


def test_polygons_in_native_state_plane_crs_are_reprojected_once() -> None:
    projected_set = zone_polygon_set(crs="EPSG:2263")
    assert projected_set.crs == "EPSG:2263"

    index = ZoneIndex(projected_set, target_crs="EPSG:4326")

    assert index.crs == "EPSG:4326"
    assert index.resolve_point(*MIDTOWN_POINT) == MIDTOWN_CENTER
    assert index.resolve_point(*JFK_POINT) == JFK_AIRPORT
    assert index.resolve_point(*OPEN_WATER_POINT) is None


def test_points_can_be_supplied_in_another_crs() -> None:
    index = ZoneIndex(zone_polygon_set())
    x, y = Transformer.from_crs("EPSG:4326", "EPSG:2263", always_xy=True).transform(*MIDTOWN_POINT)

    assert index.resolve_point(x, y, crs="EPSG:2263") == MIDTOWN_CENTER


def test_non_finite_coordinates_never_resolve() -> None:
    index = ZoneIndex(zone_polygon_set())

    resolved = index.resolve([np.nan, MIDTOWN_POINT[0], np.inf], [MIDTOWN_POINT[1], MIDTOWN_POINT[1], 40.0])

    assert resolved.tolist() == [pd.NA, MIDTOWN_CENTER, pd.NA]


def test_duplicate_zone_ids_are_rejected() -> None:
    zone_set = ZonePolygonSet(
        zones=(
            ZonePolygon(5, "A", "Queens", "Boro Zone", box(0, 0, 1, 1)),
            ZonePolygon(5, "B", "Queens", "Boro Zone", box(2, 2, 3, 3)),
        ),
        crs="EPSG:4326",
    )

    with pytest.raises(ZoneGeometryError, match="unique"):
        ZoneIndex(zone_set)


def test_empty_zone_set_is_rejected() -> None:
    with pytest.raises(ZoneGeometryError):
        ZoneIndex(ZonePolygonSet(zones=(), crs="EPSG:4326"))


def test_service_zone_lookup_is_keyed_by_zone_id() -> None:
    index = ZoneIndex(zone_polygon_set())

    service_zones = index.service_zone_map()

    assert service_zones[JFK_AIRPORT] == "Airports"
    assert service_zones[NEWARK_AIRPORT] == "EWR"
    assert service_zones[MIDTOWN_CENTER] == "Yellow Zone"
    assert index.zone_ids == tuple(sorted(index.zone_ids))


def test_zone_frame_is_a_copy_of_zone_attributes() -> None:
    index = ZoneIndex(zone_polygon_set())

    frame = index.zone_frame()
    frame.loc[:, "service_zone"] = "changed"

    assert list(index.zone_frame().columns) == ["zone_id", "zone_name", "borough", "service_zone"]
    assert index.service_zone_map()[JFK_AIRPORT] == "Airports"
