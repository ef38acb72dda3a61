"""
Spatial index over taxi zone polygons.
Polygons are reprojected once into the trip coordinate system and loaded into an STR-packed R-tree.
Lookups filter candidates by bounding box through the tree, then confirm with an exact containment test.
After construction the index is read-only and safe to share across worker threads.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd
import shapely
from pyproj import CRS, Transformer
from shapely import STRtree

from src.ingestion.load_zone_polygons import ZoneGeometryError, ZonePolygonSet

LOGGER = logging.getLogger("spatial")


def _same_crs(left: str, right: str) -> bool:
    return CRS.from_user_input(left) == CRS.from_user_input(right)


def reproject_geometries(geometries: np.ndarray, source_crs: str, target_crs: str) -> np.ndarray:
    """Reproject an array of shapely geometries; a no-op when both CRS are equal."""

    if _same_crs(source_crs, target_crs):
        return geometries

    transformer = Transformer.from_crs(source_crs, target_crs, always_xy=True)

    def _project(coords: np.ndarray) -> np.ndarray:
        x, y = transformer.transform(coords[:, 0], coords[:, 1])
        return np.column_stack([x, y])

    return shapely.transform(geometries, _project)


class ZoneIndex:
    """Zone polygons keyed by zone id, indexed for point-in-polygon lookups."""

    def __init__(self, zone_set: ZonePolygonSet, *, target_crs: str = "EPSG:4326") -> None:
        if len(zone_set) == 0:
            raise ZoneGeometryError("Cannot build a zone index over an empty polygon set")

        zone_ids = [zone.zone_id for zone in zone_set.zones]
        if len(set(zone_ids)) != len(zone_ids):
            duplicated = sorted({zone_id for zone_id in zone_ids if zone_ids.count(zone_id) > 1})
            raise ZoneGeometryError(f"Zone ids must be unique, duplicated: {duplicated}")

        # Tree positions follow ascending zone id, so the lowest position wins ties.
        order = np.argsort(np.asarray(zone_ids, dtype=np.int64), kind="stable")
        zones = [zone_set.zones[position] for position in order]

        geometries = np.asarray([zone.geometry for zone in zones], dtype=object)
        geometries = reproject_geometries(geometries, zone_set.crs, target_crs)

        invalid_count = int((~shapely.is_valid(geometries)).sum())
        if invalid_count:
            LOGGER.warning("zone index contains invalid polygons count=%d", invalid_count)

        shapely.prepare(geometries)
        self._geometries = geometries
        self._zone_ids = np.asarray([zone.zone_id for zone in zones], dtype=np.int64)
        self._attributes = zone_set.attribute_frame().sort_values("zone_id").reset_index(drop=True)
        self._tree = STRtree(geometries)
        self.source_crs = zone_set.crs
        self.crs = target_crs

        LOGGER.info(
            "zone index built zones=%d source_crs=%s target_crs=%s",
            len(self._zone_ids),
            self.source_crs,
            self.crs,
        )

    def __len__(self) -> int:
        return len(self._zone_ids)

    @property
    def zone_ids(self) -> tuple[int, ...]:
        return tuple(int(zone_id) for zone_id in self._zone_ids)

    def zone_frame(self) -> pd.DataFrame:
        """Zone attributes (id, name, borough, service zone) for downstream joins."""

        return self._attributes.copy()

    def service_zone_map(self) -> dict[int, str]:
        return {
            int(zone_id): str(service_zone)
            for zone_id, service_zone in zip(self._attributes["zone_id"], self._attributes["service_zone"])
        }

    def resolve(
        self,
        longitudes: Sequence[float] | np.ndarray | pd.Series,
        latitudes: Sequence[float] | np.ndarray | pd.Series,
        *,
        crs: str | None = None,
    ) -> pd.arrays.IntegerArray:
        """Resolve coordinates to zone ids; missing where no polygon covers the point.

        Points on a shared boundary, or inside overlapping polygons, resolve to the
        lowest matching zone id. Non-finite coordinates never resolve.
        """

        x = np.asarray(longitudes, dtype="float64")
        y = np.asarray(latitudes, dtype="float64")
        if x.shape != y.shape:
            raise ValueError("longitudes and latitudes must have the same length")

        if crs is not None and not _same_crs(crs, self.crs):
            transformer = Transformer.from_crs(crs, self.crs, always_xy=True)
            x, y = transformer.transform(x, y)
            x = np.asarray(x, dtype="float64")
            y = np.asarray(y, dtype="float64")

        resolved = np.full(x.shape[0], -1, dtype=np.int64)
        candidates = np.flatnonzero(np.isfinite(x) & np.isfinite(y))
        if candidates.size:
            points = shapely.points(x[candidates], y[candidates])
            point_pos, tree_pos = self._tree.query(points)
            if point_pos.size:
                covered = shapely.covers(self._geometries[tree_pos], points[point_pos])
                point_pos = point_pos[covered]
                tree_pos = tree_pos[covered]

                order = np.lexsort((tree_pos, point_pos))
                point_pos = point_pos[order]
                tree_pos = tree_pos[order]
                first = np.ones(point_pos.shape[0], dtype=bool)
                first[1:] = point_pos[1:] != point_pos[:-1]
                resolved[candidates[point_pos[first]]] = self._zone_ids[tree_pos[first]]

        return pd.arrays.IntegerArray(resolved, mask=resolved < 0)

    def resolve_point(self, longitude: float, latitude: float, *, crs: str | None = None) -> int | None:
        """Resolve a single coordinate; None when unassigned."""

        value = self.resolve([longitude], [latitude], crs=crs)[0]
        if pd.isna(value):
            return None
        return int(value)
