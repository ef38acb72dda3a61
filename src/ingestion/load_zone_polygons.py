"""Load taxi zone polygons into an immutable reference set."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import geopandas as gpd
import pandas as pd
from shapely.geometry.base import BaseGeometry

LOGGER = logging.getLogger("ingestion")

ZONE_COLUMN_ALIASES = {
    "locationid": "zone_id",
    "location_id": "zone_id",
    "zone_id": "zone_id",
    "zone": "zone_name",
    "zone_name": "zone_name",
    "borough": "borough",
    "service_zone": "service_zone",
    "service zone": "service_zone",
}
ZONE_ATTRIBUTE_COLUMNS = ["zone_id", "zone_name", "borough", "service_zone"]


class ZoneGeometryError(ValueError):
    """Raised when the zone reference set cannot back spatial assignment."""


@dataclass(frozen=True)
class ZonePolygon:
    zone_id: int
    zone_name: str
    borough: str
    service_zone: str
    geometry: BaseGeometry


@dataclass(frozen=True)
class ZonePolygonSet:
    """Zone polygons in the geometry source's native CRS."""

    zones: tuple[ZonePolygon, ...]
    crs: str

    def __len__(self) -> int:
        return len(self.zones)

    def attribute_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "zone_id": [zone.zone_id for zone in self.zones],
                "zone_name": [zone.zone_name for zone in self.zones],
                "borough": [zone.borough for zone in self.zones],
                "service_zone": [zone.service_zone for zone in self.zones],
            }
        )


def _rename_zone_columns(frame: pd.DataFrame) -> pd.DataFrame:
    renamed = {
        column: ZONE_COLUMN_ALIASES[column.strip().lower()]
        for column in frame.columns
        if column.strip().lower() in ZONE_COLUMN_ALIASES
    }
    return frame.rename(columns=renamed)


def zones_from_geodataframe(
    gdf: gpd.GeoDataFrame,
    *,
    service_zone_lookup: pd.DataFrame | None = None,
) -> ZonePolygonSet:
    """Convert a zone GeoDataFrame into a `ZonePolygonSet`.

    Rows sharing a zone id are dissolved into one (multi)polygon so ids stay unique.
    When the geometry source has no service zone column, it is joined from
    ``service_zone_lookup`` (a taxi zone lookup table) by zone id.
    """

    if gdf.crs is None:
        raise ZoneGeometryError("Zone geometry source has no coordinate reference system")

    zone_gdf = _rename_zone_columns(gdf)
    if zone_gdf.geometry.name != "geometry":
        zone_gdf = zone_gdf.rename_geometry("geometry")
    if "zone_id" not in zone_gdf.columns:
        raise ZoneGeometryError(f"Zone geometry source has no zone id column: {list(gdf.columns)}")

    zone_gdf = zone_gdf[zone_gdf.geometry.notna() & ~zone_gdf.geometry.is_empty].copy()
    zone_gdf["zone_id"] = pd.to_numeric(zone_gdf["zone_id"], errors="coerce").astype("Int64")
    zone_gdf = zone_gdf.dropna(subset=["zone_id"])
    if zone_gdf.empty:
        raise ZoneGeometryError("Zone geometry source contains no usable polygons")

    if "service_zone" not in zone_gdf.columns and service_zone_lookup is not None:
        lookup = _rename_zone_columns(service_zone_lookup)
        if not {"zone_id", "service_zone"}.issubset(lookup.columns):
            raise ZoneGeometryError("Service zone lookup needs zone id and service zone columns")
        lookup = lookup[["zone_id", "service_zone"]].drop_duplicates(subset=["zone_id"]).copy()
        lookup["zone_id"] = pd.to_numeric(lookup["zone_id"], errors="coerce").astype("Int64")
        zone_gdf = zone_gdf.merge(lookup, on="zone_id", how="left")

    for column in ["zone_name", "borough", "service_zone"]:
        if column not in zone_gdf.columns:
            zone_gdf[column] = ""
        zone_gdf[column] = zone_gdf[column].fillna("").astype(str)

    if zone_gdf["zone_id"].duplicated().any():
        duplicated_ids = sorted(int(value) for value in zone_gdf.loc[zone_gdf["zone_id"].duplicated(), "zone_id"].unique())
        LOGGER.info("dissolving multi-row zones zone_ids=%s", duplicated_ids)
        zone_gdf = zone_gdf[ZONE_ATTRIBUTE_COLUMNS + ["geometry"]].dissolve(by="zone_id", aggfunc="first").reset_index()

    zone_gdf = zone_gdf.sort_values("zone_id")
    zones = tuple(
        ZonePolygon(
            zone_id=int(row.zone_id),
            zone_name=str(row.zone_name),
            borough=str(row.borough),
            service_zone=str(row.service_zone),
            geometry=row.geometry,
        )
        for row in zone_gdf.itertuples(index=False)
    )
    return ZonePolygonSet(zones=zones, crs=gdf.crs.to_string())


def load_zone_polygons(zone_file: Path, *, lookup_file: Path | None = None) -> ZonePolygonSet:
    """Read a zone geometry file (shapefile, GeoJSON, GeoPackage) and optional lookup CSV."""

    if not zone_file.exists():
        raise FileNotFoundError(f"Zone geometry file not found: {zone_file}")

    lookup = None
    if lookup_file is not None:
        if not lookup_file.exists():
            raise FileNotFoundError(f"Zone lookup file not found: {lookup_file}")
        lookup = pd.read_csv(lookup_file)

    zone_set = zones_from_geodataframe(gpd.read_file(zone_file), service_zone_lookup=lookup)
    LOGGER.info("zone polygons loaded file=%s zones=%d crs=%s", zone_file, len(zone_set), zone_set.crs)
    return zone_set
