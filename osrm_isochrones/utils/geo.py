"""Projection helpers shared by the grid builder and the orchestrators.

Metric work (grid spacing, snapping distances, buffers) always happens
in the local UTM zone of the origin, never by adding degrees.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pyproj import CRS, Transformer
from shapely.ops import transform

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry


def get_utm_crs(lon: float, lat: float) -> str:
    """Determine the UTM CRS for a given WGS 84 coordinate.

    Returns an EPSG code like ``"EPSG:32633"`` (UTM zone 33N) or
    ``"EPSG:32733"`` (UTM zone 33S).
    """
    # UTM zone number: 1-based, 6° wide, starting at -180°
    zone_number = int((lon + 180) / 6) + 1
    zone_number = max(1, min(60, zone_number))

    if lat >= 0:
        return f"EPSG:{32600 + zone_number}"
    return f"EPSG:{32700 + zone_number}"


def transformer(src_crs: str, dst_crs: str) -> Transformer:
    """Return an ``always_xy`` transformer between two CRS."""
    return Transformer.from_crs(src_crs, dst_crs, always_xy=True)


def same_crs(a: str, b: str) -> bool:
    """Whether two CRS identifiers describe the same system."""
    if a == b:
        return True
    return CRS.from_user_input(a) == CRS.from_user_input(b)


def reproject_geometry(geom: BaseGeometry, src_crs: str, dst_crs: str) -> BaseGeometry:
    """Reproject a shapely geometry; empty geometries pass through."""
    if geom.is_empty or same_crs(src_crs, dst_crs):
        return geom
    return transform(transformer(src_crs, dst_crs).transform, geom)
