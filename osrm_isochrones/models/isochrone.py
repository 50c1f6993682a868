"""Isochrone output records.

A collection always carries the same field schema
(``ISOCHRONE_COLUMNS``) and a CRS, including when it is empty because
the origin was unreachable or the smoothing kernel was too small.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from shapely.geometry import mapping

from osrm_isochrones.core.constants import ISOCHRONE_COLUMNS
from osrm_isochrones.models.validation import ModelValidationError, check_min

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True, slots=True)
class IsochroneBand:
    """Area reachable in ``[isomin, isomax)`` minutes.

    Attributes:
        id: One-based position of the band, innermost first.
        isomin: Lower bound in minutes (inclusive).
        isomax: Upper bound in minutes (exclusive).
        geometry: Polygon or MultiPolygon in the collection CRS.
    """

    id: int
    isomin: float
    isomax: float
    geometry: BaseGeometry

    def __post_init__(self) -> None:
        check_min("IsochroneBand", "isomin", self.isomin, 0)
        if self.isomax <= self.isomin:
            raise ModelValidationError(
                "IsochroneBand", "isomax", self.isomax, f"must be > isomin ({self.isomin})"
            )

    def to_feature(self) -> dict[str, Any]:
        """Serialise as a GeoJSON feature."""
        return {
            "type": "Feature",
            "properties": {"id": self.id, "isomin": self.isomin, "isomax": self.isomax},
            "geometry": mapping(self.geometry),
        }


@dataclass(frozen=True, slots=True)
class IsochroneCollection:
    """Ordered isochrone bands in a single CRS.

    Attributes:
        crs: CRS of every band geometry.
        bands: Bands ordered by ``isomin``.
        warning: Non-empty when a recoverable failure emptied the result.
    """

    crs: str
    bands: tuple[IsochroneBand, ...] = field(default_factory=tuple)
    warning: str = ""

    columns: ClassVar[tuple[str, ...]] = ISOCHRONE_COLUMNS

    @classmethod
    def empty(cls, crs: str, warning: str = "") -> IsochroneCollection:
        return cls(crs=crs, bands=(), warning=warning)

    def __len__(self) -> int:
        return len(self.bands)

    def __iter__(self) -> Iterator[IsochroneBand]:
        return iter(self.bands)

    def __getitem__(self, index: int) -> IsochroneBand:
        return self.bands[index]

    @property
    def is_empty(self) -> bool:
        return not self.bands

    def to_geojson(self) -> dict[str, Any]:
        """Serialise as a GeoJSON FeatureCollection.

        The CRS is always reported in a ``crs`` member, WGS 84 included;
        consumers that follow RFC 7946 strictly will ignore it.
        """
        return {
            "type": "FeatureCollection",
            "crs": {"type": "name", "properties": {"name": self.crs}},
            "features": [band.to_feature() for band in self.bands],
        }
