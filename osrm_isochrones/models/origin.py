"""Origin point and time breaks.

An ``Origin`` is the already-normalized request source: WGS 84
longitude/latitude, an identifier, and the CRS the caller's input was
expressed in (``None`` when the caller passed plain coordinates).  The
projected coordinates live in the local UTM zone so that every distance
computed by the engine is in metres.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from osrm_isochrones.core.constants import MIN_BREAKS, WGS84
from osrm_isochrones.core.exceptions import InvalidBreaks
from osrm_isochrones.models.validation import check_range
from osrm_isochrones.utils.geo import get_utm_crs, transformer


@dataclass(frozen=True, slots=True)
class Origin:
    """Request source of an isochrone or route.

    Attributes:
        lon: Longitude in degrees (WGS 84).
        lat: Latitude in degrees (WGS 84).
        id: Caller-supplied identifier.
        source_crs: CRS of the caller's input, or ``None`` for plain lon/lat.
        projected_x: Easting in metres in ``projected_crs``.
        projected_y: Northing in metres in ``projected_crs``.
        projected_crs: Local metric CRS (UTM zone of the origin).
    """

    lon: float
    lat: float
    id: str = "loc"
    source_crs: str | None = None
    projected_x: float = field(init=False)
    projected_y: float = field(init=False)
    projected_crs: str = field(init=False)

    def __post_init__(self) -> None:
        check_range("Origin", "lon", self.lon, -180, 180)
        check_range("Origin", "lat", self.lat, -90, 90)
        utm = get_utm_crs(self.lon, self.lat)
        x, y = transformer(WGS84, utm).transform(self.lon, self.lat)
        object.__setattr__(self, "projected_crs", utm)
        object.__setattr__(self, "projected_x", float(x))
        object.__setattr__(self, "projected_y", float(y))

    @classmethod
    def from_lonlat(
        cls,
        lon: float,
        lat: float,
        *,
        id: str = "loc",  # noqa: A002
        source_crs: str | None = None,
    ) -> Origin:
        """Build an origin from plain numbers."""
        return cls(lon=float(lon), lat=float(lat), id=id, source_crs=source_crs)

    @property
    def output_crs(self) -> str:
        """CRS the results for this origin are expressed in."""
        return self.source_crs or WGS84


def normalize_breaks(breaks: Iterable[float]) -> tuple[float, ...]:
    """Deduplicate and sort time breaks (minutes).

    Raises:
        InvalidBreaks: If a break is negative or not finite, or fewer
            than two distinct breaks remain.
    """
    values = [float(b) for b in breaks]
    for value in values:
        if not math.isfinite(value):
            msg = f"Breaks must be finite, got {value!r}"
            raise InvalidBreaks(msg)
        if value < 0:
            msg = f"Breaks must be >= 0 minutes, got {value!r}"
            raise InvalidBreaks(msg)

    unique = tuple(sorted(set(values)))
    if len(unique) < MIN_BREAKS:
        msg = f"At least {MIN_BREAKS} distinct breaks are required, got {list(unique)}"
        raise InvalidBreaks(msg)
    return unique
