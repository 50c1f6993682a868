"""Typed responses of the routing server.

- ``TableResult``: durations from one source to a list of destinations
- ``RouteResult``: duration, distance and geometry of a single route

Durations arrive in seconds from the server and are kept that way
here; conversion to minutes happens where the grid is filled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from osrm_isochrones.models.validation import ModelValidationError, check_min

if TYPE_CHECKING:
    from shapely.geometry import LineString


@dataclass(frozen=True, slots=True)
class TableResult:
    """Response of one ``table`` request.

    Attributes:
        durations_s: Travel time in seconds per destination, ``None``
            when the server found no route.
        locations: Snapped ``(lon, lat)`` of each destination on the
            network, when the server reports them.
    """

    durations_s: list[float | None] = field(default_factory=list)
    locations: list[tuple[float, float] | None] | None = None

    def __post_init__(self) -> None:
        if self.locations is not None and len(self.locations) != len(self.durations_s):
            raise ModelValidationError(
                "TableResult",
                "locations",
                len(self.locations),
                f"must have one entry per duration ({len(self.durations_s)})",
            )

    def __len__(self) -> int:
        return len(self.durations_s)


@dataclass(frozen=True, slots=True)
class RouteResult:
    """Shortest route between two points.

    Attributes:
        src: Identifier of the start point.
        dst: Identifier of the end point.
        duration_min: Travel time in minutes.
        distance_km: Travel distance in kilometres.
        geometry: Route line, ``None`` when no overview was requested.
        crs: CRS of ``geometry``.
        nodes: OSM node ids along the route (annotations only).
    """

    src: str
    dst: str
    duration_min: float
    distance_km: float
    geometry: LineString | None = None
    crs: str = "EPSG:4326"
    nodes: list[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        check_min("RouteResult", "duration_min", self.duration_min, 0)
        check_min("RouteResult", "distance_km", self.distance_km, 0)
