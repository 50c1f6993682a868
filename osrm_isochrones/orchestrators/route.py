"""Point-to-point route orchestrator.

Routes from ``src`` to ``dst`` (optionally through ordered vias) and
expresses the route line in the CRS of the start point.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from osrm_isochrones.core.constants import WGS84
from osrm_isochrones.providers.osrm import OsrmClient
from osrm_isochrones.utils.geo import reproject_geometry

if TYPE_CHECKING:
    from osrm_isochrones.core.config import IsochroneConfig
    from osrm_isochrones.models.origin import Origin
    from osrm_isochrones.models.routing import RouteResult

logger = logging.getLogger(__name__)


def compute_route(
    src: Origin,
    dst: Origin,
    *,
    config: IsochroneConfig,
    via: Sequence[Origin] = (),
    overview: str | bool = "simplified",
    annotations: bool = False,
    client: OsrmClient | None = None,
) -> RouteResult:
    """Compute the shortest route from *src* to *dst*.

    Args:
        src: Start point.
        dst: End point.
        config: Server and profile settings.
        via: Ordered intermediate points.
        overview: ``"full"``, ``"simplified"`` or ``False`` (no geometry).
        annotations: Also return the OSM node ids of the route.
        client: OSRM client; one built from *config* is used when omitted.

    Returns:
        A ``RouteResult`` whose geometry is in ``src.output_crs``.

    Raises:
        RemoteQueryFailed: If the route request fails.
    """
    points = [(p.lon, p.lat) for p in (src, *via, dst)]

    if client is None:
        with OsrmClient.from_config(config) as owned:
            result = owned.route(
                points,
                overview=overview,
                annotations=annotations,
                exclude=config.exclude,
                src_id=src.id,
                dst_id=dst.id,
            )
    else:
        result = client.route(
            points,
            overview=overview,
            annotations=annotations,
            exclude=config.exclude,
            src_id=src.id,
            dst_id=dst.id,
        )

    logger.info(
        "Route computed | src=%s | dst=%s | via=%d | duration=%.2f min | distance=%.2f km",
        src.id,
        dst.id,
        len(via),
        result.duration_min,
        result.distance_km,
    )

    if result.geometry is None:
        return result
    return dataclasses.replace(
        result,
        geometry=reproject_geometry(result.geometry, WGS84, src.output_crs),
        crs=src.output_crs,
    )
