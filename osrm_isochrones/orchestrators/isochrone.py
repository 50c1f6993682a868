"""Isochrone orchestrator.

Runs the engine stages in order for one origin:

1. **Grid**: size a sampling grid from the largest break and the
   profile speed.
2. **Table**: query the grid in chunks, one request at a time, pacing
   requests for rate-limited servers.
3. **Fill**: write durations back onto the grid.
4. **Surface**: optionally smooth, then push every unreachable value to
   ``tmax + 1``.
5. **Contour**: vectorise into bands, drop the catch-all band, start the
   first band at zero, reproject to the caller's CRS.

An unreachable origin or a degenerate smoothing kernel yields an empty
collection with a warning instead of an exception; every other failure
propagates.  No request is ever retried.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING

import numpy as np

from osrm_isochrones.activities.build_grid import build_grid, speed_for_profile
from osrm_isochrones.activities.contour import Contourer, ContourBand, contour
from osrm_isochrones.activities.fill_grid import UNREACHABLE_ORIGIN_MESSAGE, fill_grid
from osrm_isochrones.activities.plan_batches import plan_batches, server_limits
from osrm_isochrones.activities.smooth_surface import smooth_surface
from osrm_isochrones.core.constants import DEFAULT_BREAKS
from osrm_isochrones.core.exceptions import DegenerateSmoothingKernel, UnreachableOrigin
from osrm_isochrones.models.isochrone import IsochroneBand, IsochroneCollection
from osrm_isochrones.models.origin import normalize_breaks
from osrm_isochrones.providers.base import RemoteQueryFailed
from osrm_isochrones.providers.osrm import OsrmClient
from osrm_isochrones.utils.geo import reproject_geometry

if TYPE_CHECKING:
    from osrm_isochrones.core.config import IsochroneConfig
    from osrm_isochrones.models.grid import Chunk
    from osrm_isochrones.models.origin import Origin
    from osrm_isochrones.models.routing import TableResult
    from osrm_isochrones.providers.base import TableClient

logger = logging.getLogger(__name__)


def compute_isochrone(
    origin: Origin,
    breaks: Iterable[float] = DEFAULT_BREAKS,
    *,
    config: IsochroneConfig,
    client: TableClient | None = None,
    contourer: Contourer = contour,
    sleep: Callable[[float], None] = time.sleep,
) -> IsochroneCollection:
    """Compute isochrone bands around *origin*.

    Args:
        origin: Normalized request source.
        breaks: Time breaks in minutes; sorted and deduplicated here.
        config: Server, profile and grid settings.
        client: Table client to query; an ``OsrmClient`` built from
            *config* is used (and closed) when omitted.
        contourer: Surface-to-bands implementation.
        sleep: Pause function used for request pacing.

    Returns:
        Bands in ``origin.output_crs``, innermost first.  Empty, with
        ``warning`` set, when the origin is unreachable or the smoothing
        kernel is too small.

    Raises:
        InvalidBreaks: If fewer than two valid breaks are given.
        UnsupportedProfile: If the profile has no speed estimate.
        RemoteQueryFailed: If any chunk request fails.
        ReassemblyMismatch: If responses do not line up with the grid.
    """
    sorted_breaks = normalize_breaks(breaks)
    tmax = sorted_breaks[-1]
    speed = speed_for_profile(config.profile)

    logger.info(
        "Isochrone started | origin=%s | lon=%.5f | lat=%.5f | breaks=%s | profile=%s | "
        "server=%s | smooth=%s",
        origin.id,
        origin.lon,
        origin.lat,
        list(sorted_breaks),
        config.profile,
        config.server,
        config.smooth,
    )

    grid = build_grid(origin, tmax, speed, res=config.res)
    limits = server_limits(config.server)
    chunks = plan_batches(grid.cells, limits.budget)

    if client is None:
        with OsrmClient.from_config(config) as owned:
            results = query_chunks(
                owned, origin, chunks, exclude=config.exclude, pace_s=limits.pace_s, sleep=sleep
            )
    else:
        results = query_chunks(
            client, origin, chunks, exclude=config.exclude, pace_s=limits.pace_s, sleep=sleep
        )

    try:
        fill_grid(grid, chunks, results, tmax)
        if config.smooth:
            smooth_surface(grid, tmax, config.k)
        grid.measure = normalize_measures(grid.measure, tmax)
        bands = contourer(grid, sorted_breaks)
        collection = assemble_bands(bands, grid.crs, origin.output_crs)
    except (UnreachableOrigin, DegenerateSmoothingKernel) as exc:
        logger.warning("%s | origin=%s | code=%s", exc.message, origin.id, exc.code)
        return IsochroneCollection.empty(origin.output_crs, warning=exc.message)

    logger.info(
        "Isochrone completed | origin=%s | bands=%d | crs=%s",
        origin.id,
        len(collection),
        collection.crs,
    )
    return collection


def query_chunks(
    client: TableClient,
    origin: Origin,
    chunks: Sequence[Chunk],
    *,
    exclude: str | None = None,
    pace_s: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> list[TableResult]:
    """Query every chunk in order, pausing *pace_s* between requests.

    Raises:
        RemoteQueryFailed: Tagged with the index of the failing chunk.
    """
    results: list[TableResult] = []
    for chunk in chunks:
        if chunk.index > 0 and pace_s > 0:
            sleep(pace_s)
        logger.debug(
            "Table request | chunk=%d/%d | destinations=%d",
            chunk.index + 1,
            len(chunks),
            len(chunk),
        )
        try:
            results.append(
                client.table((origin.lon, origin.lat), chunk.destinations, exclude=exclude)
            )
        except RemoteQueryFailed as exc:
            raise exc.for_chunk(chunk.index) from exc
    return results


def normalize_measures(measure: np.ndarray, tmax: float) -> np.ndarray:
    """Map ``NaN``, ``inf`` and values above *tmax* to ``tmax + 1``.

    Values in ``[0, tmax]`` pass through unchanged.
    """
    values = np.array(measure, dtype=float)
    with np.errstate(invalid="ignore"):
        unreachable = ~np.isfinite(values) | (values > tmax)
    values[unreachable] = tmax + 1
    return values


def assemble_bands(
    bands: Sequence[ContourBand],
    grid_crs: str,
    output_crs: str,
) -> IsochroneCollection:
    """Turn contourer output into the final collection.

    Drops the trailing catch-all band and empty bands, numbers bands from
    1 and reprojects to *output_crs*.  Each band starts where the previous
    one ends (the first at zero), so a dropped empty band widens the next
    one and the intervals stay contiguous.

    Raises:
        UnreachableOrigin: If no band is left.
    """
    kept = [band for band in bands[:-1] if not band.geometry.is_empty]
    if not kept:
        raise UnreachableOrigin(UNREACHABLE_ORIGIN_MESSAGE)

    result: list[IsochroneBand] = []
    lower = 0.0
    for i, band in enumerate(kept, start=1):
        result.append(
            IsochroneBand(
                id=i,
                isomin=lower,
                isomax=band.isomax,
                geometry=reproject_geometry(band.geometry, grid_crs, output_crs),
            )
        )
        lower = band.isomax
    return IsochroneCollection(crs=output_crs, bands=tuple(result))
