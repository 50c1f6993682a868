"""Write table responses back onto the sampling grid.

Each response is paired with the chunk it answers and each duration is
stored at the ``(row_index, col_index)`` carried by its cell.  Values
are kept raw (minutes, ``NaN`` for no route, ``inf`` as reported);
normalisation to the unreachable sentinel happens later.

When the server reports where it snapped a destination onto the
network, a cell whose snapped point lies farther away than one grid
spacing, and never less than ``OFF_NETWORK_MIN_M``, is off-network and
is stored as missing.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from osrm_isochrones.core.constants import WGS84
from osrm_isochrones.core.exceptions import ReassemblyMismatch, UnreachableOrigin
from osrm_isochrones.utils.geo import transformer

if TYPE_CHECKING:
    from collections.abc import Sequence

    from osrm_isochrones.models.grid import Chunk, SamplingGrid
    from osrm_isochrones.models.routing import TableResult

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0

UNREACHABLE_ORIGIN_MESSAGE = (
    "An empty object is returned. The origin is too far from the routing network."
)

# Lower bound of the off-network snapping distance, in metres.
OFF_NETWORK_MIN_M = 1000.0


def fill_grid(
    grid: SamplingGrid,
    chunks: Sequence[Chunk],
    results: Sequence[TableResult],
    tmax: float,
) -> SamplingGrid:
    """Set ``grid.measure`` from the chunk responses.

    Args:
        grid: Grid the chunks were cut from.
        chunks: Chunks in request order.
        results: One ``TableResult`` per chunk, same order.
        tmax: Largest time break in minutes.

    Returns:
        The same grid, with ``measure`` set.

    Raises:
        ReassemblyMismatch: If responses and chunks/grid do not line up.
        UnreachableOrigin: If no measured cell is within ``tmax``.
    """
    if len(results) != len(chunks):
        msg = f"Got {len(results)} table responses for {len(chunks)} chunks"
        raise ReassemblyMismatch(msg)

    total = sum(len(r) for r in results)
    if total != len(grid):
        msg = f"Got {total} durations for a grid of {len(grid)} cells"
        raise ReassemblyMismatch(msg)

    measure = np.full((grid.res, grid.res), np.nan)
    seen = np.zeros((grid.res, grid.res), dtype=bool)
    to_grid = transformer(WGS84, grid.crs)
    off_network = 0
    max_snap = max(grid.step, OFF_NETWORK_MIN_M)

    for chunk, result in zip(chunks, results, strict=True):
        if len(result) != len(chunk):
            msg = (
                f"Chunk {chunk.index} has {len(chunk)} destinations "
                f"but {len(result)} durations"
            )
            raise ReassemblyMismatch(msg)

        locations = result.locations or [None] * len(result)
        for cell, seconds, snapped in zip(chunk.cells, result.durations_s, locations, strict=True):
            row, col = cell.row_index, cell.col_index
            if seen[row, col]:
                msg = f"Cell (row={row}, col={col}) received more than one duration"
                raise ReassemblyMismatch(msg)
            seen[row, col] = True

            if seconds is None:
                continue
            if snapped is not None:
                sx, sy = to_grid.transform(*snapped)
                if math.hypot(sx - cell.x, sy - cell.y) > max_snap:
                    off_network += 1
                    continue
            measure[row, col] = seconds / SECONDS_PER_MINUTE

    grid.measure = measure

    finite = measure[np.isfinite(measure)]
    logger.info(
        "Grid filled | cells=%d | measured=%d | off_network=%d | min=%s min",
        len(grid),
        finite.size,
        off_network,
        f"{finite.min():.2f}" if finite.size else "n/a",
    )

    if finite.size == 0 or finite.min() > tmax:
        raise UnreachableOrigin(UNREACHABLE_ORIGIN_MESSAGE)

    return grid
