"""Sampling grid construction.

Sizes a square grid around the origin from the largest time break and
an upper-bound travel speed for the routing profile, then lays out
``res x res`` points in the origin's UTM zone and converts each one to
WGS 84 for the routing server.

The grid extends one cell spacing beyond the reach radius so that the
outermost band still has sample points outside it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from osrm_isochrones.core.constants import (
    DEFAULT_RES,
    MIN_RES,
    PROFILE_SPEEDS_M_PER_MIN,
    WGS84,
)
from osrm_isochrones.core.exceptions import UnsupportedProfile, ValidationError
from osrm_isochrones.models.grid import GridCell, SamplingGrid
from osrm_isochrones.utils.geo import transformer

if TYPE_CHECKING:
    from osrm_isochrones.models.origin import Origin

logger = logging.getLogger(__name__)

# Half-width used when every break is zero, so the spacing never collapses.
MIN_HALF_WIDTH_M = 50.0


class GridError(ValidationError):
    """Raised when the grid cannot be built from the given parameters."""

    default_stage = "build_grid"
    default_code = "GRID_INVALID"


def speed_for_profile(profile: str) -> float:
    """Return the speed estimate in metres per minute for *profile*.

    Raises:
        UnsupportedProfile: If the profile has no speed estimate.
    """
    speed = PROFILE_SPEEDS_M_PER_MIN.get(profile)
    if speed is None:
        raise UnsupportedProfile(profile, tuple(sorted(PROFILE_SPEEDS_M_PER_MIN)))
    return speed


def build_grid(
    origin: Origin,
    tmax: float,
    speed_m_per_min: float,
    *,
    res: int = DEFAULT_RES,
) -> SamplingGrid:
    """Build the sampling grid for an isochrone.

    Args:
        origin: Request source with projected coordinates.
        tmax: Largest time break in minutes.
        speed_m_per_min: Profile speed estimate.
        res: Points along one side of the grid.

    Returns:
        A ``SamplingGrid`` of ``res * res`` row-major cells, symmetric
        around the origin.

    Raises:
        GridError: If ``res`` is below 2 or ``tmax``/speed are negative.
    """
    if res < MIN_RES:
        msg = f"Grid resolution must be >= {MIN_RES}, got {res}"
        raise GridError(msg)
    if tmax < 0 or speed_m_per_min <= 0:
        msg = f"Need tmax >= 0 and speed > 0, got tmax={tmax}, speed={speed_m_per_min}"
        raise GridError(msg)

    dmax = tmax * speed_m_per_min
    half_width = grid_half_width(dmax, res)

    offsets = np.linspace(-half_width, half_width, res)
    xs = origin.projected_x + offsets
    ys = origin.projected_y + offsets
    step = float(offsets[1] - offsets[0])

    # Row-major: x varies fastest, rows go south to north.
    grid_x, grid_y = np.meshgrid(xs, ys)
    to_wgs = transformer(origin.projected_crs, WGS84)
    lons, lats = to_wgs.transform(grid_x.ravel(), grid_y.ravel())

    cells = tuple(
        GridCell(
            x=float(x),
            y=float(y),
            lon=float(lon),
            lat=float(lat),
            col_index=i % res,
            row_index=i // res,
        )
        for i, (x, y, lon, lat) in enumerate(
            zip(grid_x.ravel(), grid_y.ravel(), lons, lats, strict=True)
        )
    )

    logger.info(
        "Isochrone grid built | res=%d | cells=%d | dmax=%.0f m | half_width=%.0f m | "
        "step=%.1f m | crs=%s",
        res,
        len(cells),
        dmax,
        half_width,
        step,
        origin.projected_crs,
    )

    return SamplingGrid(
        cells=cells,
        res=res,
        step=step,
        crs=origin.projected_crs,
        dmax=dmax,
    )


def grid_half_width(dmax: float, res: int) -> float:
    """Half side length of the grid: reach radius plus one cell spacing."""
    if dmax <= 0:
        return MIN_HALF_WIDTH_M
    clearance = 2 * dmax / (res - 1)
    return dmax + clearance
