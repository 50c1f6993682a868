"""Vectorise a travel-time surface into time bands.

Each cell is classified into the half-open interval ``[b_i, b_i+1)`` of
the breaks that contains its value; values below the first break join
the first band and values at or above the last break form a trailing
catch-all band that callers discard.  Cells of a class are traced with
``rasterio.features.shapes`` and merged with ``shapely``.

The contract is ``contour(grid, breaks) -> list[ContourBand]``, one band
per break interval in ascending order plus the trailing band; any
callable with that signature can stand in for ``contour``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from rasterio.features import shapes
from rasterio.transform import from_origin
from shapely.geometry import Polygon, shape
from shapely.ops import unary_union

from osrm_isochrones.core.exceptions import ValidationError

if TYPE_CHECKING:
    from shapely.geometry.base import BaseGeometry

    from osrm_isochrones.models.grid import SamplingGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ContourBand:
    """A band produced by a contourer, before id assignment and reprojection."""

    isomin: float
    isomax: float
    geometry: BaseGeometry


Contourer = Callable[["SamplingGrid", Sequence[float]], list[ContourBand]]


def classify(values: np.ndarray, breaks: Sequence[float]) -> np.ndarray:
    """Return the band index of every value (``len(breaks) - 1`` = trailing)."""
    edges = np.asarray(breaks, dtype=float)
    index = np.searchsorted(edges, values, side="right") - 1
    return np.clip(index, 0, len(edges) - 1).astype(np.int32)


def contour(grid: SamplingGrid, breaks: Sequence[float]) -> list[ContourBand]:
    """Contour ``grid.measure`` into one band per break interval.

    Args:
        grid: A filled grid whose values are all finite.
        breaks: Sorted, distinct breaks in minutes.

    Returns:
        ``len(breaks)`` bands ordered by ``isomin``; the last one is the
        catch-all ``[max(breaks), max(breaks) + 1)`` band.  Bands with no
        cell carry an empty polygon.

    Raises:
        ValidationError: If the grid has not been filled.
    """
    if grid.measure is None:
        msg = "Cannot contour a grid that has not been filled"
        raise ValidationError(msg, stage="contour", code="GRID_NOT_FILLED")

    classes = classify(grid.measure, breaks)
    # Raster rows run north to south; grid rows run south to north.
    raster = np.ascontiguousarray(np.flipud(classes))
    min_x, _min_y, _max_x, max_y = grid.bounds
    affine = from_origin(min_x, max_y, grid.step, grid.step)

    pieces: dict[int, list[BaseGeometry]] = {}
    for geojson, value in shapes(raster, transform=affine):
        pieces.setdefault(int(value), []).append(shape(geojson))

    tmax = float(breaks[-1])
    bands: list[ContourBand] = []
    for i, lower in enumerate(breaks):
        upper = float(breaks[i + 1]) if i + 1 < len(breaks) else tmax + 1
        parts = pieces.get(i)
        geometry = unary_union(parts) if parts else Polygon()
        bands.append(ContourBand(isomin=float(lower), isomax=upper, geometry=geometry))

    logger.debug(
        "Surface contoured | bands=%d | non_empty=%d",
        len(bands),
        sum(1 for b in bands if not b.geometry.is_empty),
    )
    return bands
