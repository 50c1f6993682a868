"""Sampling grid, its cells, and the request chunks cut from it.

Cells are ordered row-major: ``col_index`` varies fastest and row 0 is
the southernmost row.  Each cell carries its own indices so that a
measured duration can be written back to the right place even if a
transport were to return destinations out of order.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass(frozen=True, slots=True)
class GridCell:
    """One sampling point of the grid.

    Attributes:
        x: Easting in metres (grid CRS).
        y: Northing in metres (grid CRS).
        lon: Longitude in degrees (WGS 84), sent to the routing server.
        lat: Latitude in degrees (WGS 84).
        col_index: Zero-based column, west to east.
        row_index: Zero-based row, south to north.
    """

    x: float
    y: float
    lon: float
    lat: float
    col_index: int
    row_index: int

    @property
    def lonlat(self) -> tuple[float, float]:
        return (self.lon, self.lat)


@dataclass(slots=True)
class SamplingGrid:
    """A ``res x res`` square grid centred on the origin.

    The geometry is fixed at construction; only ``measure`` changes.
    It is set by the grid filler and may be replaced once more by the
    smoother.

    Attributes:
        cells: Row-major cells, ``res * res`` of them.
        res: Points along one side.
        step: Spacing between neighbouring points in metres.
        crs: Metric CRS of ``x``/``y``.
        dmax: Reach radius in metres the grid was sized for.
        measure: ``(res, res)`` travel times in minutes indexed
            ``[row, col]``; ``None`` until filled.
    """

    cells: tuple[GridCell, ...]
    res: int
    step: float
    crs: str
    dmax: float = 0.0
    measure: np.ndarray | None = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.cells)

    @property
    def xs(self) -> np.ndarray:
        """Column coordinates (metres), west to east."""
        return np.array([c.x for c in self.cells[: self.res]])

    @property
    def ys(self) -> np.ndarray:
        """Row coordinates (metres), south to north."""
        return np.array([c.y for c in self.cells[:: self.res]])

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Outer edges of the cells as ``(min_x, min_y, max_x, max_y)``."""
        half = self.step / 2
        xs = self.xs
        ys = self.ys
        return (
            float(xs[0] - half),
            float(ys[0] - half),
            float(xs[-1] + half),
            float(ys[-1] + half),
        )


@dataclass(frozen=True, slots=True)
class Chunk:
    """A contiguous run of grid cells sent in one ``table`` request.

    Attributes:
        index: Zero-based position of the chunk in request order.
        cells: The destination cells of this request.
    """

    index: int
    cells: tuple[GridCell, ...]

    def __len__(self) -> int:
        return len(self.cells)

    @property
    def destinations(self) -> list[tuple[float, float]]:
        """Destination coordinates as ``(lon, lat)`` in cell order."""
        return [c.lonlat for c in self.cells]
