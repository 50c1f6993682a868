"""Gaussian smoothing of the measured travel-time surface.

A moving window weighted by a Gaussian kernel replaces each cell with
the weighted mean of its finite neighbours.  This removes small pockets
of unreachable or slow cells at the cost of some precision.  The
kernel follows the usual focal-matrix layout: sigma ``k`` in metres,
truncated at ``3k``, so one side spans ``1 + 2 * floor(3k / step)``
cells.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import numpy as np

from osrm_isochrones.core.exceptions import DegenerateSmoothingKernel, ValidationError

if TYPE_CHECKING:
    from osrm_isochrones.models.grid import SamplingGrid

logger = logging.getLogger(__name__)

# Kernels whose rows + cols fall below this are a single tap or close to it.
MIN_KERNEL_DIM_SUM = 6

DEGENERATE_KERNEL_MESSAGE = (
    "An empty object is returned. The smoothing kernel is too small, "
    "choose a larger kernel size (k)."
)


def gaussian_kernel(sigma: float, cell_size: float) -> np.ndarray:
    """Return a normalised Gaussian weight matrix.

    Args:
        sigma: Standard deviation in metres.
        cell_size: Grid spacing in metres.

    Returns:
        A square array summing to 1.  It is ``(1, 1)`` when ``3 * sigma``
        is shorter than one cell.
    """
    if cell_size <= 0:
        msg = f"Cell size must be > 0, got {cell_size}"
        raise ValidationError(msg, stage="smooth_surface", code="INVALID_CELL_SIZE")
    if sigma <= 0:
        return np.ones((1, 1))

    half = math.floor(3 * sigma / cell_size)
    offsets = np.arange(-half, half + 1) * cell_size
    dx, dy = np.meshgrid(offsets, offsets)
    weights = np.exp(-(dx**2 + dy**2) / (2 * sigma**2))
    return weights / weights.sum()


def smooth_surface(grid: SamplingGrid, tmax: float, k: float | None = None) -> SamplingGrid:
    """Smooth ``grid.measure`` in place and fill the gaps with ``tmax + 1``.

    Args:
        grid: A filled grid.
        tmax: Largest time break in minutes.
        k: Kernel sigma in metres; defaults to half the grid spacing.

    Returns:
        The same grid, with a smoothed ``measure``.

    Raises:
        DegenerateSmoothingKernel: If the kernel is too small to smooth.
        ValidationError: If the grid has not been filled.
    """
    if grid.measure is None:
        msg = "Cannot smooth a grid that has not been filled"
        raise ValidationError(msg, stage="smooth_surface", code="GRID_NOT_FILLED")

    sigma = grid.step / 2 if k is None else k
    kernel = gaussian_kernel(sigma, grid.step)
    if sum(kernel.shape) < MIN_KERNEL_DIM_SUM:
        logger.debug(
            "Degenerate smoothing kernel | k=%.1f m | step=%.1f m | shape=%s",
            sigma,
            grid.step,
            kernel.shape,
        )
        raise DegenerateSmoothingKernel(DEGENERATE_KERNEL_MESSAGE)

    smoothed = focal_mean(grid.measure, kernel)
    smoothed[~np.isfinite(smoothed)] = tmax + 1
    grid.measure = smoothed

    logger.info(
        "Surface smoothed | k=%.1f m | kernel=%dx%d",
        sigma,
        kernel.shape[0],
        kernel.shape[1],
    )
    return grid


def focal_mean(values: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    """Weighted moving mean that skips non-finite cells.

    Each output cell is ``sum(w * v) / sum(w)`` over the finite values
    under the window.  Cells with no finite neighbour become ``NaN``.
    """
    kh, kw = kernel.shape
    ph, pw = kh // 2, kw // 2
    rows, cols = values.shape

    valid = np.isfinite(values)
    filled = np.where(valid, values, 0.0)
    padded_values = np.pad(filled, ((ph, ph), (pw, pw)))
    padded_valid = np.pad(valid.astype(float), ((ph, ph), (pw, pw)))

    total = np.zeros_like(filled)
    weight = np.zeros_like(filled)
    for i in range(kh):
        for j in range(kw):
            w = kernel[i, j]
            total += w * padded_values[i : i + rows, j : j + cols]
            weight += w * padded_valid[i : i + rows, j : j + cols]

    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(weight > 0, total / weight, np.nan)
