"""Split grid destinations into request-sized chunks.

The origin is the fixed source of every request and never appears in
a chunk.  Chunks are contiguous and in grid order, so concatenating
them gives back the grid.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from osrm_isochrones.core.constants import SERVER_LIMITS, ServerLimits, server_class
from osrm_isochrones.core.exceptions import ValidationError
from osrm_isochrones.models.grid import Chunk, GridCell

logger = logging.getLogger(__name__)


def server_limits(server: str) -> ServerLimits:
    """Return the request budget and pacing for *server*."""
    return SERVER_LIMITS[server_class(server)]


def plan_batches(cells: Sequence[GridCell], budget: int) -> list[Chunk]:
    """Slice *cells* into ``ceil(len(cells) / budget)`` chunks.

    Raises:
        ValidationError: If ``budget`` is not positive.
    """
    if budget <= 0:
        msg = f"Chunk budget must be > 0, got {budget}"
        raise ValidationError(msg, stage="plan_batches", code="INVALID_BUDGET")

    chunks = [
        Chunk(index=i, cells=tuple(cells[start : start + budget]))
        for i, start in enumerate(range(0, len(cells), budget))
    ]

    logger.debug(
        "Planned table requests | destinations=%d | budget=%d | chunks=%d",
        len(cells),
        budget,
        len(chunks),
    )
    return chunks
