"""Data models and schemas.

Defines the data structures used throughout the engine:
- Origin: Normalized request source with projected coordinates
- SamplingGrid / GridCell / Chunk: The measurement grid and its batches
- TableResult / RouteResult: Typed routing server responses
- IsochroneBand / IsochroneCollection: Isochrone output
"""

from osrm_isochrones.models.grid import Chunk, GridCell, SamplingGrid
from osrm_isochrones.models.isochrone import IsochroneBand, IsochroneCollection
from osrm_isochrones.models.origin import Origin, normalize_breaks
from osrm_isochrones.models.routing import RouteResult, TableResult
from osrm_isochrones.models.validation import ModelValidationError

__all__ = [
    "Chunk",
    "GridCell",
    "IsochroneBand",
    "IsochroneCollection",
    "ModelValidationError",
    "Origin",
    "RouteResult",
    "SamplingGrid",
    "TableResult",
    "normalize_breaks",
]
