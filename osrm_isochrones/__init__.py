"""OSRM isochrones.

Client-side orchestration over an OSRM routing server: travel-time
tables, point-to-point routes, and isochrone polygons computed from a
sampled grid of travel times.
"""

__version__ = "0.1.0"
