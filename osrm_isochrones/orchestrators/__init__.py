"""Orchestrators.

- isochrone: Grid → table → fill → surface → contour for one origin
- route: Point-to-point routing in the caller's CRS
"""
