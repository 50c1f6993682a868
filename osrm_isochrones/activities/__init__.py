"""Isochrone engine stages.

Each module implements a single stage:
- build_grid: Size and lay out the sampling grid
- plan_batches: Split destinations into request-sized chunks
- fill_grid: Write table responses back onto the grid
- smooth_surface: Optional Gaussian smoothing
- contour: Vectorise the surface into time bands
"""
