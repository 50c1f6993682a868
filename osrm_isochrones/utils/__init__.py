"""Shared helpers (projection, reprojection)."""
