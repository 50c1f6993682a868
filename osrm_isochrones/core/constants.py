"""Shared engine constants.

Centralises routing profiles, server limits, CRS identifiers and grid
defaults that would otherwise be duplicated across activities,
providers and orchestrators.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Coordinate reference systems
# ---------------------------------------------------------------------------

WGS84: str = "EPSG:4326"
"""CRS of every coordinate exchanged with the routing server."""

# ---------------------------------------------------------------------------
# Routing servers
# ---------------------------------------------------------------------------

DEFAULT_SERVER: str = "https://router.project-osrm.org/"
"""Public OSRM demo server (car profile only)."""

DEMO_SERVER: str = "https://routing.openstreetmap.de/"
"""Shared FOSSGIS instance, rate limited and multi-profile."""

DEFAULT_PROFILE: str = "car"

USER_AGENT_PREFIX: str = "osrm-isochrones"

# ---------------------------------------------------------------------------
# Profile speed estimates (metres per minute)
# ---------------------------------------------------------------------------

_KMH_TO_M_PER_MIN = 1000.0 / 60.0

PROFILE_SPEEDS_M_PER_MIN: dict[str, float] = {
    "foot": 10 * _KMH_TO_M_PER_MIN,
    "walk": 10 * _KMH_TO_M_PER_MIN,
    "bike": 20 * _KMH_TO_M_PER_MIN,
    "car": 120 * _KMH_TO_M_PER_MIN,
    "driving": 120 * _KMH_TO_M_PER_MIN,
}
"""Upper-bound travel speed per profile, used to size the sampling grid."""

# ---------------------------------------------------------------------------
# Server limits
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ServerLimits:
    """Request budget for a class of routing server.

    Attributes:
        budget: Maximum number of destinations per ``table`` request.
        pace_s: Pause in seconds between two consecutive requests.
    """

    budget: int
    pace_s: float


DEFAULT_SERVER_CLASS = "default"
DEMO_SERVER_CLASS = "demo"

SERVER_LIMITS: dict[str, ServerLimits] = {
    DEFAULT_SERVER_CLASS: ServerLimits(budget=450, pace_s=0.0),
    DEMO_SERVER_CLASS: ServerLimits(budget=75, pace_s=1.0),
}

# ---------------------------------------------------------------------------
# Isochrone defaults
# ---------------------------------------------------------------------------

DEFAULT_BREAKS: tuple[float, ...] = (0.0, 10.0, 20.0, 30.0, 40.0, 50.0, 60.0)
"""Default time breaks in minutes."""

DEFAULT_RES = 30
"""Default number of grid points along one side of the sampling grid."""

MIN_RES = 2

MIN_BREAKS = 2

ISOCHRONE_COLUMNS: tuple[str, ...] = ("id", "isomin", "isomax", "geometry")
"""Field schema of an isochrone collection, empty or not."""


def server_class(server: str) -> str:
    """Return the server class key used to look up ``SERVER_LIMITS``."""
    if server == DEMO_SERVER:
        return DEMO_SERVER_CLASS
    return DEFAULT_SERVER_CLASS
