"""Routing-server adapters.

- TableClient: Abstract base class defining the table contract
- OsrmClient: OSRM v5 HTTP API over httpx (``table`` and ``route``)
"""

from osrm_isochrones.providers.base import (
    ProviderError,
    RemoteQueryFailed,
    RemoteServiceUnavailable,
    TableClient,
)
from osrm_isochrones.providers.osrm import (
    OSRM,
    OsrmClient,
    build_service_url,
    format_coordinates,
)

__all__ = [
    "OSRM",
    "OsrmClient",
    "ProviderError",
    "RemoteQueryFailed",
    "RemoteServiceUnavailable",
    "TableClient",
    "build_service_url",
    "format_coordinates",
]
