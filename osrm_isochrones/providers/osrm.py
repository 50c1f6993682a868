"""OSRM HTTP adapter.

Concrete ``TableClient`` for servers speaking the OSRM v5 HTTP API,
plus the ``route`` service used for point-to-point routing.  Requests
go through ``httpx``; one adapter owns one ``httpx.Client`` and is
meant to be used by one caller at a time.

URL layout:
    Regular servers: ``{server}{service}/v1/{profile}/{coords}``
    routing.openstreetmap.de: ``{server}routed-{profile}/{service}/v1/driving/{coords}``

References:
    OSRM HTTP API: http://project-osrm.org/docs/v5.24.0/api/
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from shapely.geometry import shape

from osrm_isochrones import __version__
from osrm_isochrones.core.constants import (
    DEFAULT_PROFILE,
    DEFAULT_SERVER,
    DEMO_SERVER,
    USER_AGENT_PREFIX,
)
from osrm_isochrones.models.routing import RouteResult, TableResult
from osrm_isochrones.providers.base import (
    RemoteQueryFailed,
    RemoteServiceUnavailable,
    TableClient,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from osrm_isochrones.core.config import IsochroneConfig

logger = logging.getLogger(__name__)

OSRM = "osrm"

_OVERVIEWS = ("full", "simplified")

# Status codes worth retrying at the caller's discretion.
_RETRYABLE_STATUS = frozenset({429, 502, 503, 504})


def build_service_url(server: str, profile: str, service: str) -> str:
    """Return the base URL of an OSRM *service* (``table``, ``route``...)."""
    if server == DEMO_SERVER:
        return f"{server}routed-{profile}/{service}/v1/driving/"
    return f"{server}{service}/v1/{profile}/"


def format_coordinates(points: Sequence[tuple[float, float]]) -> str:
    """Join ``(lon, lat)`` pairs as ``lon,lat;lon,lat`` with 5 decimals."""
    return ";".join(f"{lon:.5f},{lat:.5f}" for lon, lat in points)


class OsrmClient(TableClient):
    """Client for the OSRM ``table`` and ``route`` services.

    Example usage::

        with OsrmClient(server="https://router.project-osrm.org/") as client:
            result = client.table((13.43, 52.47), [(13.44, 52.48)])
    """

    name = OSRM

    def __init__(
        self,
        server: str = DEFAULT_SERVER,
        profile: str = DEFAULT_PROFILE,
        *,
        timeout_s: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._server = server
        self._profile = profile
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout_s)
        self._headers = {"User-Agent": f"{USER_AGENT_PREFIX}/{__version__}"}

    @classmethod
    def from_config(
        cls,
        config: IsochroneConfig,
        *,
        http_client: httpx.Client | None = None,
    ) -> OsrmClient:
        return cls(
            config.server,
            config.profile,
            timeout_s=config.timeout_s,
            http_client=http_client,
        )

    @property
    def server(self) -> str:
        return self._server

    @property
    def profile(self) -> str:
        return self._profile

    def close(self) -> None:
        """Close the underlying HTTP client if this adapter created it."""
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> OsrmClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # table
    # ------------------------------------------------------------------

    def table(
        self,
        source: tuple[float, float],
        destinations: Sequence[tuple[float, float]],
        *,
        exclude: str | None = None,
    ) -> TableResult:
        """Query durations from *source* to every destination.

        Raises:
            RemoteQueryFailed: On transport errors, non-2xx status,
                an OSRM error code, or a malformed payload.
        """
        if not destinations:
            return TableResult(durations_s=[], locations=[])

        url = build_service_url(self._server, self._profile, "table")
        url += format_coordinates([source, *destinations])
        params: dict[str, str] = {
            "sources": "0",
            "destinations": ";".join(str(i) for i in range(1, len(destinations) + 1)),
            "annotations": "duration",
        }
        if exclude:
            params["exclude"] = exclude

        payload = self._get(url, params)

        try:
            row = payload["durations"][0]
            durations = [None if d is None else float(d) for d in row]
            locations = [_location(d) for d in payload.get("destinations", [])] or None
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            msg = f"Malformed table response: {exc!r}"
            raise RemoteQueryFailed(self.name, msg) from exc

        if len(durations) != len(destinations):
            msg = (
                f"Table response has {len(durations)} durations "
                f"for {len(destinations)} destinations"
            )
            raise RemoteQueryFailed(self.name, msg)
        if locations is not None and len(locations) != len(durations):
            locations = None

        return TableResult(durations_s=durations, locations=locations)

    # ------------------------------------------------------------------
    # route
    # ------------------------------------------------------------------

    def route(
        self,
        points: Sequence[tuple[float, float]],
        *,
        overview: str | bool = "simplified",
        annotations: bool = False,
        exclude: str | None = None,
        src_id: str = "src",
        dst_id: str = "dst",
    ) -> RouteResult:
        """Query the shortest route through *points* (start, vias, end).

        Args:
            points: At least two ``(lon, lat)`` pairs, in travel order.
            overview: ``"full"``, ``"simplified"`` or ``False`` for no
                geometry (duration and distance only).
            annotations: Also return the OSM node ids of the route.
            exclude: Optional server ``exclude`` option.
            src_id: Identifier reported for the start point.
            dst_id: Identifier reported for the end point.

        Raises:
            ValueError: If fewer than two points or an unknown overview
                is given.
            RemoteQueryFailed: On any request or payload failure.
        """
        if len(points) < 2:
            msg = f"A route needs at least 2 points, got {len(points)}"
            raise ValueError(msg)
        if overview is not False and overview not in _OVERVIEWS:
            msg = f"overview must be 'full', 'simplified' or False, got {overview!r}"
            raise ValueError(msg)

        url = build_service_url(self._server, self._profile, "route")
        url += format_coordinates(points)
        params = {
            "alternatives": "false",
            "annotations": "true" if annotations else "false",
            "geometries": "geojson",
            "steps": "false",
            "overview": "false" if overview is False else str(overview),
            "generate_hints": "false",
        }
        if exclude:
            params["exclude"] = exclude

        payload = self._get(url, params)

        try:
            best = payload["routes"][0]
            duration_min = float(best["duration"]) / 60
            distance_km = float(best["distance"]) / 1000
            geometry = shape(best["geometry"]) if overview is not False else None
            nodes: list[int] = []
            if annotations:
                for leg in best.get("legs", []):
                    nodes.extend(int(n) for n in leg.get("annotation", {}).get("nodes", []))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            msg = f"Malformed route response: {exc!r}"
            raise RemoteQueryFailed(self.name, msg) from exc

        return RouteResult(
            src=src_id,
            dst=dst_id,
            duration_min=round(duration_min, 2),
            distance_km=round(distance_km, 2),
            geometry=geometry,
            nodes=nodes,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, url: str, params: dict[str, str]) -> dict[str, Any]:
        """GET *url* and return the decoded OSRM payload."""
        logger.debug("OSRM request | url=%s | params=%s", url, params)
        try:
            response = self._http.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            msg = f"Request to {url} failed: {exc}"
            raise RemoteServiceUnavailable(self.name, msg) from exc

        if response.is_error:
            msg = f"HTTP {response.status_code} from {url}"
            detail = _error_message(response)
            if detail:
                msg += f": {detail}"
            if response.status_code in _RETRYABLE_STATUS:
                raise RemoteServiceUnavailable(self.name, msg, status_code=response.status_code)
            raise RemoteQueryFailed(self.name, msg, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            msg = f"Response from {url} is not JSON"
            raise RemoteQueryFailed(self.name, msg, status_code=response.status_code) from exc

        code = payload.get("code") if isinstance(payload, dict) else None
        if code != "Ok":
            msg = f"OSRM returned code {code!r}"
            if isinstance(payload, dict) and payload.get("message"):
                msg += f": {payload['message']}"
            raise RemoteQueryFailed(self.name, msg, status_code=response.status_code)

        return payload


def _location(waypoint: dict[str, Any] | None) -> tuple[float, float] | None:
    """Extract the snapped ``(lon, lat)`` of an OSRM waypoint."""
    if not waypoint or not waypoint.get("location"):
        return None
    lon, lat = waypoint["location"][:2]
    return (float(lon), float(lat))


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of an OSRM error message."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("message") or body.get("code") or "")
    return ""
