"""Shared pytest fixtures for the OSRM isochrones test suite."""

from __future__ import annotations

import math
from collections.abc import Sequence

import pytest

from osrm_isochrones.core.constants import WGS84
from osrm_isochrones.models.origin import Origin
from osrm_isochrones.models.routing import TableResult
from osrm_isochrones.providers.base import RemoteServiceUnavailable, TableClient
from osrm_isochrones.utils.geo import transformer

# Kreuzberg, Berlin (UTM zone 33N)
BERLIN_LON = 13.43
BERLIN_LAT = 52.47


class DistanceTableClient(TableClient):
    """In-memory table client: travel time grows linearly with distance.

    A destination ``reach_m`` metres from the origin (in the origin's UTM
    zone) takes ``reach_min`` minutes.  Every call is recorded.
    """

    name = "fake"

    def __init__(
        self,
        origin: Origin,
        *,
        reach_m: float,
        reach_min: float,
        fail_on_call: int | None = None,
    ) -> None:
        self._origin = origin
        self._reach_m = reach_m
        self._reach_min = reach_min
        self._fail_on_call = fail_on_call
        self._to_utm = transformer(WGS84, origin.projected_crs)
        self.calls: list[int] = []
        self.excludes: list[str | None] = []

    def table(
        self,
        source: tuple[float, float],
        destinations: Sequence[tuple[float, float]],
        *,
        exclude: str | None = None,
    ) -> TableResult:
        self.calls.append(len(destinations))
        self.excludes.append(exclude)
        if self._fail_on_call is not None and len(self.calls) - 1 == self._fail_on_call:
            raise RemoteServiceUnavailable(self.name, "HTTP 503", status_code=503)

        durations: list[float | None] = []
        for lon, lat in destinations:
            x, y = self._to_utm.transform(lon, lat)
            dist = math.hypot(x - self._origin.projected_x, y - self._origin.projected_y)
            durations.append(dist / self._reach_m * self._reach_min * 60)
        return TableResult(durations_s=durations)


class ConstantTableClient(TableClient):
    """In-memory table client returning the same duration everywhere."""

    name = "constant"

    def __init__(self, seconds: float | None) -> None:
        self._seconds = seconds
        self.calls: list[int] = []

    def table(
        self,
        source: tuple[float, float],
        destinations: Sequence[tuple[float, float]],
        *,
        exclude: str | None = None,
    ) -> TableResult:
        self.calls.append(len(destinations))
        return TableResult(durations_s=[self._seconds] * len(destinations))


@pytest.fixture()
def berlin() -> Origin:
    """Origin given as plain lon/lat (output in WGS 84)."""
    return Origin.from_lonlat(BERLIN_LON, BERLIN_LAT, id="berlin")


@pytest.fixture()
def berlin_mercator() -> Origin:
    """Origin whose caller input was in Web Mercator."""
    return Origin.from_lonlat(BERLIN_LON, BERLIN_LAT, id="berlin", source_crs="EPSG:3857")


@pytest.fixture()
def make_distance_client() -> type[DistanceTableClient]:
    """Factory for ``DistanceTableClient`` instances."""
    return DistanceTableClient


@pytest.fixture()
def make_constant_client() -> type[ConstantTableClient]:
    """Factory for ``ConstantTableClient`` instances."""
    return ConstantTableClient
