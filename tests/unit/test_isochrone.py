"""Tests for the isochrone orchestrator.

Covers:
- End-to-end bands from a distance-based table client
- Empty results with a warning (unreachable origin, degenerate kernel)
- Request chunking and pacing, chunk-indexed failures
- Surface normalisation and band assembly
- Pluggable contourer, idempotence, input validation
"""

from __future__ import annotations

import logging

import httpx
import numpy as np
import pytest
from shapely.geometry import Point, Polygon, box

from osrm_isochrones.activities.contour import ContourBand
from osrm_isochrones.activities.fill_grid import UNREACHABLE_ORIGIN_MESSAGE
from osrm_isochrones.activities.plan_batches import plan_batches
from osrm_isochrones.activities.smooth_surface import DEGENERATE_KERNEL_MESSAGE
from osrm_isochrones.core.config import IsochroneConfig
from osrm_isochrones.core.constants import DEMO_SERVER, ISOCHRONE_COLUMNS
from osrm_isochrones.core.exceptions import InvalidBreaks, UnreachableOrigin, UnsupportedProfile
from osrm_isochrones.models.grid import GridCell
from osrm_isochrones.models.origin import Origin
from osrm_isochrones.orchestrators.isochrone import (
    assemble_bands,
    compute_isochrone,
    normalize_measures,
    query_chunks,
)
from osrm_isochrones.providers.base import RemoteQueryFailed, RemoteServiceUnavailable
from osrm_isochrones.providers.osrm import OsrmClient

BREAKS = (0, 2, 4, 6)

# With res=10 and tmax=6 (car) the grid corner is ~20.7 km from the origin,
# so every cell is reached within 6 minutes.
REACH_M = 21_000.0
REACH_MIN = 6.0


class _Sleeps:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class TestComputeIsochrone:
    """End-to-end orchestration with an in-memory client."""

    def test_three_bands(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin, BREAKS, config=IsochroneConfig(res=10), client=client
        )

        assert len(result) == 3
        assert [b.id for b in result] == [1, 2, 3]
        assert [b.isomin for b in result] == [0.0, 2.0, 4.0]
        assert [b.isomax for b in result] == [2.0, 4.0, 6.0]
        assert result.crs == "EPSG:4326"
        assert result.warning == ""
        assert client.calls == [100]

    def test_first_band_contains_origin(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin, BREAKS, config=IsochroneConfig(res=10), client=client
        )
        assert result[0].geometry.contains(Point(berlin.lon, berlin.lat))
        # Output is lon/lat, not metres
        min_x, min_y, max_x, max_y = result[-1].geometry.bounds
        assert 12.5 < min_x < max_x < 14.5
        assert 52.0 < min_y < max_y < 53.0

    def test_breaks_sorted_and_deduplicated(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin, [6, 2, 4, 0, 4], config=IsochroneConfig(res=10), client=client
        )
        assert [b.isomin for b in result] == [0.0, 2.0, 4.0]

    def test_empty_interior_band_keeps_intervals_contiguous(
        self, berlin: Origin, make_distance_client
    ) -> None:
        # No grid cell falls within [2, 2.05) minutes at res=10
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin, (0, 2, 2.05, 4, 6), config=IsochroneConfig(res=10), client=client
        )
        spans = [(b.isomin, b.isomax) for b in result]
        assert spans == [(0.0, 2.0), (2.0, 4.0), (4.0, 6.0)]
        for previous, current in zip(result.bands, result.bands[1:], strict=False):
            assert current.isomin == previous.isomax

    def test_first_band_starts_at_zero(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin, (1, 4, 6), config=IsochroneConfig(res=10), client=client
        )
        assert result[0].isomin == 0.0
        assert result[0].isomax == 4.0

    def test_output_in_source_crs(self, berlin_mercator: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin_mercator, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin_mercator, BREAKS, config=IsochroneConfig(res=10), client=client
        )
        assert result.crs == "EPSG:3857"
        # Web Mercator metres around Berlin
        assert result[0].geometry.centroid.x == pytest.approx(1_495_000, rel=0.01)

    def test_exclude_passed_through(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        compute_isochrone(
            berlin, BREAKS, config=IsochroneConfig(res=10, exclude="motorway"), client=client
        )
        assert client.excludes == ["motorway"]

    def test_idempotent(self, berlin: Origin, make_distance_client) -> None:
        config = IsochroneConfig(res=10)
        first = compute_isochrone(
            berlin,
            BREAKS,
            config=config,
            client=make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN),
        )
        second = compute_isochrone(
            berlin,
            BREAKS,
            config=config,
            client=make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN),
        )
        assert len(first) == len(second)
        for a, b in zip(first, second, strict=True):
            assert (a.id, a.isomin, a.isomax) == (b.id, b.isomin, b.isomax)
            assert a.geometry.equals(b.geometry)

    def test_smoothed(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin, BREAKS, config=IsochroneConfig(res=10, smooth=True), client=client
        )
        assert not result.is_empty
        assert result.warning == ""
        assert result[0].isomin == 0.0
        assert [b.isomin for b in result] == sorted(b.isomin for b in result)

    def test_pluggable_contourer(self, berlin: Origin, make_distance_client) -> None:
        seen: list[tuple[float, ...]] = []
        square = box(
            berlin.projected_x - 100,
            berlin.projected_y - 100,
            berlin.projected_x + 100,
            berlin.projected_y + 100,
        )

        def fake_contourer(grid, breaks):
            seen.append(tuple(breaks))
            return [ContourBand(0.0, 6.0, square), ContourBand(6.0, 7.0, Polygon())]

        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(
            berlin, (0, 6), config=IsochroneConfig(res=10), client=client, contourer=fake_contourer
        )
        assert seen == [(0.0, 6.0)]
        assert len(result) == 1
        assert result[0].geometry.contains(Point(berlin.lon, berlin.lat))


class TestEmptyResults:
    """Recoverable failures return an empty collection with a warning."""

    def test_no_routes(self, berlin_mercator: Origin, make_constant_client, caplog) -> None:
        client = make_constant_client(None)
        with caplog.at_level(logging.WARNING):
            result = compute_isochrone(
                berlin_mercator, BREAKS, config=IsochroneConfig(res=5), client=client
            )

        assert result.is_empty
        assert len(result) == 0
        assert result.crs == "EPSG:3857"
        assert result.columns == ISOCHRONE_COLUMNS
        assert result.warning == UNREACHABLE_ORIGIN_MESSAGE
        assert "too far from the routing network" in caplog.text

    def test_everything_beyond_tmax(self, berlin: Origin, make_constant_client) -> None:
        result = compute_isochrone(
            berlin, BREAKS, config=IsochroneConfig(res=5), client=make_constant_client(3600.0)
        )
        assert result.is_empty
        assert result.crs == "EPSG:4326"
        assert result.warning == UNREACHABLE_ORIGIN_MESSAGE

    def test_degenerate_kernel(self, berlin: Origin, make_distance_client, caplog) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        config = IsochroneConfig(res=10, smooth=True, k=1.0)
        with caplog.at_level(logging.WARNING):
            result = compute_isochrone(berlin, BREAKS, config=config, client=client)

        assert result.is_empty
        assert result.warning == DEGENERATE_KERNEL_MESSAGE
        assert "larger kernel size" in caplog.text
        assert "too far" not in caplog.text

    def test_geojson_of_empty_result(self, berlin: Origin, make_constant_client) -> None:
        result = compute_isochrone(
            berlin, BREAKS, config=IsochroneConfig(res=5), client=make_constant_client(None)
        )
        payload = result.to_geojson()
        assert payload["features"] == []
        assert payload["crs"]["properties"]["name"] == "EPSG:4326"


class TestRequestPacing:
    """Chunking, pacing and chunk-level failures."""

    def test_demo_server_chunks_and_pauses(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        sleeps = _Sleeps()
        compute_isochrone(
            berlin,
            BREAKS,
            config=IsochroneConfig(server=DEMO_SERVER, res=10),
            client=client,
            sleep=sleeps,
        )
        assert client.calls == [75, 25]
        assert sleeps.calls == [1.0]

    def test_default_server_never_pauses(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        sleeps = _Sleeps()
        compute_isochrone(
            berlin, BREAKS, config=IsochroneConfig(res=30), client=client, sleep=sleeps
        )
        assert client.calls == [450, 450]
        assert sleeps.calls == []

    def test_failing_chunk_aborts(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(
            berlin, reach_m=REACH_M, reach_min=REACH_MIN, fail_on_call=1
        )
        with pytest.raises(RemoteQueryFailed) as excinfo:
            compute_isochrone(
                berlin,
                BREAKS,
                config=IsochroneConfig(server=DEMO_SERVER, res=10),
                client=client,
                sleep=_Sleeps(),
            )

        err = excinfo.value
        assert err.chunk_index == 1
        assert err.status_code == 503
        assert err.retryable is True
        assert isinstance(err, RemoteServiceUnavailable)
        assert "chunk 1" in str(err)
        # No retry and no further chunks
        assert client.calls == [75, 25]

    def test_thousand_destinations_in_order(self, berlin: Origin, make_constant_client) -> None:
        cells = [
            GridCell(x=0.0, y=0.0, lon=13.0 + i * 1e-4, lat=52.0, col_index=i, row_index=0)
            for i in range(1000)
        ]
        client = make_constant_client(60.0)
        results = query_chunks(client, berlin, plan_batches(cells, 450))
        assert client.calls == [450, 450, 100]
        assert [len(r) for r in results] == [450, 450, 100]


class TestValidation:
    """Errors raised before any request."""

    def test_single_break(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        with pytest.raises(InvalidBreaks):
            compute_isochrone(berlin, [10], config=IsochroneConfig(), client=client)
        assert client.calls == []

    def test_unsupported_profile(self, berlin: Origin, make_distance_client) -> None:
        client = make_distance_client(berlin, reach_m=REACH_M, reach_min=REACH_MIN)
        with pytest.raises(UnsupportedProfile):
            compute_isochrone(
                berlin, BREAKS, config=IsochroneConfig(profile="plane"), client=client
            )
        assert client.calls == []


class TestNormalizeMeasures:
    """Unreachable sentinel on the unsmoothed path."""

    def test_sentinel(self) -> None:
        values = np.array([np.nan, np.inf, 7.0, 3.0, 0.0])
        np.testing.assert_array_equal(normalize_measures(values, 6.0), [7.0, 7.0, 7.0, 3.0, 0.0])

    def test_tmax_kept(self) -> None:
        assert normalize_measures(np.array([6.0]), 6.0)[0] == 6.0

    def test_input_not_modified(self) -> None:
        values = np.array([np.nan, 1.0])
        normalize_measures(values, 6.0)
        assert np.isnan(values[0])


class TestAssembleBands:
    """Trailing band removal, renumbering and reprojection."""

    @staticmethod
    def _square(berlin: Origin, half: float):
        return box(
            berlin.projected_x - half,
            berlin.projected_y - half,
            berlin.projected_x + half,
            berlin.projected_y + half,
        )

    def test_drops_trailing_and_empty_keeping_contiguity(self, berlin: Origin) -> None:
        bands = [
            ContourBand(0.0, 2.0, self._square(berlin, 100)),
            ContourBand(2.0, 4.0, Polygon()),
            ContourBand(4.0, 6.0, self._square(berlin, 300)),
            ContourBand(6.0, 7.0, self._square(berlin, 500)),
        ]
        result = assemble_bands(bands, berlin.projected_crs, "EPSG:4326")
        assert [(b.id, b.isomin, b.isomax) for b in result] == [(1, 0.0, 2.0), (2, 2.0, 6.0)]

    def test_first_isomin_forced_to_zero(self, berlin: Origin) -> None:
        bands = [
            ContourBand(5.0, 10.0, self._square(berlin, 100)),
            ContourBand(10.0, 11.0, self._square(berlin, 200)),
        ]
        result = assemble_bands(bands, berlin.projected_crs, berlin.projected_crs)
        assert result[0].isomin == 0.0
        assert result.crs == berlin.projected_crs
        assert result[0].geometry.equals(self._square(berlin, 100))

    def test_reprojects(self, berlin: Origin) -> None:
        bands = [
            ContourBand(0.0, 5.0, self._square(berlin, 100)),
            ContourBand(5.0, 6.0, Polygon()),
        ]
        result = assemble_bands(bands, berlin.projected_crs, "EPSG:4326")
        centroid = result[0].geometry.centroid
        assert centroid.x == pytest.approx(berlin.lon, abs=1e-4)
        assert centroid.y == pytest.approx(berlin.lat, abs=1e-4)

    def test_nothing_left(self, berlin: Origin) -> None:
        bands = [
            ContourBand(0.0, 5.0, Polygon()),
            ContourBand(5.0, 6.0, self._square(berlin, 100)),
        ]
        with pytest.raises(UnreachableOrigin):
            assemble_bands(bands, berlin.projected_crs, "EPSG:4326")


class TestOsrmRoundTrip:
    """Full call through the OSRM adapter over a mocked transport."""

    @staticmethod
    def _snapping_client(offset_deg: float) -> OsrmClient:
        def handler(request: httpx.Request) -> httpx.Response:
            coords = request.url.path.rsplit("/", 1)[-1].split(";")
            destinations = [tuple(map(float, c.split(","))) for c in coords[1:]]
            return httpx.Response(
                200,
                json={
                    "code": "Ok",
                    "durations": [[30.0] * len(destinations)],
                    "destinations": [
                        {"location": [lon + offset_deg, lat]} for lon, lat in destinations
                    ],
                },
            )

        http = httpx.Client(transport=httpx.MockTransport(handler))
        return OsrmClient(profile="foot", http_client=http)

    def test_road_snapping_on_walking_grid(self, berlin: Origin) -> None:
        client = self._snapping_client(0.0006)
        result = compute_isochrone(
            berlin, (0, 1, 2), config=IsochroneConfig(profile="foot"), client=client
        )
        assert result.warning == ""
        assert len(result) == 1
        assert (result[0].isomin, result[0].isomax) == (0.0, 1.0)

    def test_plain_origin_constructor(self, make_distance_client) -> None:
        origin = Origin(lon=13.43, lat=52.47)
        client = make_distance_client(origin, reach_m=REACH_M, reach_min=REACH_MIN)
        result = compute_isochrone(origin, BREAKS, config=IsochroneConfig(res=10), client=client)
        assert len(result) == 3
        assert result.crs == "EPSG:4326"
