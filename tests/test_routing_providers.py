"""OpenRouteService and OSRM clients with outbound HTTP patched out."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from http_client import ExternalAPIError
from models import RouteProvider, SHADE_OPTIMIZED_VARIANT
from route_factories import SEATTLE_END, SEATTLE_START, ors_geojson
from routing_providers import OpenRouteServiceProvider, OSRMProvider, RoutingProviderError


@pytest.fixture
def ors():
    return OpenRouteServiceProvider()


def test_alternatives_drop_failed_requests(ors, api_keys):
    get_json = AsyncMock(return_value=ors_geojson(1000, 720))
    post_json = AsyncMock(side_effect=[ExternalAPIError("boom", 500), ors_geojson(1300, 950)])
    with patch.object(ors, "_get_json", get_json), patch.object(ors, "_post_json", post_json):
        routes = asyncio.run(ors.get_alternatives(SEATTLE_START, SEATTLE_END))

    assert [r.variant for r in routes] == [1, 3]
    assert [r.distance for r in routes] == [1000, 1300]
    assert all(r.provider == RouteProvider.ORS for r in routes)


def test_standard_request_uses_lng_lat_query(ors, api_keys):
    get_json = AsyncMock(return_value=ors_geojson(1000, 720))
    post_json = AsyncMock(return_value=ors_geojson(1100, 800))
    with patch.object(ors, "_get_json", get_json), patch.object(ors, "_post_json", post_json):
        asyncio.run(ors.get_alternatives(SEATTLE_START, SEATTLE_END))

    params = get_json.await_args.kwargs["params"]
    assert params["start"] == "-122.33,47.6"
    assert params["end"] == "-122.31,47.62"
    assert params["api_key"] == "test-ors-key"

    options = [c.args[1]["options"] for c in post_json.await_args_list]
    assert options[0] == {"avoid_features": ["highways", "tollways"]}
    assert options[1] == {"avoid_features": ["highways"], "prefer_green": True}


def test_alternatives_require_api_key(ors, no_api_keys):
    with pytest.raises(RoutingProviderError):
        asyncio.run(ors.get_alternatives(SEATTLE_START, SEATTLE_END))


def test_alternatives_all_failed_raise(ors, api_keys):
    failing = AsyncMock(side_effect=ExternalAPIError("down"))
    with patch.object(ors, "_get_json", failing), patch.object(ors, "_post_json", failing):
        with pytest.raises(RoutingProviderError):
            asyncio.run(ors.get_alternatives(SEATTLE_START, SEATTLE_END))


def test_distance_summed_from_segments_without_summary(ors):
    data = ors_geojson(1000, 720, with_summary=False)
    data["features"][0]["properties"]["segments"].append({"distance": 500, "duration": 360})

    candidate = ors._parse_response(data, variant=2)

    assert candidate.distance == 1500
    assert candidate.duration == 1080
    assert all(len(point) == 2 for point in candidate.geometry.coordinates)


def test_empty_feature_collection_parses_to_none(ors):
    assert ors._parse_response({"features": []}, variant=1) is None


def test_route_through_waypoints(ors, api_keys):
    post_json = AsyncMock(return_value=ors_geojson(1800, 1300, n_points=120))
    points = [SEATTLE_START, (47.61, -122.32), SEATTLE_END]
    with patch.object(ors, "_post_json", post_json):
        candidate = asyncio.run(ors.route_through(points))

    assert candidate.variant == SHADE_OPTIMIZED_VARIANT
    assert candidate.is_shade_optimized
    body = post_json.await_args.args[1]
    assert body["coordinates"] == [[-122.33, 47.60], [-122.32, 47.61], [-122.31, 47.62]]
    assert "options" not in body


def test_route_through_failure_returns_none(ors, api_keys):
    with patch.object(ors, "_post_json", AsyncMock(side_effect=ExternalAPIError("down"))):
        assert asyncio.run(ors.route_through([SEATTLE_START, SEATTLE_END])) is None


def test_route_through_needs_two_points(ors, api_keys):
    assert asyncio.run(ors.route_through([SEATTLE_START])) is None


def test_osrm_routes_parsed():
    osrm = OSRMProvider()
    data = {
        "code": "Ok",
        "routes": [
            {"geometry": {"coordinates": [[-122.33, 47.60], [-122.31, 47.62]]}, "distance": 2900, "duration": 2100},
            {"geometry": {"coordinates": [[-122.33, 47.60], [-122.32, 47.61], [-122.31, 47.62]]}, "distance": 3100, "duration": 2300},
        ],
    }
    get_json = AsyncMock(return_value=data)
    with patch.object(osrm, "_get_json", get_json):
        routes = asyncio.run(osrm.get_routes(SEATTLE_START, SEATTLE_END))

    assert [r.distance for r in routes] == [2900, 3100]
    assert all(r.provider == RouteProvider.OSRM for r in routes)
    assert get_json.await_args.args[0].endswith("/route/v1/foot/-122.33,47.6;-122.31,47.62")
    assert get_json.await_args.kwargs["params"]["alternatives"] == "true"


def test_osrm_failure_raises():
    osrm = OSRMProvider()
    with patch.object(osrm, "_get_json", AsyncMock(side_effect=ExternalAPIError("down"))):
        with pytest.raises(RoutingProviderError):
            asyncio.run(osrm.get_routes(SEATTLE_START, SEATTLE_END))
