"""Builders for route candidates and fake routing providers."""

from __future__ import annotations

from typing import List, Optional

from models import RouteCandidate, RouteGeometry, RouteProvider, SHADE_OPTIMIZED_VARIANT
from routing_providers import RoutingProviderError

SEATTLE_START = (47.60, -122.33)
SEATTLE_END = (47.62, -122.31)


def make_line(n_points: int = 3, start=SEATTLE_START, end=SEATTLE_END) -> List[List[float]]:
    """Straight [lng, lat] line with *n_points* points."""
    coords = []
    for i in range(n_points):
        t = i / (n_points - 1)
        coords.append([start[1] + (end[1] - start[1]) * t, start[0] + (end[0] - start[0]) * t])
    return coords


def make_candidate(
    distance: float,
    duration: Optional[float] = None,
    shade_score: Optional[float] = None,
    variant=1,
    n_points: int = 3,
    provider: RouteProvider = RouteProvider.ORS,
) -> RouteCandidate:
    return RouteCandidate(
        geometry=RouteGeometry(coordinates=make_line(n_points)),
        distance=distance,
        duration=duration if duration is not None else distance / 1.4,
        variant=variant,
        is_shade_optimized=variant == SHADE_OPTIMIZED_VARIANT,
        provider=provider,
        shade_score=shade_score,
        shade_percentage=round(shade_score) if shade_score is not None else None,
    )


def ors_geojson(distance: float, duration: float, n_points: int = 3, with_summary: bool = True) -> dict:
    """Minimal ORS directions GeoJSON response."""
    properties = {"segments": [{"distance": distance, "duration": duration}]}
    if with_summary:
        properties["summary"] = {"distance": distance, "duration": duration}
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [c + [12.0] for c in make_line(n_points)],
                },
                "properties": properties,
            }
        ],
    }


class FakePrimary:
    """Stands in for OpenRouteServiceProvider."""

    def __init__(self, alternatives=None, shade_route=None, error: Optional[Exception] = None):
        self.alternatives = alternatives or []
        self.shade_route = shade_route
        self.error = error
        self.route_through_calls = []

    async def get_alternatives(self, start, end):
        if self.error:
            raise self.error
        return list(self.alternatives)

    async def route_through(self, points):
        self.route_through_calls.append(list(points))
        return self.shade_route


class FakeFallback:
    """Stands in for OSRMProvider."""

    def __init__(self, routes=None, fail: bool = False):
        self.routes = routes or []
        self.fail = fail
        self.calls = 0

    async def get_routes(self, start, end):
        self.calls += 1
        if self.fail:
            raise RoutingProviderError("osrm down")
        return list(self.routes)
