"""
ルーティングプロバイダー - OpenRouteService と OSRM（フォールバック）
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config import ConfigurationError, key_config, route_config, service_config
from http_client import ExternalAPIClient, ExternalAPIError
from models import RouteCandidate, RouteGeometry, RouteProvider, SHADE_OPTIMIZED_VARIANT

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]


class RoutingProviderError(Exception):
    """ルーティングAPIから候補を1つも取得できなかった"""


def dedupe_routes(candidates: List[RouteCandidate],
                  threshold_m: Optional[float] = None) -> List[RouteCandidate]:
    """距離差が閾値未満の候補を重複とみなし、先に出たものを残す"""
    if threshold_m is None:
        threshold_m = route_config.duplicate_threshold_m

    unique: List[RouteCandidate] = []
    for candidate in candidates:
        if any(abs(existing.distance - candidate.distance) < threshold_m for existing in unique):
            logger.debug(f"Dropping duplicate route variant {candidate.variant} ({candidate.distance:.0f}m)")
            continue
        unique.append(candidate)
    return unique


def _to_lng_lat(point: LatLng) -> List[float]:
    return [point[1], point[0]]


class OpenRouteServiceProvider(ExternalAPIClient):
    """OpenRouteService routing provider"""

    name = RouteProvider.ORS

    @property
    def directions_url(self) -> str:
        return f"{service_config.ors_base_url}/v2/directions/foot-walking"

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": api_key,
            "Content-Type": "application/json",
        }

    def _parse_response(self, data: Dict[str, Any], variant) -> Optional[RouteCandidate]:
        """GeoJSONレスポンスを RouteCandidate に変換"""
        features = data.get("features") if isinstance(data, dict) else None
        if not features:
            return None

        feature = features[0]
        properties = feature.get("properties", {})
        summary = properties.get("summary") or {}
        segments = properties.get("segments") or []

        if "distance" in summary:
            distance = summary["distance"]
            duration = summary.get("duration", 0.0)
        elif segments:
            distance = sum(s.get("distance", 0.0) for s in segments)
            duration = sum(s.get("duration", 0.0) for s in segments)
        else:
            return None

        coordinates = [coord[:2] for coord in feature["geometry"]["coordinates"]]
        return RouteCandidate(
            geometry=RouteGeometry(coordinates=coordinates),
            distance=distance,
            duration=duration,
            variant=variant,
            is_shade_optimized=variant == SHADE_OPTIMIZED_VARIANT,
            provider=self.name,
        )

    async def _standard_route(self, api_key: str, start: LatLng, end: LatLng) -> Any:
        params = {
            "api_key": api_key,
            "start": f"{start[1]},{start[0]}",
            "end": f"{end[1]},{end[0]}",
        }
        return await self._get_json(self.directions_url, params=params)

    async def _post_route(self, api_key: str, points: Sequence[LatLng],
                          options: Optional[Dict[str, Any]] = None) -> Any:
        body: Dict[str, Any] = {
            "coordinates": [_to_lng_lat(p) for p in points],
        }
        if options:
            body["options"] = options
        return await self._post_json(f"{self.directions_url}/geojson", body, headers=self._headers(api_key))

    async def get_alternatives(self, start: LatLng, end: LatLng) -> List[RouteCandidate]:
        """3種類のリクエストを並列に投げ、成功したものだけを返す"""
        try:
            api_key = key_config.require_ors_key()
        except ConfigurationError as e:
            raise RoutingProviderError("OpenRouteService API key not available") from e

        requests = [
            # 標準の最短ルート
            self._standard_route(api_key, start, end),
            # 高速道路・有料道路を避ける
            self._post_route(api_key, [start, end], {"avoid_features": ["highways", "tollways"]}),
            # 緑地を優先
            self._post_route(api_key, [start, end], {"avoid_features": ["highways"], "prefer_green": True}),
        ]
        results = await asyncio.gather(*requests, return_exceptions=True)

        candidates = []
        for i, result in enumerate(results):
            if isinstance(result, Exception):
                logger.warning(f"ORS alternative {i + 1} failed: {result}")
                continue
            try:
                candidate = self._parse_response(result, variant=i + 1)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"ORS alternative {i + 1} unparseable: {e}")
                continue
            if candidate:
                candidates.append(candidate)

        if not candidates:
            raise RoutingProviderError("OpenRouteService returned no routes")

        logger.info(f"ORS returned {len(candidates)} of {len(requests)} alternatives")
        return candidates

    async def route_through(self, points: Sequence[LatLng]) -> Optional[RouteCandidate]:
        """ウェイポイントを経由するルート（失敗時は None）"""
        api_key = key_config.ors_api_key
        if not api_key or len(points) < 2:
            return None

        try:
            data = await self._post_route(api_key, points)
            return self._parse_response(data, variant=SHADE_OPTIMIZED_VARIANT)
        except (ExternalAPIError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Waypoint route failed: {e}")
            return None


class OSRMProvider(ExternalAPIClient):
    """公開OSRMサーバー（ORS失敗時のフォールバック）"""

    name = RouteProvider.OSRM

    async def get_routes(self, start: LatLng, end: LatLng) -> List[RouteCandidate]:
        url = (
            f"{service_config.osrm_base_url}/route/v1/foot/"
            f"{start[1]},{start[0]};{end[1]},{end[0]}"
        )
        params = {"overview": "full", "geometries": "geojson", "alternatives": "true"}

        try:
            data = await self._get_json(url, params=params)
        except ExternalAPIError as e:
            raise RoutingProviderError(f"OSRM request failed: {e}") from e

        candidates = []
        for i, route in enumerate(data.get("routes") or []):
            try:
                candidates.append(RouteCandidate(
                    geometry=RouteGeometry(coordinates=[c[:2] for c in route["geometry"]["coordinates"]]),
                    distance=route["distance"],
                    duration=route["duration"],
                    variant=i + 1,
                    provider=self.name,
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"OSRM route {i + 1} unparseable: {e}")

        logger.info(f"OSRM returned {len(candidates)} routes")
        return candidates

# グローバルプロバイダーインスタンス
ors_provider = OpenRouteServiceProvider()
osrm_provider = OSRMProvider()
