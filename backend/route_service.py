"""
ルートサービス - 候補取得、日陰スコア付け、最短/日陰ルートの選択
"""
import logging
import time
from typing import List, Optional, Tuple

from config import route_config
from geocoding_service import GeocodingError, geocoding_service
from models import RouteCandidate, RouteMode, RouteResponse
from routing_providers import RoutingProviderError, dedupe_routes, ors_provider, osrm_provider
from shade_service import format_time, shade_service
from waypoint_service import waypoint_service

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]


class RouteNotFoundError(Exception):
    """徒歩ルートが1つも見つからなかった"""


def select_route(candidates: List[RouteCandidate], mode: RouteMode) -> int:
    """選択するルートの位置を返す

    先頭の候補を最短ルートとみなす。日陰モードでは最短距離の1.5倍以内の候補から
    日陰スコア最大のもの（同点なら先のもの）を選び、該当がなければ先頭に戻る。
    """
    if not candidates:
        raise RouteNotFoundError("No walking routes found")

    if mode == RouteMode.FASTEST:
        return 0

    max_distance = candidates[0].distance * route_config.shadiest_distance_factor
    best_index = None
    for index, candidate in enumerate(candidates):
        if candidate.distance > max_distance:
            continue
        if best_index is None or (candidate.shade_score or 0) > (candidates[best_index].shade_score or 0):
            best_index = index

    return 0 if best_index is None else best_index


class RouteService:
    """ルートサービス"""

    def __init__(self, primary=None, fallback=None):
        self.primary = primary or ors_provider
        self.fallback = fallback or osrm_provider

    async def _shade_optimized_route(self, start: LatLng, end: LatLng,
                                     minutes_of_day: int) -> Optional[RouteCandidate]:
        """太陽と反対側に寄せたウェイポイント経由のルート"""
        azimuth = waypoint_service.sun_azimuth(minutes_of_day)
        waypoints = waypoint_service.generate_shaded_waypoints(start, end, azimuth)
        if not waypoints:
            return None

        return await self.primary.route_through([start, *waypoints, end])

    async def collect_candidates(self, start: LatLng, end: LatLng,
                                 minutes_of_day: int) -> List[RouteCandidate]:
        """スコア前のルート候補を集める（ORS失敗時はOSRMを一度だけ試す）"""
        try:
            routes = dedupe_routes(await self.primary.get_alternatives(start, end))

            shade_route = await self._shade_optimized_route(start, end, minutes_of_day)
            if shade_route:
                routes.append(shade_route)
        except RoutingProviderError as e:
            logger.error(f"OpenRouteService routing failed: {e}")
            try:
                routes = await self.fallback.get_routes(start, end)
            except RoutingProviderError as fallback_error:
                logger.error(f"Fallback routing failed: {fallback_error}")
                routes = []

        if not routes:
            raise RouteNotFoundError("No walking routes found")
        return routes

    def build_response(self, routes: List[RouteCandidate], minutes_of_day: Optional[int],
                       mode: RouteMode, start: Optional[LatLng] = None,
                       end: Optional[LatLng] = None,
                       started_at: Optional[float] = None) -> RouteResponse:
        index = select_route(routes, mode)
        selected = routes[index]

        logger.info(
            f"Selected {mode.value} route #{selected.route_index}: "
            f"{selected.shade_percentage}% shade, {selected.distance / 1000:.2f}km"
        )

        return RouteResponse(
            start=list(start) if start else None,
            end=list(end) if end else None,
            minutes_of_day=minutes_of_day,
            time_label=format_time(minutes_of_day) if minutes_of_day is not None else None,
            mode=mode,
            routes=routes,
            selected=selected,
            selected_index=index,
            calculation_time_ms=int((time.time() - started_at) * 1000) if started_at else None,
        )

    async def calculate_routes(self, start: LatLng, end: LatLng, minutes_of_day: int,
                               mode: RouteMode = RouteMode.FASTEST) -> RouteResponse:
        """座標間のルート候補を取得し、スコアを付けて選択する"""
        started_at = time.time()

        routes = await self.collect_candidates(start, end, minutes_of_day)
        scored = shade_service.score_candidates(routes, minutes_of_day)

        return self.build_response(scored, minutes_of_day, mode, start, end, started_at)

    async def calculate_routes_for_addresses(self, start_address: str, end_address: str,
                                             minutes_of_day: int,
                                             mode: RouteMode = RouteMode.FASTEST) -> RouteResponse:
        """住所を順にジオコーディングしてからルートを計算する"""
        start = await geocoding_service.geocode(start_address)
        end = await geocoding_service.geocode(end_address)

        if not start or not end:
            raise GeocodingError("Could not find one or both addresses")

        return await self.calculate_routes(start, end, minutes_of_day, mode)

    def rescore(self, routes: List[RouteCandidate], minutes_of_day: int,
                mode: RouteMode = RouteMode.FASTEST) -> RouteResponse:
        """時刻変更後にスコアを付け直して選び直す"""
        scored = shade_service.score_candidates(routes, minutes_of_day)
        return self.build_response(scored, minutes_of_day, mode)

    def select(self, routes: List[RouteCandidate], mode: RouteMode) -> RouteResponse:
        """スコア済み候補からモードに応じて選び直す"""
        return self.build_response(routes, None, mode)

# グローバルサービスインスタンス
route_service = RouteService()
