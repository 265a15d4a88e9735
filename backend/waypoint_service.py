"""
ウェイポイントサービス - 日陰ルート用の迂回ポイント生成
"""
import logging
import math
from typing import List, Tuple

from config import route_config

logger = logging.getLogger(__name__)

LatLng = Tuple[float, float]


class WaypointService:
    """ウェイポイントサービス"""

    def sun_azimuth(self, minutes_of_day: int) -> float:
        """簡易太陽方位角（午前は東→南、午後は南→西）"""
        time_decimal = (minutes_of_day // 60) + (minutes_of_day % 60) / 60.0

        if time_decimal < 12:
            return 90 + (time_decimal - 6) * 15
        return 180 + (time_decimal - 12) * 15

    def _offset(self, distance: float, sun_azimuth: float) -> Tuple[float, float]:
        """(緯度, 経度) のオフセット。午前は南西、午後は北東"""
        offset_distance = min(distance * route_config.waypoint_offset_ratio, route_config.waypoint_offset_cap)
        component = offset_distance * route_config.waypoint_offset_factor

        if sun_azimuth < 180:
            return -component, -component
        return component, component

    def generate_shaded_waypoints(self, start: LatLng, end: LatLng, sun_azimuth: float) -> List[LatLng]:
        """開始・終了地点 [lat, lng] の間に 0-2 個のウェイポイントを生成"""
        d_lat = end[0] - start[0]
        d_lng = end[1] - start[1]
        distance = math.sqrt(d_lat ** 2 + d_lng ** 2)

        # 約500m未満は迂回しない
        if distance < route_config.waypoint_min_distance:
            return []

        lat_offset, lng_offset = self._offset(distance, sun_azimuth)

        if distance > route_config.two_waypoint_distance:
            fractions = route_config.waypoint_fractions
        else:
            fractions = (0.5,)

        waypoints = [
            (start[0] + d_lat * fraction + lat_offset, start[1] + d_lng * fraction + lng_offset)
            for fraction in fractions
        ]

        logger.debug(f"Generated {len(waypoints)} waypoints (azimuth {sun_azimuth:.1f})")
        return waypoints

# グローバルサービスインスタンス
waypoint_service = WaypointService()
