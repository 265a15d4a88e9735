"""
日陰スコアサービス - 時刻とルート形状からの簡易日陰推定

影マップの実データは参照しない。時刻による基本値と、ルートの点数と始点座標から
作る擬似乱数の揺らぎを足し合わせるだけの推定値。
"""
import logging
import math
from typing import List, Sequence

from config import route_config
from models import RouteCandidate

logger = logging.getLogger(__name__)


def format_time(minutes: float) -> str:
    """0時からの分を "h:mm AM/PM" 形式に変換"""
    total_minutes = max(0, min(1439, int(math.floor(minutes + 0.5))))
    h24, minute = divmod(total_minutes, 60)
    period = "AM" if h24 < 12 else "PM"
    h12 = h24 % 12 or 12
    return f"{h12}:{minute:02d} {period}"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class ShadeService:
    """日陰スコアサービス"""

    def is_daylight(self, hour: int) -> bool:
        start, end = route_config.daylight_hours
        return start <= hour < end

    def base_shade(self, hour: int) -> float:
        """正午から離れるほど日陰が増える（上限あり）"""
        return min(abs(hour - 12) * route_config.base_shade_per_hour, route_config.base_shade_cap)

    def route_variation(self, coordinates: Sequence[Sequence[float]]) -> float:
        """点数と始点座標から作る揺らぎ（通常 0-30、点数の多いルートは 20-50）"""
        first = coordinates[0]
        route_hash = len(coordinates) + first[0] + first[1]
        variation = (math.sin(route_hash) + 1) * route_config.variation_amplitude

        if len(coordinates) > route_config.shade_optimized_min_points:
            variation += route_config.shade_optimized_bonus

        return variation

    def calculate_shade_score(self, coordinates: Sequence[Sequence[float]], minutes_of_day: int) -> float:
        """日陰スコア (0-100) を計算"""
        hour = int(minutes_of_day) // 60

        if not self.is_daylight(hour):
            return route_config.night_shade_score

        score = self.base_shade(hour) + self.route_variation(coordinates)
        return min(100.0, max(0.0, score))

    def score_candidates(self, candidates: List[RouteCandidate], minutes_of_day: int) -> List[RouteCandidate]:
        """全候補にスコアと候補番号を付けた新しいリストを返す"""
        scored = []
        for index, candidate in enumerate(candidates):
            score = self.calculate_shade_score(candidate.geometry.coordinates, minutes_of_day)
            scored.append(candidate.model_copy(update={
                "shade_score": score,
                "shade_percentage": round_half_up(score),
                "route_index": index + 1,
            }))

        logger.info(
            f"Scored {len(scored)} routes for {format_time(minutes_of_day)}: "
            + ", ".join(f"#{c.route_index}={c.shade_percentage}%" for c in scored)
        )
        return scored

# グローバルサービスインスタンス
shade_service = ShadeService()
