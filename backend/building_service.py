"""
建物サービス - 影オーバーレイ用の建物フットプリントと高さ推定
"""
import hashlib
import logging
import re
import time
from typing import Any, Dict, List, Optional, Tuple

from config import service_config
from cache_manager import cache_manager
from http_client import ExternalAPIClient, ExternalAPIError
from models import Building, BuildingCollection, BuildingGeometry, BuildingProperties

logger = logging.getLogger(__name__)

# (south, west, north, east)
BBox = Tuple[float, float, float, float]

MIN_BUILDING_ZOOM = 11

# 建物タイプ別の推定高さ（メートル）
HEIGHT_BY_TYPE = {
    "apartments": 15.0,
    "residential": 15.0,
    "commercial": 25.0,
    "office": 25.0,
    "industrial": 12.0,
    "warehouse": 12.0,
    "retail": 6.0,
    "shop": 6.0,
    "house": 8.0,
    "detached": 8.0,
    "school": 18.0,
    "hospital": 18.0,
    "hotel": 30.0,
}
DEFAULT_HEIGHT = 9.0
MIN_HEIGHT = 3.0
METERS_PER_LEVEL = 3.5

MAJOR_BUILDING_TYPES = "apartments|commercial|office|industrial|retail|warehouse|school|hospital|hotel"


def query_tier(zoom: int) -> Optional[str]:
    """ズームに応じた取得範囲（低ズームでは取得しない）"""
    if zoom <= MIN_BUILDING_ZOOM:
        return None
    if zoom > 16:
        return "all"
    if zoom > 13:
        return "significant"
    return "major"


def estimate_building_height(tags: Dict[str, Any]) -> float:
    """建物の高さを推定（heightタグはそのまま、推定値のみ最低3m）"""
    if tags.get("height"):
        match = re.match(r"^\s*([0-9]+(?:\.[0-9]+)?)", str(tags["height"]))
        if match:
            return float(match.group(1))

    levels = tags.get("building:levels") or tags.get("levels")
    if levels:
        match = re.match(r"^\s*([0-9]+)", str(levels))
        if match:
            return max(MIN_HEIGHT, int(match.group(1)) * METERS_PER_LEVEL)

    return max(MIN_HEIGHT, HEIGHT_BY_TYPE.get(tags.get("building", "yes"), DEFAULT_HEIGHT))


class BuildingService(ExternalAPIClient):
    """建物サービス"""

    def _generate_cache_key(self, bbox: BBox, tier: str) -> str:
        bbox_str = f"{bbox[0]:.6f},{bbox[1]:.6f},{bbox[2]:.6f},{bbox[3]:.6f}:{tier}"
        return hashlib.md5(bbox_str.encode()).hexdigest()

    def create_overpass_query(self, bbox: BBox, tier: str) -> str:
        """Overpassクエリを生成"""
        area = f"({bbox[0]},{bbox[1]},{bbox[2]},{bbox[3]})"

        if tier == "all":
            selectors = [f'way["building"]{area};']
            timeout = 25
        elif tier == "significant":
            selectors = [
                f'way["building"]["building"!="garage"]["building"!="shed"]["building"!="cabin"]{area};'
            ]
            timeout = 25
        else:
            selectors = [
                f'way["building"~"^({MAJOR_BUILDING_TYPES})$"]{area};',
                f'way["building:levels"~"^[3-9]+$"]{area};',
                f'way["height"~"^[1-9][0-9]+$"]{area};',
            ]
            timeout = 30

        body = "\n  ".join(selectors)
        return f"[out:json][timeout:{timeout}];\n(\n  {body}\n);\nout geom;"

    async def _fetch_from_overpass(self, query: str) -> Optional[Dict]:
        """メインURL、続いてバックアップURLを試行"""
        for url in [service_config.overpass_url, *service_config.backup_overpass_urls]:
            try:
                return await self._request_json("POST", url, data={"data": query})
            except ExternalAPIError as e:
                logger.warning(f"Overpass API error at {url}: {e}")
        return None

    def process_building_element(self, element: Dict[str, Any]) -> Optional[Building]:
        """way要素をGeoJSONポリゴンに変換"""
        if element.get("type") != "way" or "geometry" not in element:
            return None

        coordinates = [[coord["lon"], coord["lat"]] for coord in element["geometry"]]
        if len(coordinates) < 3:
            return None

        # 閉じた多角形にする
        if coordinates[0] != coordinates[-1]:
            coordinates.append(coordinates[0])

        tags = element.get("tags", {})
        height = estimate_building_height(tags)
        levels = tags.get("building:levels")

        return Building(
            geometry=BuildingGeometry(type="Polygon", coordinates=[coordinates]),
            properties=BuildingProperties(
                building=tags.get("building", "yes"),
                height=height,
                render_height=height,
                osm_id=element.get("id"),
                levels=str(levels) if levels is not None else None,
            )
        )

    async def get_buildings(self, bbox: BBox, zoom: int) -> BuildingCollection:
        """表示範囲の建物データを取得（失敗時は空）"""
        tier = query_tier(zoom)
        if tier is None:
            return BuildingCollection(features=[])

        cache_key = self._generate_cache_key(bbox, tier)
        cached_data = cache_manager.get_buildings(cache_key)
        if cached_data:
            logger.info(f"Using cached building data for bbox: {bbox}")
            return BuildingCollection(**cached_data)

        start_time = time.time()
        osm_data = await self._fetch_from_overpass(self.create_overpass_query(bbox, tier))
        if not osm_data:
            logger.error("Failed to fetch building data from all sources")
            return BuildingCollection(features=[])

        buildings: List[Building] = []
        for element in osm_data.get("elements", []):
            try:
                building = self.process_building_element(element)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Building processing error: {e}")
                continue
            if building:
                buildings.append(building)

        collection = BuildingCollection(features=buildings)
        cache_manager.set_buildings(cache_key, collection.model_dump())

        logger.info(f"Loaded {len(buildings)} buildings at zoom {zoom} in {time.time() - start_time:.2f}s")
        return collection

# グローバルサービスインスタンス
building_service = BuildingService()
