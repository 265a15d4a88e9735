"""
ジオコーディングサービス - OpenRouteService geocode/search のプロキシ
"""
import hashlib
import logging
from typing import Any, Dict, List, Optional, Tuple

from config import ConfigurationError, geocode_config, key_config, service_config
from cache_manager import cache_manager
from http_client import ExternalAPIClient, ExternalAPIError
from models import GeocodeSuggestion

logger = logging.getLogger(__name__)


class GeocodingError(Exception):
    """住所を座標に変換できなかった"""


class GeocodingService(ExternalAPIClient):
    """ジオコーディングサービス"""

    def _generate_cache_key(self, text: str) -> str:
        return hashlib.md5(text.strip().lower().encode()).hexdigest()

    async def search(self, text: str) -> Dict[str, Any]:
        """ORSの検索結果JSONをそのまま返す"""
        try:
            api_key = key_config.require_ors_key()
        except ConfigurationError as e:
            raise GeocodingError(str(e)) from e

        cache_key = self._generate_cache_key(text)
        cached = cache_manager.get_geocode(cache_key)
        if cached is not None:
            logger.debug(f"Using cached geocode result for '{text}'")
            return cached

        params = {
            "api_key": api_key,
            "text": text,
            "size": geocode_config.result_size,
            "layers": geocode_config.layers,
            "sources": geocode_config.sources,
        }
        try:
            data = await self._get_json(f"{service_config.ors_base_url}/geocode/search", params=params)
        except ExternalAPIError as e:
            # クォータ超過などのJSONエラー本文はそのまま返す（キャッシュしない）
            if isinstance(e.payload, dict):
                logger.warning(f"Geocoding returned {e.status}, passing error body through")
                return e.payload
            logger.error(f"Geocoding request failed: {e}")
            raise GeocodingError("Geocoding failed") from e

        cache_manager.set_geocode(cache_key, data)
        return data

    async def geocode(self, text: str) -> Optional[Tuple[float, float]]:
        """住所を [latitude, longitude] に変換（見つからなければ None）"""
        try:
            data = await self.search(text)
            features = data.get("features") or []
            if not features:
                return None
            lon, lat = features[0]["geometry"]["coordinates"][:2]
            return float(lat), float(lon)
        except (GeocodingError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Geocoding '{text}' failed: {e}")
            return None

    async def suggest(self, text: str) -> List[GeocodeSuggestion]:
        """入力補完用の住所候補（3文字未満や失敗時は空リスト）"""
        if len(text.strip()) < geocode_config.min_suggestion_length:
            return []

        try:
            data = await self.search(text)
            suggestions = []
            for feature in data.get("features") or []:
                properties = feature.get("properties", {})
                lon, lat = feature["geometry"]["coordinates"][:2]
                suggestions.append(GeocodeSuggestion(
                    name=properties.get("name") or properties.get("label"),
                    display_name=properties.get("label"),
                    lat=lat,
                    lon=lon,
                ))
            return suggestions
        except (GeocodingError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Address suggestions for '{text}' failed: {e}")
            return []

# グローバルサービスインスタンス
geocoding_service = GeocodingService()
