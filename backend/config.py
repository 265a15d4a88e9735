"""
設定ファイル - APIキー、外部サービス、ルート選択の定数
"""
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


class ConfigurationError(Exception):
    """必須設定が不足している"""


@dataclass
class APIConfig:
    """API関連の設定"""
    host: str = "0.0.0.0"
    port: int = 5174  # Vite のデフォルト 5173 を避ける
    title: str = "Shade Walk Route API"
    version: str = "1.0.0"

    # CORS設定
    cors_origins: List[str] = None

    def __post_init__(self):
        if self.cors_origins is None:
            self.cors_origins = ["*"]

@dataclass
class KeyConfig:
    """外部APIキー"""
    shademap_api_key: Optional[str] = None
    ors_api_key: Optional[str] = None

    def require_ors_key(self) -> str:
        if not self.ors_api_key:
            raise ConfigurationError("ORS_API_KEY not configured")
        return self.ors_api_key

@dataclass
class ServiceConfig:
    """外部サービスのURLとタイムアウト"""
    ors_base_url: str = "https://api.openrouteservice.org"
    osrm_base_url: str = "https://router.project-osrm.org"
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    backup_overpass_urls: List[str] = None

    # 外部API呼び出しのタイムアウト（秒）
    external_api_timeout: int = 30

    def __post_init__(self):
        if self.backup_overpass_urls is None:
            self.backup_overpass_urls = [
                "https://overpass.kumi.systems/api/interpreter",
            ]

@dataclass
class GeocodeConfig:
    """ジオコーディングの設定"""
    result_size: int = 5
    layers: str = "address,venue,street"
    sources: str = "osm"
    min_suggestion_length: int = 3

@dataclass
class RouteConfig:
    """ルート候補と日陰スコアの固定定数"""
    # 距離差がこれ未満のルートは重複（メートル）
    duplicate_threshold_m: float = 50.0

    # 最短ルート距離に対する日陰ルートの許容倍率
    shadiest_distance_factor: float = 1.5

    # ウェイポイント生成（度）
    waypoint_min_distance: float = 0.005  # 約500m
    two_waypoint_distance: float = 0.01  # 約1km
    waypoint_offset_ratio: float = 0.3
    waypoint_offset_cap: float = 0.002  # 約200m
    waypoint_offset_factor: float = 0.7
    waypoint_fractions: Tuple[float, float] = (0.33, 0.67)

    # 日陰スコア
    daylight_hours: Tuple[int, int] = (6, 18)
    night_shade_score: float = 95.0
    base_shade_per_hour: float = 8.0
    base_shade_cap: float = 60.0
    variation_amplitude: float = 15.0
    shade_optimized_bonus: float = 20.0
    shade_optimized_min_points: int = 100

@dataclass
class CacheConfig:
    """キャッシュ関連の設定"""
    max_cache_size: int = 100  # 最大キャッシュアイテム数
    cache_ttl_seconds: int = 3600  # キャッシュの有効期限（1時間）
    geocode_cache_enabled: bool = True
    building_cache_enabled: bool = True

# 設定インスタンス
api_config = APIConfig()
key_config = KeyConfig()
service_config = ServiceConfig()
geocode_config = GeocodeConfig()
route_config = RouteConfig()
cache_config = CacheConfig()

# 環境変数からの設定上書き
def load_config_from_env():
    """環境変数から設定を読み込む"""
    key_config.shademap_api_key = os.getenv("SHADEMAP_API_KEY") or None
    key_config.ors_api_key = os.getenv("ORS_API_KEY") or None

    if os.getenv("PORT"):
        api_config.port = int(os.getenv("PORT"))

    if os.getenv("CORS_ORIGINS"):
        api_config.cors_origins = os.getenv("CORS_ORIGINS").split(",")

    if os.getenv("EXTERNAL_API_TIMEOUT"):
        service_config.external_api_timeout = int(os.getenv("EXTERNAL_API_TIMEOUT"))

    if os.getenv("CACHE_TTL"):
        cache_config.cache_ttl_seconds = int(os.getenv("CACHE_TTL"))

# 初期化時に環境変数を読み込む
load_config_from_env()
