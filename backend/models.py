"""
データモデル - 型安全性とバリデーション強化
"""
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator
from enum import Enum


def _validate_lat_lng(v: List[float]) -> List[float]:
    """[latitude, longitude] の妥当性チェック"""
    if len(v) != 2:
        raise ValueError('coordinates must be [latitude, longitude]')

    lat, lng = v
    if not (-90 <= lat <= 90):
        raise ValueError('latitude must be between -90 and 90')
    if not (-180 <= lng <= 180):
        raise ValueError('longitude must be between -180 and 180')

    return v

class RouteMode(str, Enum):
    """ルート選択モード"""
    FASTEST = "fastest"
    SHADIEST = "shadiest"

class RouteProvider(str, Enum):
    """ルーティングAPI"""
    ORS = "ors"
    OSRM = "osrm"

SHADE_OPTIMIZED_VARIANT = "shade-optimized"

class RouteGeometry(BaseModel):
    """ルート形状（GeoJSON LineString, [longitude, latitude]）"""
    model_config = ConfigDict(frozen=True)

    type: str = Field(default="LineString", description="ジオメトリタイプ")
    coordinates: List[List[float]] = Field(..., description="座標リスト [longitude, latitude]")

    @field_validator('coordinates')
    @classmethod
    def validate_coordinates(cls, v):
        if len(v) < 2:
            raise ValueError('route geometry needs at least 2 points')
        for point in v:
            if len(point) < 2:
                raise ValueError('each point must be [longitude, latitude]')
        return v

class RouteCandidate(BaseModel):
    """ルート候補"""
    model_config = ConfigDict(frozen=True)

    geometry: RouteGeometry = Field(..., description="ルート形状")
    distance: float = Field(..., ge=0, description="距離（メートル）")
    duration: float = Field(..., ge=0, description="所要時間（秒）")
    variant: Union[int, str] = Field(default=1, description="候補の種類")
    is_shade_optimized: bool = Field(default=False, description="ウェイポイント経由の日陰ルートか")
    provider: RouteProvider = Field(default=RouteProvider.ORS, description="ルーティングAPI")
    shade_score: Optional[float] = Field(None, ge=0, le=100, description="日陰スコア (0-100)")
    shade_percentage: Optional[int] = Field(None, ge=0, le=100, description="日陰率（整数%）")
    route_index: Optional[int] = Field(None, ge=1, description="候補番号（1始まり）")

class RouteByCoordinatesRequest(BaseModel):
    """座標指定のルートリクエスト"""
    start: List[float] = Field(..., description="開始地点 [latitude, longitude]")
    end: List[float] = Field(..., description="終了地点 [latitude, longitude]")
    minutes_of_day: int = Field(..., ge=0, le=1439, description="時刻（0時からの分）")
    mode: RouteMode = Field(default=RouteMode.FASTEST, description="選択モード")

    @field_validator('start', 'end')
    @classmethod
    def validate_coordinates(cls, v):
        return _validate_lat_lng(v)

class RouteByAddressRequest(BaseModel):
    """住所指定のルートリクエスト"""
    start_address: str = Field(..., min_length=1, description="出発地の住所")
    end_address: str = Field(..., min_length=1, description="目的地の住所")
    minutes_of_day: int = Field(..., ge=0, le=1439, description="時刻（0時からの分）")
    mode: RouteMode = Field(default=RouteMode.FASTEST, description="選択モード")

    @field_validator('start_address', 'end_address')
    @classmethod
    def validate_address(cls, v):
        if not v.strip():
            raise ValueError('address must not be blank')
        return v.strip()

class SelectRequest(BaseModel):
    """候補からのルート選択"""
    routes: List[RouteCandidate] = Field(..., min_length=1, description="スコア済み候補")
    mode: RouteMode = Field(..., description="選択モード")

class RescoreRequest(BaseModel):
    """時刻変更後の再スコアリング"""
    routes: List[RouteCandidate] = Field(..., min_length=1, description="ルート候補")
    minutes_of_day: int = Field(..., ge=0, le=1439, description="時刻（0時からの分）")
    mode: RouteMode = Field(default=RouteMode.FASTEST, description="選択モード")

class RouteResponse(BaseModel):
    """ルートレスポンス"""
    start: Optional[List[float]] = Field(None, description="開始地点 [latitude, longitude]")
    end: Optional[List[float]] = Field(None, description="終了地点 [latitude, longitude]")
    minutes_of_day: Optional[int] = Field(None, description="スコア計算に使った時刻")
    time_label: Optional[str] = Field(None, description="表示用の時刻")
    mode: RouteMode = Field(..., description="選択モード")
    routes: List[RouteCandidate] = Field(..., description="スコア済みの全候補")
    selected: RouteCandidate = Field(..., description="表示するルート")
    selected_index: int = Field(..., ge=0, description="routes 内の選択位置")
    calculation_time_ms: Optional[int] = Field(None, description="計算時間（ミリ秒）")

class GeocodeSuggestion(BaseModel):
    """住所候補"""
    name: Optional[str] = Field(None, description="名称")
    display_name: Optional[str] = Field(None, description="表示ラベル")
    lat: float = Field(..., description="緯度")
    lon: float = Field(..., description="経度")

class BuildingProperties(BaseModel):
    """建物プロパティ"""
    building: str = Field(default="yes", description="建物タイプ")
    height: float = Field(default=9.0, ge=0, description="建物の高さ（メートル）")
    render_height: float = Field(default=9.0, ge=0, description="影描画用の高さ")
    osm_id: Optional[int] = Field(None, description="OpenStreetMap ID")
    levels: Optional[str] = Field(None, description="階数タグ")

class BuildingGeometry(BaseModel):
    """建物ジオメトリ"""
    type: str = Field(..., description="ジオメトリタイプ")
    coordinates: List[List[List[float]]] = Field(..., description="座標リスト")

class Building(BaseModel):
    """建物"""
    type: str = Field(default="Feature", description="フィーチャータイプ")
    geometry: BuildingGeometry = Field(..., description="ジオメトリ")
    properties: BuildingProperties = Field(..., description="プロパティ")

class BuildingCollection(BaseModel):
    """建物コレクション"""
    type: str = Field(default="FeatureCollection", description="コレクションタイプ")
    features: List[Building] = Field(..., description="建物のリスト")

class HealthResponse(BaseModel):
    """ヘルスチェックレスポンス"""
    ok: bool = Field(default=True, description="稼働中か")

class ConfigResponse(BaseModel):
    """フロントエンドに渡すAPIキー"""
    shadeMapApiKey: str = Field(..., description="ShadeMap APIキー")
    openRouteServiceApiKey: str = Field(..., description="OpenRouteService APIキー")

class ErrorResponse(BaseModel):
    """エラーレスポンス"""
    error: str = Field(..., description="エラータイプ")
    message: str = Field(..., description="エラーメッセージ")
    details: Optional[Dict[str, Any]] = Field(None, description="詳細情報")
    timestamp: str = Field(..., description="タイムスタンプ")
