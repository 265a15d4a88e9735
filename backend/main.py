"""
日陰ウォーキングルートAPIサーバー
APIキーの受け渡し、ジオコーディングのプロキシ、ルート候補の計算と選択
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from config import api_config, key_config
from cache_manager import cache_manager
from building_service import building_service
from geocoding_service import GeocodingError, geocoding_service
from route_service import RouteNotFoundError, route_service
from routing_providers import ors_provider, osrm_provider
from models import (
    BuildingCollection, ConfigResponse, ErrorResponse, GeocodeSuggestion, HealthResponse,
    RescoreRequest, RouteByAddressRequest, RouteByCoordinatesRequest, RouteResponse,
    SelectRequest,
)

# ログ設定
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ADDRESS_NOT_FOUND_MESSAGE = "Could not find one or both addresses. Please try again."
ROUTE_NOT_FOUND_MESSAGE = "No walking route found between these locations. Please try different addresses."
ROUTE_FAILED_MESSAGE = "Unable to calculate route. Please check your addresses and try again."

@asynccontextmanager
async def lifespan(app: FastAPI):
    """アプリケーションのライフサイクル管理"""
    logger.info("Starting Shade Walk Route API Server...")

    yield

    logger.info("Shutting down Shade Walk Route API Server...")
    for client in (geocoding_service, building_service, ors_provider, osrm_provider):
        await client.close()
    cache_manager.clear_all()

# FastAPIアプリケーション
app = FastAPI(
    title=api_config.title,
    version=api_config.version,
    description="日陰を考慮した徒歩ルート検索API",
    lifespan=lifespan
)

# CORS設定
app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# リクエスト処理時間のミドルウェア
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response

# グローバル例外ハンドラー
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    error_response = ErrorResponse(
        error="internal_server_error",
        message="An unexpected error occurred. Please try again.",
        details={"request_path": str(request.url.path)},
        timestamp=datetime.now().isoformat()
    )

    return JSONResponse(
        status_code=500,
        content=error_response.model_dump()
    )

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """ヘルスチェック"""
    return HealthResponse(ok=True)

@app.get("/api/config", response_model=ConfigResponse)
async def get_config():
    """フロントエンド用のAPIキー"""
    if not key_config.shademap_api_key or not key_config.ors_api_key:
        return JSONResponse(
            status_code=500,
            content={
                "error": "API keys not configured. Please set SHADEMAP_API_KEY and ORS_API_KEY environment variables."
            }
        )

    return ConfigResponse(
        shadeMapApiKey=key_config.shademap_api_key,
        openRouteServiceApiKey=key_config.ors_api_key
    )

@app.get("/api/geocode")
async def geocode(q: Optional[str] = None):
    """ジオコーディングのプロキシ（ORSのJSONをそのまま返す）"""
    if not q:
        return JSONResponse(status_code=400, content={"error": "Query parameter required"})

    if not key_config.ors_api_key:
        return JSONResponse(status_code=500, content={"error": "ORS_API_KEY not configured"})

    try:
        return await geocoding_service.search(q)
    except GeocodingError as e:
        logger.error(f"Geocoding proxy error: {e}")
        return JSONResponse(status_code=500, content={"error": "Geocoding failed"})

@app.get("/api/geocode/suggestions", response_model=List[GeocodeSuggestion])
async def geocode_suggestions(q: str = ""):
    """住所の入力補完"""
    return await geocoding_service.suggest(q)

@app.post("/api/route", response_model=RouteResponse)
async def calculate_route_for_addresses(request: RouteByAddressRequest):
    """住所間の徒歩ルートを計算"""
    try:
        return await route_service.calculate_routes_for_addresses(
            request.start_address, request.end_address, request.minutes_of_day, request.mode
        )
    except GeocodingError:
        raise HTTPException(status_code=404, detail=ADDRESS_NOT_FOUND_MESSAGE)
    except RouteNotFoundError:
        raise HTTPException(status_code=404, detail=ROUTE_NOT_FOUND_MESSAGE)
    except Exception as e:
        logger.error(f"Route calculation error: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=ROUTE_FAILED_MESSAGE)

@app.post("/api/route/coordinates", response_model=RouteResponse)
async def calculate_route_for_coordinates(request: RouteByCoordinatesRequest):
    """座標間の徒歩ルートを計算"""
    try:
        return await route_service.calculate_routes(
            tuple(request.start), tuple(request.end), request.minutes_of_day, request.mode
        )
    except RouteNotFoundError:
        raise HTTPException(status_code=404, detail=ROUTE_NOT_FOUND_MESSAGE)
    except Exception as e:
        logger.error(f"Route calculation error: {e}", exc_info=True)
        raise HTTPException(status_code=502, detail=ROUTE_FAILED_MESSAGE)

@app.post("/api/route/rescore", response_model=RouteResponse)
async def rescore_routes(request: RescoreRequest):
    """時刻変更後のスコア再計算"""
    return route_service.rescore(request.routes, request.minutes_of_day, request.mode)

@app.post("/api/route/select", response_model=RouteResponse)
async def select_route(request: SelectRequest):
    """最短／日陰ルートの切り替え"""
    return route_service.select(request.routes, request.mode)

@app.get("/api/buildings", response_model=BuildingCollection)
async def get_buildings(
    south: float = Query(..., ge=-90, le=90),
    west: float = Query(..., ge=-180, le=180),
    north: float = Query(..., ge=-90, le=90),
    east: float = Query(..., ge=-180, le=180),
    zoom: int = Query(..., ge=0, le=22),
):
    """影オーバーレイ用の建物データ"""
    if south >= north:
        raise HTTPException(status_code=400, detail="south must be less than north")

    return await building_service.get_buildings((south, west, north, east), zoom)

@app.get("/api/stats")
async def get_stats():
    """キャッシュ統計"""
    return {
        "cache": cache_manager.stats(),
        "timestamp": datetime.now().isoformat()
    }

@app.post("/api/cache/clear")
async def clear_cache():
    cache_manager.clear_all()
    return {"message": "Cache cleared"}

def main():
    """メイン関数"""
    logger.info(f"Backend listening on http://localhost:{api_config.port}")

    uvicorn.run(
        "main:app",
        host=api_config.host,
        port=api_config.port,
        reload=False,
        workers=1,
        loop="asyncio",
        log_level="info"
    )

if __name__ == "__main__":
    main()
