"""
キャッシュマネージャー - ジオコーディングと建物データのTTL付きLRUキャッシュ
"""
import time
import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional
from dataclasses import dataclass

from config import cache_config

logger = logging.getLogger(__name__)

@dataclass
class CacheItem:
    """キャッシュアイテム"""
    value: Any
    timestamp: float

    def is_expired(self, ttl_seconds: int) -> bool:
        return time.time() - self.timestamp > ttl_seconds

class LRUCache:
    """LRUキャッシュ実装（スレッドセーフ）"""

    def __init__(self, max_size: int = 100, ttl_seconds: int = 3600):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._cache: "OrderedDict[str, CacheItem]" = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> Optional[Any]:
        """キーの値を取得（期限切れは削除してミス扱い）"""
        with self._lock:
            item = self._cache.get(key)
            if item is None:
                self._misses += 1
                return None

            if item.is_expired(self.ttl_seconds):
                del self._cache[key]
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return item.value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self.max_size:
                oldest_key, _ = self._cache.popitem(last=False)
                logger.debug(f"Evicted cache item: {oldest_key}")

            self._cache[key] = CacheItem(value, time.time())

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def size(self) -> int:
        with self._lock:
            return len(self._cache)

    def hit_rate(self) -> float:
        with self._lock:
            total = self._hits + self._misses
            return self._hits / total if total > 0 else 0.0

    def cleanup_expired(self) -> int:
        """期限切れアイテムを削除し、削除数を返す"""
        with self._lock:
            expired_keys = [
                key for key, item in self._cache.items()
                if item.is_expired(self.ttl_seconds)
            ]
            for key in expired_keys:
                del self._cache[key]

            return len(expired_keys)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": self.hit_rate(),
                "ttl_seconds": self.ttl_seconds
            }

class CacheManager:
    """キャッシュマネージャー"""

    def __init__(self, cleanup_interval: int = 300):
        self.geocode_cache = LRUCache(
            max_size=cache_config.max_cache_size,
            ttl_seconds=cache_config.cache_ttl_seconds
        )
        self.building_cache = LRUCache(
            max_size=cache_config.max_cache_size // 4 or 1,  # 建物データは大きいので少なめに
            ttl_seconds=cache_config.cache_ttl_seconds
        )
        self.cleanup_interval = cleanup_interval
        self._cleanup_thread = None
        self._start_cleanup_thread()

    def _start_cleanup_thread(self):
        if self._cleanup_thread is None or not self._cleanup_thread.is_alive():
            self._cleanup_thread = threading.Thread(
                target=self._cleanup_worker,
                daemon=True
            )
            self._cleanup_thread.start()

    def _cleanup_worker(self):
        """定期的なクリーンアップワーカー"""
        while True:
            time.sleep(self.cleanup_interval)
            try:
                geocode_cleaned = self.geocode_cache.cleanup_expired()
                building_cleaned = self.building_cache.cleanup_expired()

                if geocode_cleaned > 0 or building_cleaned > 0:
                    logger.info(f"Cache cleanup: {geocode_cleaned} geocode items, {building_cleaned} building items")
            except Exception as e:
                logger.error(f"Cache cleanup error: {e}")

    def get_geocode(self, cache_key: str) -> Optional[Dict]:
        if not cache_config.geocode_cache_enabled:
            return None
        return self.geocode_cache.get(cache_key)

    def set_geocode(self, cache_key: str, result: Dict) -> None:
        if cache_config.geocode_cache_enabled:
            self.geocode_cache.put(cache_key, result)

    def get_buildings(self, cache_key: str) -> Optional[Dict]:
        if not cache_config.building_cache_enabled:
            return None
        return self.building_cache.get(cache_key)

    def set_buildings(self, cache_key: str, buildings: Dict) -> None:
        if cache_config.building_cache_enabled:
            self.building_cache.put(cache_key, buildings)

    def clear_all(self) -> None:
        self.geocode_cache.clear()
        self.building_cache.clear()

    def stats(self) -> Dict[str, Any]:
        return {
            "geocode_cache": self.geocode_cache.stats(),
            "building_cache": self.building_cache.stats()
        }

# グローバルキャッシュマネージャー
cache_manager = CacheManager()
