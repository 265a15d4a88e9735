"""
外部API用の共通HTTPクライアント
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from config import service_config

logger = logging.getLogger(__name__)


class ExternalAPIError(Exception):
    """外部APIの呼び出しに失敗した"""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        # エラー応答のJSON本文（JSONでなければ None）
        self.payload = payload


class ExternalAPIClient:
    """aiohttpセッションを遅延生成して使い回すクライアント"""

    def __init__(self):
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """HTTPセッションを取得"""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=service_config.external_api_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self):
        """リソースのクリーンアップ"""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request_json(self, method: str, url: str, **kwargs) -> Any:
        """JSONを返すリクエスト。失敗時は ExternalAPIError"""
        try:
            session = await self._get_session()
            async with session.request(method, url, **kwargs) as response:
                if response.status != 200:
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError:
                        payload = None
                    raise ExternalAPIError(f"{method} {url} returned {response.status}", response.status, payload)
                return await response.json(content_type=None)
        except ExternalAPIError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise ExternalAPIError(f"{method} {url} failed: {e}") from e

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return await self._request_json("GET", url, params=params, **kwargs)

    async def _post_json(self, url: str, body: Any = None, **kwargs) -> Any:
        return await self._request_json("POST", url, json=body, **kwargs)
