"""
API 客户端

封装模组门户的 HTTP 访问：JSON 接口与文件下载。
"""

import asyncio
import os
from typing import Optional
from urllib.parse import urljoin

import aiofiles
import aiohttp
from loguru import logger

from modcache import __version__
from modcache.exceptions import DecodeError, FetchError
from modcache.models.config import DEFAULT_BASE_URL


USER_AGENT = f"modcache/{__version__}"
MAX_REDIRECTS = 10
CHUNK_SIZE = 8192


def _describe(prefix: str, error: aiohttp.ClientError) -> str:
    """
    aiohttp 异常的描述

    异常文本可能带有含凭据的完整地址，只保留异常类型和状态码。
    """
    status = getattr(error, "status", None)
    if status:
        return f"{prefix}: {type(error).__name__} (状态码: {status})"
    return f"{prefix}: {type(error).__name__}"


class PortalClient:
    """模组门户 API 客户端"""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owned_session = session is None

    @property
    def session(self) -> aiohttp.ClientSession:
        """获取或创建 aiohttp session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    def url(self, path: str) -> str:
        """将相对路径拼接到门户地址上"""
        return urljoin(self.base_url + "/", path.lstrip("/"))

    async def get_json(self, url: str, params: Optional[dict] = None) -> dict:
        """
        发送 GET 请求并解析 JSON

        Raises:
            FetchError: 网络错误或非 200 状态码
            DecodeError: 响应不是合法 JSON
        """
        logger.debug(f"[请求] GET {url}")
        try:
            async with self.session.get(
                url, params=params, max_redirects=MAX_REDIRECTS
            ) as response:
                if response.status != 200:
                    raise FetchError(
                        f"API 请求失败 (状态码: {response.status})",
                        response=response,
                    )
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise DecodeError(
                        f"响应不是合法的 JSON: {e}", context={"url": url}
                    ) from e
        except asyncio.TimeoutError as e:
            raise FetchError("请求超时", context={"url": url}) from e
        except aiohttp.ClientError as e:
            raise FetchError(_describe("请求失败", e), context={"url": url}) from e

    async def download(
        self, url: str, dest_path: str, params: Optional[dict] = None
    ) -> int:
        """
        下载文件到 dest_path

        params 中可能包含凭据，因此日志中只记录不带查询参数的地址。
        失败时目标路径上可能残留不完整的文件。

        Returns:
            写入的字节数
        """
        os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)
        logger.debug(f"[下载] GET {url}")
        written = 0
        try:
            async with self.session.get(
                url, params=params, max_redirects=MAX_REDIRECTS
            ) as response:
                if response.status != 200:
                    raise FetchError(
                        f"下载失败 (状态码: {response.status})",
                        response=response,
                    )
                async with aiofiles.open(dest_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        await f.write(chunk)
                        written += len(chunk)
        except asyncio.TimeoutError as e:
            raise FetchError("下载超时", context={"url": url}) from e
        except aiohttp.ClientError as e:
            raise FetchError(_describe("下载失败", e), context={"url": url}) from e
        return written

    async def close(self):
        """关闭客户端"""
        if self._owned_session and self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
