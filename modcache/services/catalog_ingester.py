"""
目录拉取服务

分页拉取模组门户的模组列表，暂存到 JSON Lines 文件，再在一个事务中写入本地存储。
"""

import asyncio
import glob
import json
import os
import shutil
import tempfile
from typing import Callable, Iterator, Optional

import aiofiles
from loguru import logger

from modcache.exceptions import DecodeError, FetchError, ModCacheError
from modcache.models.api import CatalogEntry, CatalogPage
from modcache.services.api_client import PortalClient
from modcache.storage.local_store import LocalStore


CATALOG_ENDPOINT = "/api/mods"
STAGING_PREFIX = "staging-"
STAGING_FILE = "results.jsonl"

# 每写入这么多行让出一次事件循环，保证取消能及时生效
YIELD_EVERY = 200


class CatalogIngester:
    """模组目录拉取器"""

    def __init__(
        self,
        client: PortalClient,
        store: LocalStore,
        cache_dir: str,
        progress_callback: Optional[Callable[[str, int, int], None]] = None,
    ):
        self.client = client
        self.store = store
        self.cache_dir = cache_dir
        self._progress_callback = progress_callback
        self._staged_path: Optional[str] = None

    @property
    def staged_path(self) -> Optional[str]:
        """最近一次成功拉取的暂存文件"""
        return self._staged_path

    def _report(self, stage: str, current: int, total: int):
        if self._progress_callback:
            self._progress_callback(stage, current, total)

    async def _fetch_page(self, page: int) -> CatalogPage:
        url = self.client.url(CATALOG_ENDPOINT)
        params = {"page": page} if page > 1 else None
        try:
            data = await self.client.get_json(url, params=params)
            return CatalogPage.from_portal(data)
        except ModCacheError as e:
            e.context.setdefault("page", page)
            if isinstance(e, FetchError):
                raise
            # 分页响应无法解析同样视为拉取失败
            raise FetchError(
                f"第 {page} 页解析失败: {e.message}", context=e.context
            ) from e

    def _make_staging_file(self) -> str:
        os.makedirs(self.cache_dir, exist_ok=True)
        directory = tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=self.cache_dir)
        return os.path.join(directory, STAGING_FILE)

    async def pull(self) -> str:
        """
        拉取全部分页并暂存

        逐页顺序拉取，不并发。任何一页失败都会中止拉取，数据库不会被修改。

        Returns:
            暂存文件路径

        Raises:
            FetchError: 网络错误、非 200 响应或响应格式错误
        """
        first = await self._fetch_page(1)
        total_pages = first.pagination.page_count
        logger.info(f"[拉取] 共 {total_pages} 页，{first.pagination.count} 个模组")

        path = self._make_staging_file()
        async with aiofiles.open(path, "a", encoding="utf-8") as f:
            await self._stage(f, first)
            self._report("pull", 1, total_pages)

            for page in range(2, total_pages + 1):
                result = await self._fetch_page(page)
                await self._stage(f, result)
                self._report("pull", page, total_pages)
                logger.debug(f"[拉取] 第 {page}/{total_pages} 页完成")

        self._staged_path = path
        logger.success(f"[拉取] 模组列表已暂存: {path}")
        return path

    async def _stage(self, f, page: CatalogPage):
        for entry in page.results:
            await f.write(json.dumps(entry.to_dict(), ensure_ascii=False) + "\n")

    def staged_entries(self, path: str) -> Iterator[CatalogEntry]:
        """逐行读取暂存文件"""
        with open(path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    raise DecodeError(
                        f"暂存文件第 {lineno} 行解析失败: {e}",
                        context={"path": path, "line": lineno},
                    ) from e
                yield CatalogEntry.from_portal(data)

    async def update(self) -> int:
        """
        将暂存结果写入本地存储

        没有暂存结果时先执行一次 pull。整个写入在一个事务中完成，
        任何错误都会回滚，存储保持调用前的状态。

        Returns:
            写入的模组数量
        """
        if self._staged_path is None:
            await self.pull()

        path = self._staged_path
        if not os.path.exists(path):
            raise DecodeError(f"暂存文件不存在: {path}", context={"path": path})

        written = 0
        async with self.store.transaction() as tx:
            for entry in self.staged_entries(path):
                try:
                    tx.upsert_entry(entry)
                except ModCacheError as e:
                    e.context.setdefault("mod", entry.name)
                    raise
                written += 1
                if written % YIELD_EVERY == 0:
                    self._report("update", written, -1)
                    await asyncio.sleep(0)

        self._report("update", written, written)
        logger.success(f"[更新] 已写入 {written} 个模组")
        return written

    def clean(self) -> int:
        """
        删除所有暂存文件，不会修改数据库

        Returns:
            删除的暂存目录数量
        """
        pattern = os.path.join(self.cache_dir, f"{STAGING_PREFIX}*", STAGING_FILE)
        removed = 0
        for match in glob.glob(pattern):
            directory = os.path.dirname(match)
            shutil.rmtree(directory, ignore_errors=False)
            removed += 1
            logger.debug(f"[清理] 已删除 {directory}")
        self._staged_path = None
        return removed
