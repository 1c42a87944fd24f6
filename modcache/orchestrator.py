"""
主协调器

持有 HTTP 客户端与本地存储，整合目录拉取、搜索和安装流程。
"""

from typing import Callable, Iterable, List, Optional

from loguru import logger

from modcache.download import ArtifactCache
from modcache.models import CacheConfig, Credentials, LocalMod
from modcache.services import (
    CatalogIngester,
    Installation,
    InstallationPlan,
    InstallResolver,
    PortalClient,
)
from modcache.storage import LocalStore


class ModCacheOrchestrator:
    """
    ModCache 主协调器

    显式构造、向下传递的上下文对象，替代进程级的全局客户端与缓存句柄。
    """

    def __init__(
        self,
        config: CacheConfig,
        client: Optional[PortalClient] = None,
        store: Optional[LocalStore] = None,
        progress_callback: Optional[Callable[[str, int, int], None]] = None,
    ):
        self.config = config
        self.client = client or PortalClient(
            base_url=config.base_url, timeout=config.timeout
        )
        self.store = store or LocalStore(config.db_path)
        self.store.open()
        if progress_callback is None and config.show_progress:
            progress_callback = self._on_progress
        self.ingester = CatalogIngester(
            self.client, self.store, config.cache_dir, progress_callback
        )
        self.artifacts = ArtifactCache(
            config.mod_dir,
            self.client,
            self.store,
            verify_checksum=config.verify_checksum,
        )
        self.installation = Installation(config.install_dir)

    def _on_progress(self, stage: str, current: int, total: int):
        """进度回调"""
        if total > 0:
            logger.info(f"[进度] {stage}: {current}/{total}")
        else:
            logger.info(f"[进度] {stage}: {current}")

    async def update(self) -> int:
        """拉取模组列表并更新本地存储"""
        logger.info("开始更新模组缓存...")
        await self.ingester.pull()
        return await self.ingester.update()

    def clean(self) -> int:
        """删除暂存的拉取结果"""
        return self.ingester.clean()

    async def search(
        self,
        term: str,
        categories: Optional[Iterable[str]] = None,
        sort_by_date: bool = False,
    ) -> List[LocalMod]:
        return await self.store.search(
            term, categories=categories, sort_by_date=sort_by_date
        )

    async def resolve(
        self,
        names: Iterable[str],
        credentials: Optional[Credentials],
        install_optional: Optional[bool] = None,
    ) -> InstallationPlan:
        """解析安装计划，不修改安装目录"""
        if install_optional is None:
            install_optional = self.config.install_optional
        resolver = InstallResolver(
            self.store,
            self.artifacts,
            credentials=credentials,
            install_optional=install_optional,
        )
        return await resolver.resolve(names)

    async def install(
        self,
        names: Iterable[str],
        credentials: Optional[Credentials],
        install_optional: Optional[bool] = None,
        enable: bool = False,
    ) -> InstallationPlan:
        """
        解析并安装模组

        解析完全成功后才会复制文件。
        """
        plan = await self.resolve(names, credentials, install_optional)
        self.installation.apply(plan, enable=enable)
        return plan

    async def close(self):
        await self.client.close()
        self.store.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
