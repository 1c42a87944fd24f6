"""
模组文件缓存

按 `<name>_<version>.zip` 命名保存下载的模组，已存在的文件不会再次下载。
"""

import glob
import os
from collections import defaultdict
from typing import Dict, List, Optional

from loguru import logger

from modcache.download.verifier import ArtifactVerifier
from modcache.exceptions import InvalidArgument, ModCacheError
from modcache.models.mod import Credentials, LocalMod
from modcache.models.version import Version
from modcache.storage.local_store import LocalStore


def artifact_name(name: str, version: Version) -> str:
    """缓存文件名，保留模组名称的大小写"""
    return f"{name}_{version}.zip"


class ArtifactCache:
    """
    模组文件缓存

    client 需要提供 url(path) 和 download(url, dest_path, params)，通常是 PortalClient。
    """

    def __init__(
        self,
        mod_dir: str,
        client,
        store: LocalStore,
        verify_checksum: bool = False,
    ):
        self.mod_dir = mod_dir
        self.client = client
        self.store = store
        self.verify_checksum = verify_checksum
        self.verifier = ArtifactVerifier()

    def ensure_dir(self) -> str:
        os.makedirs(self.mod_dir, exist_ok=True)
        return self.mod_dir

    def path_for(self, name: str, version: Version) -> str:
        return os.path.join(self.mod_dir, artifact_name(name, version))

    def _discard(self, path: str):
        """删除下载失败留下的不完整文件"""
        if os.path.isfile(path):
            logger.warning(f"[清理] 删除不完整的文件: {os.path.basename(path)}")
            os.remove(path)

    async def get(self, name: str, credentials: Optional[Credentials]) -> str:
        """
        获取模组最新版本的本地路径，必要时下载

        预期路径上已有文件时直接返回，不会发起任何网络请求。

        Args:
            name: 模组名称（精确匹配）
            credentials: 门户用户名和 token，只有需要下载时才检查

        Returns:
            缓存文件路径

        Raises:
            InvalidArgument: 名称为空，或需要下载但凭据为空
            NotFound: 本地目录中没有该模组
            ChecksumError: 开启校验且已缓存文件的 SHA1 不匹配
            FetchError: 下载失败
        """
        if not name:
            raise InvalidArgument("模组名称不能为空")

        release = await self.store.latest_release(name)
        version = await self.store.latest_version(name)
        path = self.path_for(name, version)

        if self.verifier.is_cached(path):
            if self.verify_checksum:
                await self.verifier.check(name, path, release.sha1)
            logger.debug(f"[跳过] '{os.path.basename(path)}' 已缓存")
            return path

        if not credentials or not credentials.username:
            raise InvalidArgument("下载需要用户名", context={"mod": name})
        if not credentials.token:
            raise InvalidArgument("下载需要 token", context={"mod": name})

        self.ensure_dir()
        url = self.client.url(release.download_url)
        logger.info(f"[开始] 下载: {os.path.basename(path)}")
        try:
            size = await self.client.download(
                url, path, params=credentials.as_params()
            )
        except ModCacheError as e:
            self._discard(path)
            e.context.setdefault("mod", name)
            raise
        except BaseException:
            self._discard(path)
            raise
        logger.success(
            f"[完成] '{os.path.basename(path)}' 下载完成 "
            f"({size / (1024 * 1024):.2f} MB)"
        )
        return path

    def cached_mods(self) -> List[LocalMod]:
        """
        列出缓存目录中的所有模组

        版本号从文件名宽松解析，异常的文件名会得到 0.0.0 而不是报错。
        """
        pattern = os.path.join(self.ensure_dir(), "*_*.zip")
        versions: Dict[str, List[Version]] = defaultdict(list)
        for match in sorted(glob.glob(pattern)):
            base = os.path.basename(match)
            name = base[: base.rfind("_")]
            versions[name].append(Version.from_filename(base))

        return [
            LocalMod(name=name, versions=sorted(found))
            for name, found in sorted(versions.items())
        ]
