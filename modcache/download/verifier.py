"""
缓存文件校验

比较缓存文件与目录中记录的 SHA1。
"""

import hashlib
import os

import aiofiles
from loguru import logger

from modcache.exceptions import ChecksumError


class ArtifactVerifier:
    """缓存文件校验器"""

    def __init__(self, chunk_size: int = 65536):
        self.chunk_size = chunk_size

    @staticmethod
    def is_cached(path: str) -> bool:
        return os.path.isfile(path)

    async def sha1(self, path: str) -> str:
        digest = hashlib.sha1()
        async with aiofiles.open(path, "rb") as f:
            while True:
                chunk = await f.read(self.chunk_size)
                if not chunk:
                    break
                digest.update(chunk)
        return digest.hexdigest()

    async def check(self, name: str, path: str, expected: str):
        """
        校验缓存文件

        目录没有记录 SHA1 时跳过。

        Raises:
            ChecksumError: SHA1 不匹配
        """
        if not expected:
            logger.debug(f"[校验] {name} 没有记录 SHA1，跳过")
            return
        actual = await self.sha1(path)
        if actual.lower() != expected.lower():
            raise ChecksumError(
                f"缓存文件 SHA1 校验失败: {os.path.basename(path)}",
                context={"mod": name, "path": path, "expected": expected, "actual": actual},
            )
