"""
安装依赖解析服务

为请求的模组下载文件、读取 info.json、递归处理依赖，生成安装计划。
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple

from loguru import logger

from modcache.download.artifact_cache import ArtifactCache
from modcache.exceptions import InvalidArgument, ModCacheError, ResolveError
from modcache.models.dependency import Dependency
from modcache.models.mod import Credentials, ModManifest
from modcache.models.version import Version
from modcache.storage.local_store import LocalStore


# 游戏本体，由安装目录提供，不需要下载
BASE_MOD = "base"


@dataclass
class InstallationPlan:
    """
    安装计划：模组名称到缓存文件路径的映射

    同一名称重复写入时以最后一次为准。
    """

    entries: "OrderedDict[str, str]" = field(default_factory=OrderedDict)
    conflicts: List[Tuple[str, Dependency]] = field(default_factory=list)

    def add(self, name: str, path: str):
        self.entries[name] = path

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __getitem__(self, name: str) -> str:
        return self.entries[name]

    def items(self):
        return self.entries.items()

    def as_dict(self) -> Dict[str, str]:
        return dict(self.entries)


class InstallResolver:
    """安装依赖解析器"""

    def __init__(
        self,
        store: LocalStore,
        artifacts: ArtifactCache,
        credentials: Optional[Credentials] = None,
        install_optional: bool = False,
    ):
        self.store = store
        self.artifacts = artifacts
        self.credentials = credentials
        self.install_optional = install_optional
        self._processed: Set[str] = set()

    async def resolve(self, names: Iterable[str]) -> InstallationPlan:
        """
        解析请求的模组及其依赖

        请求先按名称、再按最新版本排序，保证处理顺序确定。
        任何模组或依赖获取、解析失败都会中止整个解析。

        Args:
            names: 请求安装的模组名称

        Returns:
            InstallationPlan

        Raises:
            InvalidArgument: 没有请求任何模组
            ResolveError: 某个模组解析失败，原始异常保存在 cause 中
        """
        names = [n for n in names]
        if not names:
            raise InvalidArgument("至少需要一个模组名称")

        requested: List[Tuple[str, Version]] = []
        for name in names:
            if not name:
                raise InvalidArgument("模组名称不能为空")
            try:
                version = await self.store.latest_version(name)
            except ModCacheError as e:
                raise ResolveError(
                    f"获取 {name} 的最新版本失败: {e}", mod=name, cause=e
                ) from e
            requested.append((name, version))
        requested.sort()

        self._processed.clear()
        plan = InstallationPlan()
        for name, version in requested:
            logger.info(f"[解析] {name}_{version}")
            await self._resolve_recursive(name, plan, depth=0)

        logger.success(f"[解析] 安装计划包含 {len(plan)} 个模组")
        return plan

    async def _fetch(self, name: str) -> Tuple[str, ModManifest]:
        """下载（或命中缓存）并读取 info.json"""
        try:
            path = await self.artifacts.get(name, self.credentials)
            manifest = ModManifest.load(path)
        except ModCacheError as e:
            raise ResolveError(f"获取 {name} 失败: {e}", mod=name, cause=e) from e
        return path, manifest

    async def _resolve_recursive(self, name: str, plan: InstallationPlan, depth: int):
        """递归解析依赖"""
        if name in self._processed:
            return
        self._processed.add(name)

        path, manifest = await self._fetch(name)
        plan.add(name, path)

        try:
            deps = manifest.dependencies()
        except ModCacheError as e:
            raise ResolveError(
                f"解析 {name} 的依赖失败: {e}", mod=name, cause=e
            ) from e

        indent = "  " * (depth + 1)
        for dep in deps.conflicts:
            # 冲突只记录，不阻止安装
            plan.conflicts.append((name, dep))
            logger.warning(f"{indent}[冲突] {name} 与 {dep.name} 冲突")

        wanted = list(deps.required)
        if self.install_optional:
            wanted.extend(deps.optional)

        for dep in wanted:
            if dep.name == BASE_MOD:
                continue
            logger.info(f"{indent}├ {dep}")
            await self._check_constraint(name, dep)
            await self._resolve_recursive(dep.name, plan, depth + 1)

    async def _check_constraint(self, parent: str, dep: Dependency):
        """
        只安装最新版本；不满足版本约束时给出警告
        """
        if dep.version is None:
            return
        try:
            latest = await self.store.latest_version(dep.name)
        except ModCacheError as e:
            raise ResolveError(
                f"获取 {dep.name} 的最新版本失败: {e}", mod=dep.name, cause=e
            ) from e
        if not dep.version.matches(latest):
            logger.warning(
                f"[版本] {parent} 需要 {dep.name} {dep.version}，"
                f"但最新版本为 {latest}"
            )
