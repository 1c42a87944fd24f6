"""
ModCache 数据模型包

包含配置模型、API 模型、版本与依赖模型。
"""

from modcache.models.config import CacheConfig, default_cache_dir
from modcache.models.version import Version
from modcache.models.dependency import (
    Dependency,
    DependencyMode,
    DependencyVersion,
    Dependencies,
    parse_dependency,
)
from modcache.models.api import (
    Category,
    Pagination,
    Release,
    CatalogEntry,
    CatalogPage,
)
from modcache.models.mod import LocalMod, ModManifest, Credentials

__all__ = [
    # 配置模型
    "CacheConfig",
    "default_cache_dir",
    # 版本与依赖
    "Version",
    "Dependency",
    "DependencyMode",
    "DependencyVersion",
    "Dependencies",
    "parse_dependency",
    # API 模型
    "Category",
    "Pagination",
    "Release",
    "CatalogEntry",
    "CatalogPage",
    # 本地模型
    "LocalMod",
    "ModManifest",
    "Credentials",
]
