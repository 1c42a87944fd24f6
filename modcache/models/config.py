"""
配置模型

定义缓存目录、游戏安装目录和网络相关的配置。
"""

import os
from dataclasses import dataclass
from typing import Any, Dict

from modcache.exceptions import ConfigError


DEFAULT_BASE_URL = "https://mods.factorio.com"
DEFAULT_INSTALL_DIR = "/opt/factorio"


def default_cache_dir() -> str:
    """默认缓存目录: $XDG_CACHE_HOME/modcache 或 ~/.cache/modcache"""
    base = os.environ.get("XDG_CACHE_HOME") or os.path.join(
        os.path.expanduser("~"), ".cache"
    )
    return os.path.join(base, "modcache")


@dataclass
class CacheConfig:
    """ModCache 配置"""

    cache_dir: str
    install_dir: str = DEFAULT_INSTALL_DIR
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60.0
    show_progress: bool = False
    verify_checksum: bool = False
    install_optional: bool = False

    @property
    def db_path(self) -> str:
        return os.path.join(self.cache_dir, "mods.db")

    @property
    def mod_dir(self) -> str:
        return os.path.join(self.cache_dir, "mods")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        """
        从字典创建配置

        Raises:
            ConfigError: 字段类型或取值无效
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("配置必须是一个映射")

        section = data.get("modcache", data)

        cache_dir = section.get("cache_dir") or default_cache_dir()
        install_dir = section.get("install_dir") or DEFAULT_INSTALL_DIR
        base_url = (section.get("base_url") or DEFAULT_BASE_URL).rstrip("/")

        try:
            timeout = float(section.get("timeout", 60.0))
        except (TypeError, ValueError):
            raise ConfigError(
                "timeout 必须是数字", context={"timeout": section.get("timeout")}
            )
        if timeout <= 0:
            raise ConfigError("timeout 必须大于 0", context={"timeout": timeout})

        flags = {}
        for key in ("show_progress", "verify_checksum", "install_optional"):
            value = section.get(key, False)
            if not isinstance(value, bool):
                raise ConfigError(f"{key} 必须是布尔值", context={key: value})
            flags[key] = value

        return cls(
            cache_dir=os.path.expanduser(str(cache_dir)),
            install_dir=os.path.expanduser(str(install_dir)),
            base_url=base_url,
            timeout=timeout,
            **flags,
        )
