"""
游戏安装目录服务

读取已安装模组列表、玩家凭据，并把安装计划应用到 mods 目录。
"""

import glob
import json
import os
import shutil
from typing import List

from loguru import logger

from modcache.exceptions import DecodeError, InvalidArgument, StorageError
from modcache.models.mod import Credentials, LocalMod
from modcache.models.version import Version
from modcache.services.install_resolver import InstallationPlan


MOD_LIST_FILE = "mod-list.json"
PLAYER_DATA_FILE = "player-data.json"


def load_credentials(install_dir: str) -> Credentials:
    """
    从 player-data.json 读取门户用户名和 token

    Raises:
        InvalidArgument: 文件不存在、格式错误或字段为空
    """
    path = os.path.join(install_dir, PLAYER_DATA_FILE)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise InvalidArgument(
            f"找不到 {PLAYER_DATA_FILE}", context={"path": path}
        ) from e
    except (OSError, json.JSONDecodeError) as e:
        raise InvalidArgument(
            f"无法读取 {PLAYER_DATA_FILE}: {e}", context={"path": path}
        ) from e

    username = data.get("service-username") or ""
    token = data.get("service-token") or ""
    if not username:
        raise InvalidArgument("player-data.json 中未设置 service-username")
    if not token:
        raise InvalidArgument("player-data.json 中未设置 service-token")
    return Credentials(username=username, token=token)


class Installation:
    """游戏安装目录"""

    def __init__(self, install_dir: str):
        self.install_dir = install_dir

    @property
    def mod_dir(self) -> str:
        return os.path.join(self.install_dir, "mods")

    @property
    def mod_list_path(self) -> str:
        return os.path.join(self.mod_dir, MOD_LIST_FILE)

    def _read_mod_list(self) -> List[dict]:
        try:
            with open(self.mod_list_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DecodeError(
                f"{MOD_LIST_FILE} 解析失败: {e}",
                context={"path": self.mod_list_path},
            ) from e
        return list(data.get("mods") or [])

    def installed_versions(self, name: str) -> List[Version]:
        """已安装的版本，升序"""
        pattern = os.path.join(self.mod_dir, f"{glob.escape(name)}_*.zip")
        versions = []
        for match in glob.glob(pattern):
            base = os.path.basename(match)
            # flib_extras_1.0.0.zip 属于 flib_extras，不属于 flib
            if base[: base.rfind("_")] != name:
                continue
            versions.append(Version.from_filename(base))
        return sorted(versions)

    def installed_mods(self) -> List[LocalMod]:
        """读取 mod-list.json 中的模组，并附上磁盘上找到的版本"""
        try:
            entries = self._read_mod_list()
        except FileNotFoundError as e:
            raise InvalidArgument(
                f"找不到 {MOD_LIST_FILE}", context={"path": self.mod_list_path}
            ) from e

        mods = [
            LocalMod(
                name=entry["name"],
                enabled=bool(entry.get("enabled", False)),
                versions=self.installed_versions(entry["name"]),
            )
            for entry in entries
            if entry.get("name")
        ]
        return sorted(mods, key=lambda m: m.name)

    def apply(self, plan: InstallationPlan, enable: bool = False) -> List[str]:
        """
        把缓存文件复制到 mods 目录

        已存在同名文件时跳过；enable 为真时在 mod-list.json 中启用这些模组。

        Returns:
            新复制的文件路径
        """
        os.makedirs(self.mod_dir, exist_ok=True)
        copied = []
        for name, cached_path in plan.items():
            target = os.path.join(self.mod_dir, os.path.basename(cached_path))
            if os.path.exists(target):
                logger.debug(f"[跳过] {name} 已安装")
                continue
            logger.info(f"[安装] {cached_path} -> {target}")
            try:
                shutil.copy2(cached_path, target)
            except OSError as e:
                raise StorageError(
                    f"复制 {name} 失败: {e}", context={"mod": name, "path": target}
                ) from e
            copied.append(target)

        if enable:
            self.enable(list(plan))
        return copied

    def enable(self, names: List[str]):
        """在 mod-list.json 中启用模组，文件不存在时创建"""
        try:
            entries = self._read_mod_list()
        except FileNotFoundError:
            entries = [{"name": "base", "enabled": True}]

        by_name = {entry.get("name"): entry for entry in entries}
        for name in names:
            if name in by_name:
                by_name[name]["enabled"] = True
            else:
                entry = {"name": name, "enabled": True}
                entries.append(entry)
                by_name[name] = entry

        logger.info(f"[安装] 更新 {MOD_LIST_FILE}")
        with open(self.mod_list_path, "w", encoding="utf-8") as f:
            json.dump({"mods": entries}, f, indent=2)
