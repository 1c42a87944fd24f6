"""
本地模组模型

包含磁盘上的模组视图、mod 自带的 info.json 以及玩家凭据。
"""

import json
import os
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from modcache.exceptions import DecodeError, InvalidVersionSpec
from modcache.models.dependency import Dependencies, parse_dependency
from modcache.models.version import Version


@dataclass
class LocalMod:
    """
    已安装或已缓存的模组。

    versions 按升序排列，最新版本是最后一个元素。
    """

    name: str
    enabled: bool = False
    versions: List[Version] = field(default_factory=list)
    released_at: Optional[datetime] = None
    summary: str = ""
    category: str = ""

    @property
    def latest(self) -> Version:
        """最新版本，没有任何版本时返回 0.0.0"""
        if not self.versions:
            return Version()
        return self.versions[-1]


@dataclass
class ModManifest:
    """mod 压缩包内的 info.json"""

    name: str
    version: str
    title: str = ""
    description: str = ""
    author: str = ""
    contact: str = ""
    homepage: str = ""
    factorio_version: str = ""
    raw_dependencies: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ModManifest":
        if not isinstance(data, dict):
            raise DecodeError("info.json 必须是 JSON 对象")
        return cls(
            name=data.get("name", ""),
            version=data.get("version", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            author=data.get("author", ""),
            contact=data.get("contact", ""),
            homepage=data.get("homepage", ""),
            factorio_version=data.get("factorio_version", ""),
            raw_dependencies=list(data.get("dependencies") or []),
        )

    @classmethod
    def load(cls, zip_path: str) -> "ModManifest":
        """
        从 mod 压缩包中读取 info.json

        Args:
            zip_path: mod 压缩包路径

        Raises:
            DecodeError: 压缩包损坏、缺少 info.json 或 JSON 格式错误
        """
        try:
            with zipfile.ZipFile(zip_path) as z:
                member = next(
                    (
                        n
                        for n in z.namelist()
                        if os.path.basename(n.rstrip("/")) == "info.json"
                    ),
                    None,
                )
                if member is None:
                    raise DecodeError(
                        "压缩包中没有 info.json", context={"path": zip_path}
                    )
                data = json.loads(z.read(member).decode("utf-8"))
        except (zipfile.BadZipFile, OSError) as e:
            raise DecodeError(
                f"无法打开 mod 压缩包: {e}", context={"path": zip_path}
            ) from e
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(
                f"info.json 解析失败: {e}", context={"path": zip_path}
            ) from e

        return cls.from_dict(data)

    def parsed_version(self) -> Version:
        return Version.parse_strict(self.version)

    def dependencies(self) -> Dependencies:
        """
        解析并分组依赖

        Raises:
            InvalidVersionSpec: 任一依赖声明的版本号无效
        """
        parsed = []
        for line in self.raw_dependencies:
            try:
                parsed.append(parse_dependency(line))
            except InvalidVersionSpec as e:
                e.context.setdefault("mod", self.name)
                raise
        return Dependencies.classify(parsed)


@dataclass
class Credentials:
    """模组门户的用户名和 token，属于敏感信息，不要写入日志"""

    username: str
    token: str

    def __bool__(self) -> bool:
        return bool(self.username) and bool(self.token)

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, token='***')"

    def as_params(self) -> dict:
        return {"username": self.username, "token": self.token}
