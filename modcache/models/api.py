"""
API 数据模型

定义模组门户 API 返回的分页信封、模组条目与发布信息。
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from modcache.exceptions import DecodeError


class Category(Enum):
    """模组分类，每个模组只属于一个分类"""

    NO_CATEGORY = "no-category"
    CONTENT = "content"
    OVERHAUL = "overhaul"
    TWEAKS = "tweaks"
    UTILITIES = "utilities"
    SCENARIOS = "scenarios"
    MOD_PACKS = "mod-packs"
    LOCALIZATIONS = "localizations"
    INTERNAL = "internal"

    @classmethod
    def names(cls) -> List[str]:
        """所有可用分类"""
        return [c.value for c in cls]


def parse_timestamp(value: Any) -> datetime:
    """解析 RFC 3339 时间戳，统一为 UTC"""
    if isinstance(value, datetime):
        dt = value
    else:
        if not value:
            raise DecodeError("时间戳为空")
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as e:
            raise DecodeError(
                f"无法解析时间戳: {value!r}", context={"value": value}
            ) from e
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """格式化为可排序的 UTC 文本"""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass
class PaginationLinks:
    """分页链接"""

    first: Optional[str] = None
    prev: Optional[str] = None
    next: Optional[str] = None
    last: Optional[str] = None


@dataclass
class Pagination:
    """分页信息"""

    count: int
    page: int
    page_count: int
    page_size: int
    links: PaginationLinks = field(default_factory=PaginationLinks)

    @classmethod
    def from_portal(cls, data: dict) -> "Pagination":
        links = data.get("links") or {}
        try:
            return cls(
                count=int(data.get("count", 0)),
                page=int(data.get("page", 1)),
                page_count=int(data["page_count"]),
                page_size=int(data.get("page_size", 0)),
                links=PaginationLinks(
                    first=links.get("first"),
                    prev=links.get("prev"),
                    next=links.get("next"),
                    last=links.get("last"),
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"分页信息格式错误: {e}") from e


@dataclass
class Release:
    """
    模组的一个发布版本。

    info_json 是 mod 自带 info.json 的副本；列表接口中通常只包含
    factorio_version。
    """

    download_url: str
    file_name: str
    released_at: datetime
    version: str
    sha1: str
    info_json: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_portal(cls, data: dict) -> "Release":
        try:
            return cls(
                download_url=data["download_url"],
                file_name=data.get("file_name", ""),
                released_at=parse_timestamp(data.get("released_at")),
                version=data["version"],
                sha1=data.get("sha1", ""),
                info_json=data.get("info_json") or {},
            )
        except (KeyError, TypeError) as e:
            raise DecodeError(f"发布信息格式错误: {e}") from e

    def to_dict(self) -> dict:
        return {
            "download_url": self.download_url,
            "file_name": self.file_name,
            "released_at": format_timestamp(self.released_at),
            "version": self.version,
            "sha1": self.sha1,
            "info_json": self.info_json,
        }


@dataclass
class License:
    """模组许可证"""

    id: str = ""
    name: str = ""
    title: str = ""
    description: str = ""
    url: str = ""


@dataclass
class CatalogEntry:
    """
    模组门户中的一个条目。

    不同的接口返回的字段不同，只有 name 是稳定的唯一标识。
    """

    name: str
    title: str = ""
    owner: str = ""
    summary: str = ""
    category: str = ""
    downloads_count: int = 0
    latest_release: Optional[Release] = None
    releases: List[Release] = field(default_factory=list)
    thumbnail: Optional[str] = None
    changelog: Optional[str] = None
    created_at: Optional[datetime] = None
    description: Optional[str] = None
    source_url: Optional[str] = None
    homepage: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    license: Optional[License] = None

    @classmethod
    def from_portal(cls, data: dict) -> "CatalogEntry":
        """将门户 API 返回的条目转换为 CatalogEntry 对象"""
        if not isinstance(data, dict) or not data.get("name"):
            raise DecodeError("模组条目缺少 name 字段", context={"entry": data})

        latest = data.get("latest_release")
        license_data = data.get("license")
        created_at = data.get("created_at")

        return cls(
            name=data["name"],
            title=data.get("title", ""),
            owner=data.get("owner", ""),
            summary=data.get("summary", ""),
            category=data.get("category") or "",
            downloads_count=data.get("downloads_count", 0),
            latest_release=Release.from_portal(latest) if latest else None,
            releases=[Release.from_portal(r) for r in data.get("releases", [])],
            thumbnail=data.get("thumbnail"),
            changelog=data.get("changelog"),
            created_at=parse_timestamp(created_at) if created_at else None,
            description=data.get("description"),
            source_url=data.get("source_url"),
            homepage=data.get("homepage"),
            tags=data.get("tags") or [],
            license=(
                License(
                    id=license_data.get("id", ""),
                    name=license_data.get("name", ""),
                    title=license_data.get("title", ""),
                    description=license_data.get("description", ""),
                    url=license_data.get("url", ""),
                )
                if license_data
                else None
            ),
        )

    def to_dict(self) -> dict:
        """序列化为暂存流中的一行"""
        return {
            "name": self.name,
            "title": self.title,
            "owner": self.owner,
            "summary": self.summary,
            "category": self.category,
            "downloads_count": self.downloads_count,
            "latest_release": (
                self.latest_release.to_dict() if self.latest_release else None
            ),
            "releases": [r.to_dict() for r in self.releases],
            "thumbnail": self.thumbnail,
            "changelog": self.changelog,
            "created_at": (
                format_timestamp(self.created_at) if self.created_at else None
            ),
            "description": self.description,
            "source_url": self.source_url,
            "homepage": self.homepage,
            "tags": self.tags,
            "license": asdict(self.license) if self.license else None,
        }

    @property
    def thumbnail_url(self) -> str:
        relpath = self.thumbnail or "/assets/.thumb.png"
        return "https://assets-mod.factorio.com" + relpath


@dataclass
class CatalogPage:
    """一页模组列表"""

    pagination: Pagination
    results: List[CatalogEntry]

    @classmethod
    def from_portal(cls, data: Any) -> "CatalogPage":
        if not isinstance(data, dict) or "pagination" not in data:
            raise DecodeError("响应缺少 pagination 信封")
        return cls(
            pagination=Pagination.from_portal(data["pagination"] or {}),
            results=[CatalogEntry.from_portal(r) for r in data.get("results") or []],
        )
