"""Pytest 配置和通用 fixture。"""

import json
import os
import zipfile
from typing import Dict, List, Optional

import pytest

from modcache.exceptions import FetchError
from modcache.models import CacheConfig, CatalogEntry, Credentials
from modcache.storage import LocalStore


BASE_URL = "https://mods.example.com"


def make_entry(
    name: str,
    version: str = "1.0.0",
    category: str = "content",
    factorio_version: Optional[str] = "1.1",
    released_at: str = "2024-01-01T00:00:00.000Z",
    summary: str = "",
    sha1: str = "",
) -> dict:
    """构造门户 API 返回的一个模组条目"""
    info_json = {}
    if factorio_version is not None:
        info_json["factorio_version"] = factorio_version
    return {
        "name": name,
        "title": name.title(),
        "owner": "tester",
        "summary": summary or f"{name} summary",
        "category": category,
        "downloads_count": 10,
        "latest_release": {
            "download_url": f"/download/{name}/{version}",
            "file_name": f"{name}_{version}.zip",
            "released_at": released_at,
            "version": version,
            "sha1": sha1,
            "info_json": info_json,
        },
    }


def make_page(entries: List[dict], page: int = 1, page_count: int = 1) -> dict:
    """构造一页模组列表"""
    return {
        "pagination": {
            "count": len(entries) * page_count,
            "page": page,
            "page_count": page_count,
            "page_size": len(entries),
            "links": {},
        },
        "results": entries,
    }


def make_mod_zip(
    path: str,
    name: str,
    version: str = "1.0.0",
    dependencies: Optional[List[str]] = None,
) -> str:
    """构造一个带 info.json 的 mod 压缩包"""
    info = {
        "name": name,
        "version": version,
        "title": name,
        "author": "tester",
        "factorio_version": "1.1",
        "dependencies": dependencies if dependencies is not None else ["base >= 1.1"],
    }
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with zipfile.ZipFile(path, "w") as z:
        z.writestr(f"{name}_{version}/info.json", json.dumps(info))
        z.writestr(f"{name}_{version}/control.lua", "-- empty")
    return path


def mod_zip_bytes(tmp_path, name, version="1.0.0", dependencies=None) -> bytes:
    path = make_mod_zip(
        str(tmp_path / "build" / f"{name}_{version}.zip"), name, version, dependencies
    )
    with open(path, "rb") as f:
        return f.read()


class FakePortalClient:
    """替代 PortalClient 的假客户端，不访问网络"""

    def __init__(
        self,
        pages: Optional[Dict[int, dict]] = None,
        files: Optional[Dict[str, bytes]] = None,
    ):
        self.base_url = BASE_URL
        self.pages = pages or {}
        self.files = files or {}
        self.requests = []
        self.downloads = []

    def url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(self, url, params=None):
        self.requests.append((url, params))
        page = (params or {}).get("page", 1)
        if page not in self.pages:
            raise FetchError(f"page {page} unavailable", context={"url": url})
        return self.pages[page]

    async def download(self, url, dest_path, params=None):
        self.downloads.append((url, params))
        path = url[len(self.base_url) :]
        if path not in self.files:
            raise FetchError("not found", context={"url": url})
        os.makedirs(os.path.dirname(dest_path), exist_ok=True)
        with open(dest_path, "wb") as f:
            f.write(self.files[path])
        return len(self.files[path])

    async def close(self):
        pass


class FailingClient:
    """任何网络访问都会失败"""

    base_url = BASE_URL

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(self, url, params=None):
        raise AssertionError(f"unexpected request: {url}")

    async def download(self, url, dest_path, params=None):
        raise AssertionError(f"unexpected download: {url}")

    async def close(self):
        pass


async def populate(store: LocalStore, entries: List[dict]):
    """直接把条目写入存储"""
    async with store.transaction() as tx:
        for data in entries:
            tx.upsert_entry(CatalogEntry.from_portal(data))


@pytest.fixture
def config(tmp_path):
    return CacheConfig(
        cache_dir=str(tmp_path / "cache"),
        install_dir=str(tmp_path / "factorio"),
        base_url=BASE_URL,
    )


@pytest.fixture
def store(config):
    store = LocalStore(config.db_path).open()
    yield store
    store.close()


@pytest.fixture
def credentials():
    return Credentials(username="engineer", token="secret-token")
