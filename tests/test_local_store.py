"""本地存储查询的测试。"""

import os
import sqlite3

import pytest

from conftest import make_entry, populate
from modcache.exceptions import InvalidArgument, NotFound, StorageError
from modcache.models import Version
from modcache.storage import LocalStore


CATALOG = [
    make_entry("flib", "0.12.9", "internal", "1.1", "2023-01-01T00:00:00Z"),
    make_entry("flib-extras", "1.0.0", "tweaks", "1.1", "2024-06-01T00:00:00Z"),
    make_entry("old-flib", "0.1.0", "internal", "0.18", "2022-01-01T00:00:00Z"),
    make_entry("new-flib", "2.0.0", "content", "2.0", "2024-09-01T00:00:00Z"),
    make_entry("no-version-flib", "1.0.0", "content", None, "2024-01-01T00:00:00Z"),
    make_entry("rails", "1.0.0", "content", "1.1", "2024-01-01T00:00:00Z"),
]


class TestSearch:
    """LocalStore.search"""

    @pytest.mark.asyncio
    async def test_matches_substring_and_version_floor(self, store):
        await populate(store, CATALOG)

        result = await store.search("flib")

        assert [m.name for m in result] == ["flib", "flib-extras", "new-flib"]
        for mod in result:
            assert "flib" in mod.name
            assert len(mod.versions) == 1
        assert result[0].versions == [Version(0, 12, 9)]
        assert result[0].category == "internal"

    @pytest.mark.asyncio
    async def test_sort_by_date_descending(self, store):
        await populate(store, CATALOG)

        result = await store.search("flib", sort_by_date=True)

        assert [m.name for m in result] == ["new-flib", "flib-extras", "flib"]
        assert result[0].released_at.year == 2024

    @pytest.mark.asyncio
    async def test_filter_by_categories(self, store):
        await populate(store, CATALOG)

        result = await store.search("flib", categories=["internal", "tweaks", ""])

        assert [m.name for m in result] == ["flib", "flib-extras"]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, store):
        await populate(store, CATALOG)

        assert await store.search("%") == []
        assert await store.search("_") == []

    @pytest.mark.asyncio
    async def test_empty_term(self, store):
        with pytest.raises(InvalidArgument):
            await store.search("")

    @pytest.mark.asyncio
    async def test_unknown_category(self, store):
        await populate(store, CATALOG)
        with pytest.raises(InvalidArgument) as exc:
            await store.search("flib", categories=["weapons"])
        assert exc.value.context["category"] == "weapons"


class TestLookups:
    """精确名称查询"""

    @pytest.mark.asyncio
    async def test_download_url_and_latest_version(self, store):
        await populate(store, CATALOG)

        assert await store.download_url("flib") == "/download/flib/0.12.9"
        assert await store.latest_version("flib") == Version(0, 12, 9)

    @pytest.mark.asyncio
    async def test_lookup_is_exact(self, store):
        await populate(store, CATALOG)

        with pytest.raises(NotFound):
            await store.latest_version("fli")
        with pytest.raises(NotFound):
            await store.download_url("missing")

    @pytest.mark.asyncio
    async def test_empty_name(self, store):
        with pytest.raises(InvalidArgument):
            await store.latest_version("")


class TestOpen:
    def test_directory_path_is_rejected(self, tmp_path):
        os.makedirs(tmp_path / "mods.db")
        with pytest.raises(StorageError):
            LocalStore(str(tmp_path / "mods.db")).open()

    @pytest.mark.asyncio
    async def test_reopen_keeps_data(self, config):
        with LocalStore(config.db_path) as store:
            await populate(store, CATALOG[:1])
        with LocalStore(config.db_path) as store:
            assert await store.count() == 1


class TestTransaction:
    @pytest.mark.asyncio
    async def test_error_after_sqlite_rolled_back_is_storage_error(self, store):
        # SQLite 在 SQLITE_FULL 等错误时会自行结束事务
        with pytest.raises(StorageError) as exc:
            async with store.transaction() as tx:
                tx.upsert_category("content")
                tx.execute("ROLLBACK")
                raise sqlite3.OperationalError("database or disk is full")

        assert "disk is full" in str(exc.value)
        assert await store.categories() == []
