"""
本地存储

使用 SQLite 保存模组目录：分类、模组、每个模组的最新发布版本。
所有读写都经由同一把锁串行执行。
"""

import asyncio
import json
import os
import sqlite3
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, List, Optional

from loguru import logger

from modcache.exceptions import (
    DecodeError,
    InvalidArgument,
    InvalidVersionSpec,
    NotFound,
    StorageError,
)
from modcache.models.api import (
    Category,
    CatalogEntry,
    format_timestamp,
    parse_timestamp,
)
from modcache.models.mod import LocalMod
from modcache.models.version import Version


# 搜索结果只包含支持该游戏版本及以上的模组
MIN_FACTORIO_VERSION = "1.1"

SCHEMA = (
    "CREATE TABLE IF NOT EXISTS categories (name TEXT PRIMARY KEY)",
    "CREATE TABLE IF NOT EXISTS mods ("
    "name TEXT PRIMARY KEY, title TEXT, owner TEXT, summary TEXT, "
    "category TEXT REFERENCES categories(name))",
    "CREATE TABLE IF NOT EXISTS latest_releases ("
    "name TEXT PRIMARY KEY, download_url TEXT, file_name TEXT, manifest TEXT, "
    "released_at TEXT, version TEXT, sha1 TEXT)",
)


@dataclass
class ReleaseRow:
    """latest_releases 表中的一行"""

    name: str
    download_url: str
    file_name: str
    version: str
    sha1: str


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class StoreTransaction:
    """事务内的写操作"""

    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn

    def execute(self, sql: str, params: Iterable = ()) -> sqlite3.Cursor:
        return self._conn.execute(sql, tuple(params))

    def upsert_category(self, name: str):
        """插入分类，已存在时忽略"""
        self.execute("INSERT OR IGNORE INTO categories (name) VALUES (?)", (name,))

    def upsert_mod(self, entry: CatalogEntry):
        """插入或按 name 替换模组"""
        self.execute(
            "INSERT OR REPLACE INTO mods (name, title, owner, summary, category) "
            "VALUES (?, ?, ?, ?, ?)",
            (entry.name, entry.title, entry.owner, entry.summary, entry.category),
        )

    def upsert_release(self, entry: CatalogEntry):
        """插入或按 name 替换最新发布版本"""
        release = entry.latest_release
        if release is None:
            # 没有发布版本的模组只保留 mods 行，旧的发布记录一并删除
            logger.warning(f"[存储] 模组 {entry.name} 没有 latest_release，跳过发布记录")
            self.execute("DELETE FROM latest_releases WHERE name = ?", (entry.name,))
            return
        self.execute(
            "INSERT OR REPLACE INTO latest_releases "
            "(name, download_url, file_name, manifest, released_at, version, sha1) "
            "VALUES (?, ?, ?, json(?), ?, ?, ?)",
            (
                entry.name,
                release.download_url,
                release.file_name,
                json.dumps(release.info_json),
                format_timestamp(release.released_at),
                release.version,
                release.sha1,
            ),
        )

    def upsert_entry(self, entry: CatalogEntry):
        """写入一个目录条目：分类、模组、最新发布版本"""
        self.upsert_category(entry.category)
        self.upsert_mod(entry)
        self.upsert_release(entry)


class LocalStore:
    """模组目录的本地 SQLite 存储"""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = asyncio.Lock()

    def open(self) -> "LocalStore":
        """
        打开数据库，必要时创建表结构

        Raises:
            StorageError: 路径是目录或数据库无法打开
        """
        if self._conn is not None:
            return self
        if os.path.isdir(self.db_path):
            raise StorageError(
                f"{self.db_path} 是一个目录", context={"path": self.db_path}
            )
        os.makedirs(os.path.dirname(self.db_path) or ".", exist_ok=True)
        try:
            # isolation_level=None: 事务边界由 transaction() 显式控制
            conn = sqlite3.connect(self.db_path, isolation_level=None)
            conn.execute("PRAGMA foreign_keys = ON")
            for statement in SCHEMA:
                conn.execute(statement)
        except sqlite3.Error as e:
            raise StorageError(
                f"初始化数据库失败: {e}", context={"path": self.db_path}
            ) from e
        self._conn = conn
        logger.debug(f"[存储] 已打开数据库: {self.db_path}")
        return self

    def close(self):
        """关闭数据库连接"""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.open()
        return self._conn

    @staticmethod
    def _rollback(conn: sqlite3.Connection):
        """回滚事务；SQLite 已自行回滚时不再报错，保留原始异常"""
        if not conn.in_transaction:
            return
        try:
            conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning(f"[存储] 回滚失败: {e}")

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[StoreTransaction]:
        """
        在事务中执行，调用方不应自行提交或回滚

        任何异常（包括任务取消）都会回滚事务，sqlite3 错误转换为 StorageError。
        调用方必须已持有锁。
        """
        conn = self.conn
        try:
            conn.execute("BEGIN")
        except sqlite3.Error as e:
            raise StorageError(f"开启事务失败: {e}") from e

        try:
            yield StoreTransaction(conn)
        except BaseException as e:
            self._rollback(conn)
            logger.debug(f"[存储] 事务已回滚: {e!r}")
            if isinstance(e, sqlite3.Error):
                raise StorageError(f"数据库写入失败: {e}") from e
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback(conn)
            raise StorageError(f"提交事务失败: {e}") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreTransaction]:
        """持有锁并开启事务"""
        async with self._lock:
            async with self._transaction() as tx:
                yield tx

    async def search(
        self,
        term: str,
        categories: Optional[Iterable[str]] = None,
        sort_by_date: bool = False,
    ) -> List[LocalMod]:
        """
        按名称子串搜索模组

        Args:
            term: 搜索词，不能为空
            categories: 只返回这些分类中的模组，空字符串会被忽略
            sort_by_date: 按发布日期降序排列，默认按名称排列

        Raises:
            InvalidArgument: 搜索词为空或分类未知
        """
        if not term:
            raise InvalidArgument("搜索词不能为空")

        wanted = []
        for category in categories or []:
            if not category:
                continue
            if category not in Category.names():
                raise InvalidArgument(
                    f"未知的分类: {category}", context={"category": category}
                )
            wanted.append(category)

        sql = (
            "SELECT m.name, m.summary, m.category, r.released_at, r.version "
            "FROM mods AS m JOIN latest_releases AS r USING (name) "
            "WHERE json_extract(r.manifest, '$.factorio_version') >= ? "
            "AND m.name LIKE ? ESCAPE '\\'"
        )
        params: list = [MIN_FACTORIO_VERSION, f"%{_escape_like(term)}%"]
        if wanted:
            sql += f" AND m.category IN ({', '.join('?' for _ in wanted)})"
            params.extend(wanted)
        sql += " ORDER BY r.released_at DESC" if sort_by_date else " ORDER BY m.name"

        logger.debug(f"[存储] SQL: {sql}")

        async with self._lock:
            async with self._transaction() as tx:
                rows = tx.execute(sql, params).fetchall()

        return [
            LocalMod(
                name=name,
                versions=[Version.parse(version)],
                released_at=parse_timestamp(released_at),
                summary=summary or "",
                category=category or "",
            )
            for name, summary, category, released_at, version in rows
        ]

    async def latest_release(self, name: str) -> ReleaseRow:
        """
        按精确名称查询最新发布版本

        Raises:
            InvalidArgument: 名称为空
            NotFound: 没有该模组
        """
        if not name:
            raise InvalidArgument("模组名称不能为空")

        async with self._lock:
            async with self._transaction() as tx:
                row = tx.execute(
                    "SELECT name, download_url, file_name, version, sha1 "
                    "FROM latest_releases WHERE name = ? LIMIT 1",
                    (name,),
                ).fetchone()

        if row is None:
            raise NotFound(f"找不到模组: {name}", context={"mod": name})
        return ReleaseRow(*row)

    async def download_url(self, name: str) -> str:
        """模组的下载路径（相对于门户地址）"""
        release = await self.latest_release(name)
        return release.download_url

    async def latest_version(self, name: str) -> Version:
        """模组的最新版本"""
        release = await self.latest_release(name)
        try:
            return Version.parse_strict(release.version)
        except InvalidVersionSpec as e:
            raise DecodeError(
                f"模组 {name} 的版本号无效: {release.version!r}",
                context={"mod": name, "version": release.version},
            ) from e

    async def categories(self) -> List[str]:
        """已入库的分类"""
        async with self._lock:
            async with self._transaction() as tx:
                rows = tx.execute(
                    "SELECT name FROM categories ORDER BY name"
                ).fetchall()
        return [row[0] for row in rows]

    async def count(self) -> int:
        """已入库的模组数量"""
        async with self._lock:
            async with self._transaction() as tx:
                (total,) = tx.execute("SELECT COUNT(*) FROM mods").fetchone()
        return total

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
