"""
ModCache 存储层
"""

from modcache.storage.local_store import LocalStore, ReleaseRow, StoreTransaction

__all__ = [
    "LocalStore",
    "ReleaseRow",
    "StoreTransaction",
]
