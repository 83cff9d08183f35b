# cache_mutex/stores/factory.py

from __future__ import annotations

from typing import TYPE_CHECKING

from cache_mutex.config import StoreSettings
from cache_mutex.stores.memory import MemoryStore
from cache_mutex.stores.redis_store import RedisStore
from cache_mutex.stores.sql import SqlStore

if TYPE_CHECKING:
    from cache_mutex.ports.store import LockStore


def build_store(settings: StoreSettings) -> LockStore:
    """
    Construct the store named by settings.backend.

    The caller owns the returned instance and should reuse it for the life of
    the process; nothing here is cached.
    """
    if settings.backend == "redis":
        return RedisStore.from_servers(settings.servers, namespace=settings.namespace)

    if settings.backend == "sql":
        if not settings.url:
            raise ValueError("sql backend requires MUTEX_DB_URL")
        return SqlStore.from_url(settings.url, namespace=settings.namespace, table=settings.table)

    if settings.backend == "memory":
        return MemoryStore(namespace=settings.namespace)

    raise ValueError(f"Unknown store backend: {settings.backend!r}")
