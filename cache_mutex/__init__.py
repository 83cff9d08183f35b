"""
Cross-process mutex backed by a shared key-value store.

    from cache_mutex import Mutex, MemoryStore

    Mutex("job-42", store, timeout=5).run(do_work)
"""

from cache_mutex.core.mutex import Mutex, MutexState
from cache_mutex.core.pool import MutexPool, cross_process_mutex, distributed_mutex
from cache_mutex.core.retry import BoundedRetry, NoRetry
from cache_mutex.errors import (
    LockTimeoutError,
    MutexError,
    MutexStateError,
    StoreError,
    TransientStoreError,
)
from cache_mutex.stores.factory import build_store
from cache_mutex.stores.memory import MemoryStore
from cache_mutex.stores.redis_store import RedisStore
from cache_mutex.stores.sql import SqlStore

__all__ = [
    "Mutex",
    "MutexState",
    "MutexPool",
    "cross_process_mutex",
    "distributed_mutex",
    "BoundedRetry",
    "NoRetry",
    "LockTimeoutError",
    "MutexError",
    "MutexStateError",
    "StoreError",
    "TransientStoreError",
    "build_store",
    "MemoryStore",
    "RedisStore",
    "SqlStore",
]

__version__ = "0.1.0"
