"""Pytest configuration shared across the test suite."""

import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


import fakeredis
import pytest
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from cache_mutex.errors import TransientStoreError
from cache_mutex.stores.memory import MemoryStore
from cache_mutex.stores.redis_store import RedisStore
from cache_mutex.stores.sql import SqlStore


class RecordingStore:
    """
    Wraps a real store, counts calls and can inject failures.

    `fail_on[op]` is a list of exceptions raised (one per call, in order)
    before the wrapped operation runs. `lose_reply_on_add` applies the add
    to the inner store but raises anyway, like a reply lost in transit.
    """

    def __init__(self, inner=None) -> None:
        self.inner = inner if inner is not None else MemoryStore()
        self.calls: Dict[str, int] = {"get": 0, "add": 0, "delete": 0}
        self.fail_on: Dict[str, List[Exception]] = {"get": [], "add": [], "delete": []}
        self.lose_reply_on_add: Optional[Exception] = None
        self._lock = threading.Lock()

    def _enter(self, op: str) -> None:
        with self._lock:
            self.calls[op] += 1
            pending = self.fail_on[op]
            error = pending.pop(0) if pending else None
        if error is not None:
            raise error

    def get(self, key):
        self._enter("get")
        return self.inner.get(key)

    def add(self, key, value):
        self._enter("add")
        added = self.inner.add(key, value)
        if self.lose_reply_on_add is not None:
            error, self.lose_reply_on_add = self.lose_reply_on_add, None
            raise error
        return added

    def delete(self, key):
        self._enter("delete")
        self.inner.delete(key)


def io_timeout(message: str = "IO timeout") -> TransientStoreError:
    return TransientStoreError(message)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore(namespace="test")


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore(MemoryStore(namespace="test"))


@pytest.fixture
def redis_store() -> RedisStore:
    return RedisStore(client=fakeredis.FakeRedis(decode_responses=True), namespace="test")


@pytest.fixture
def sql_store() -> SqlStore:
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    store = SqlStore(engine=engine, namespace="test")
    store.ensure_table()
    yield store
    engine.dispose()


@pytest.fixture(params=["memory", "redis", "sql"])
def any_store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def log_lines() -> List[str]:
    """Collects loguru output as 'LEVEL|message' strings."""
    lines: List[str] = []
    handler_id = logger.add(lambda msg: lines.append(msg.rstrip("\n")), level="DEBUG", format="{level}|{message}")
    yield lines
    logger.remove(handler_id)
