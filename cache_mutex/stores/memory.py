# cache_mutex/stores/memory.py

from __future__ import annotations

import threading
from typing import Dict, Optional

from cache_mutex.utils.identifiers import namespaced


class MemoryStore:
    """
    In-process reference store.

    Used for:
    - Tests
    - Single-host experiments where every contender lives in one process

    Thread-safe: a single lock serializes every operation, which makes `add`
    atomic across threads. NOT for cross-process coordination.
    """

    def __init__(self, namespace: str = ""):
        self.namespace = namespace
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(namespaced(self.namespace, key))

    def add(self, key: str, value: str) -> bool:
        full_key = namespaced(self.namespace, key)
        with self._lock:
            if full_key in self._data:
                return False
            self._data[full_key] = value
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(namespaced(self.namespace, key), None)
