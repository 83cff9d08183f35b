# cache_mutex/ports/store.py

from __future__ import annotations

from typing import Optional, Protocol


class LockStore(Protocol):
    """
    Key-value store holding lock records.

    Implementations must guarantee:
    - `add` is atomic: it sets the value only if the key is absent
    - `get` returns None for a missing key instead of raising
    - `delete` is idempotent

    Recoverable I/O failures raise TransientStoreError, anything else StoreError.
    """

    def get(self, key: str) -> Optional[str]: ...

    def add(self, key: str, value: str) -> bool: ...

    def delete(self, key: str) -> None: ...
