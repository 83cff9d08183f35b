# cache_mutex/errors.py

from __future__ import annotations


class MutexError(Exception):
    """Base class for every error raised by cache_mutex."""


class LockTimeoutError(MutexError, TimeoutError):
    """
    The lock could not be obtained within the configured window.
    The critical section never ran.
    """

    def __init__(self, key: str, timeout: float | None):
        self.key = key
        self.timeout = timeout
        super().__init__(f"Failed to obtain a lock on '{key}' within {timeout} seconds.")


class MutexStateError(MutexError):
    """A Mutex instance was used outside its single acquire/release cycle."""


class StoreError(MutexError):
    """The backing store failed in a way that is not worth retrying."""


class TransientStoreError(StoreError):
    """Recoverable store I/O failure (timeouts, dropped connections)."""
