# cache_mutex/core/mutex.py

from __future__ import annotations

import time
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, Optional, TypeVar

from loguru import logger

from cache_mutex.core.identity import owner_token
from cache_mutex.core.retry import NoRetry
from cache_mutex.errors import LockTimeoutError, MutexStateError
from cache_mutex.utils.identifiers import require_key

if TYPE_CHECKING:
    # Imported only for type hints.
    from cache_mutex.ports.retry import RetryPolicy
    from cache_mutex.ports.store import LockStore

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 0.1

RELEASE_FAILED_MESSAGE = "Release failed; the record may still carry our token."


class MutexState(str, Enum):
    """
    Lifecycle of one Mutex instance.

    State transitions:
        IDLE -> ACQUIRING -> HELD -> RELEASING -> RELEASED
        IDLE -> ACQUIRING -> FAILED
    """

    IDLE = "IDLE"
    ACQUIRING = "ACQUIRING"
    HELD = "HELD"
    RELEASING = "RELEASING"
    RELEASED = "RELEASED"
    FAILED = "FAILED"


class Mutex:
    """
    Named lock shared between processes through a LockStore.

    Acquisition polls `store.add(key, token)` until the record carries this
    instance's token or the timeout elapses. Release deletes the record only
    while it still carries that token, so a late release never frees a lock
    that has since passed to someone else.

    There is no expiry: if the holder dies, the record stays until deleted.

    One instance covers one acquire/release cycle and is not meant to be
    shared between threads; create a new Mutex per acquisition.
    """

    def __init__(
            self,
            key: str,
            store: LockStore,
            timeout: Optional[float] = None,
            *,
            retry: Optional[RetryPolicy] = None,
            poll_interval: float = DEFAULT_POLL_INTERVAL,
    ):
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be >= 0 or None, got={timeout}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be > 0, got={poll_interval}")

        self._key = require_key(key)
        self._store = store
        self._timeout = timeout
        self._retry = retry if retry is not None else NoRetry()
        self._poll_interval = poll_interval

        self._token: Optional[str] = None
        self._start_time: Optional[float] = None
        self._state = MutexState.IDLE

    def __repr__(self) -> str:
        return f"Mutex(key={self._key!r}, timeout={self._timeout!r}, state={self._state.value})"

    @property
    def key(self) -> str:
        return self._key

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def state(self) -> MutexState:
        return self._state

    @property
    def token(self) -> str:
        """Owner token, computed on first use and fixed afterwards."""
        if self._token is None:
            self._token = owner_token(self)
        return self._token

    # ------------------------------------------------------------------

    def run(self, critical_section: Callable[[], T]) -> T:
        """
        Run `critical_section` while holding the lock and return its result.

        Raises LockTimeoutError if the lock is not obtained in time (the
        callable is not invoked). Errors from the callable are re-raised
        after the lock is released.
        """
        with self.hold():
            return critical_section()

    @contextmanager
    def hold(self) -> Iterator["Mutex"]:
        """
        Context manager form of `run`:

            with Mutex("job-42", store, timeout=5).hold():
                ...
        """
        if self._state is not MutexState.IDLE:
            raise MutexStateError(f"Mutex for '{self._key}' already used (state={self._state.value})")

        self._start_time = time.monotonic()
        self._transition(MutexState.ACQUIRING, "Attempting to lock mutex...")

        try:
            self._lock()
        except BaseException:
            self._transition(MutexState.FAILED, "Lock not obtained.")
            # A store failure may have hit after our add landed; clear it if so
            self._release_quietly()
            raise

        self._transition(MutexState.HELD, "Locked. Running critical section...")
        try:
            yield self
        except BaseException:
            self._transition(MutexState.RELEASING, "Critical section raised. Unlocking...")
            # The critical-section error wins over a failing release
            if self._release_quietly():
                self._transition(MutexState.RELEASED, "Unlocked mutex.")
            else:
                self._transition(MutexState.RELEASED, RELEASE_FAILED_MESSAGE)
            raise

        self._transition(MutexState.RELEASING, "Critical section complete. Unlocking...")
        try:
            self.unlock()
        except BaseException:
            self._transition(MutexState.RELEASED, RELEASE_FAILED_MESSAGE)
            raise
        self._transition(MutexState.RELEASED, "Unlocked mutex.")

    def current_lock(self) -> Optional[str]:
        """Token currently stored for this key, or None if unlocked."""
        return self._retry.execute(lambda: self._store.get(self._key))

    def locked_by_me(self) -> bool:
        return self.current_lock() == self.token

    def unlock(self) -> None:
        """
        Delete the record if, and only if, it still carries our token.
        Safe to call any number of times.
        """
        self._retry.execute(self._unlock_if_mine)

    # ------------------------------------------------------------------

    def _lock(self) -> None:
        while True:
            if self._retry.execute(self._attempt_to_lock) == self.token:
                return
            if self._timed_out():
                raise LockTimeoutError(self._key, self._timeout)
            time.sleep(self._poll_interval)

    def _attempt_to_lock(self) -> Optional[str]:
        if self._store.add(self._key, self.token):
            return self.token
        # Either someone else holds it, or an earlier attempt of ours landed
        # before its reply was lost
        return self._store.get(self._key)

    def _unlock_if_mine(self) -> None:
        if self._store.get(self._key) == self.token:
            self._store.delete(self._key)

    def _release_quietly(self) -> bool:
        try:
            self.unlock()
        except Exception as e:
            logger.warning(f"(key:{self._key}) (lock_id:{self.token}) Failed to release lock: {e}")
            return False
        return True

    def _timed_out(self) -> bool:
        if self._timeout is None:
            return False
        if self._start_time is None:
            raise MutexStateError(f"Mutex for '{self._key}' has not started acquiring")
        return time.monotonic() - self._start_time >= self._timeout

    def _transition(self, state: MutexState, message: str) -> None:
        self._state = state
        logger.debug(f"(key:{self._key}) (lock_id:{self.token}) {message}")
