# cache_mutex/core/pool.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from cache_mutex.config import MutexSettings, RetrySettings
from cache_mutex.core.mutex import DEFAULT_POLL_INTERVAL, Mutex
from cache_mutex.core.retry import BoundedRetry, NoRetry, build_retry_policy

if TYPE_CHECKING:
    from cache_mutex.ports.retry import RetryPolicy
    from cache_mutex.ports.store import LockStore

T = TypeVar("T")

# Marks "use the pool default" so that None can still mean "wait forever"
_UNSET: Any = object()


@dataclass(frozen=True)
class MutexPool:
    # Where lock records live (already namespaced by the store)
    store: LockStore

    # Applied to every store call made by mutexes from this pool
    retry: RetryPolicy = field(default_factory=NoRetry)

    poll_interval: float = DEFAULT_POLL_INTERVAL

    # None means acquisition may block forever
    default_timeout: Optional[float] = None

    @classmethod
    def from_settings(
            cls,
            store: LockStore,
            retry_settings: RetrySettings,
            mutex_settings: MutexSettings,
    ) -> "MutexPool":
        return cls(
            store=store,
            retry=build_retry_policy(retry_settings),
            poll_interval=mutex_settings.poll_s,
            default_timeout=mutex_settings.timeout_s,
        )

    def mutex(self, key: str, timeout: Optional[float] = _UNSET) -> Mutex:
        """Fresh Mutex for `key`; each acquisition needs its own instance."""
        return Mutex(
            key,
            self.store,
            self.default_timeout if timeout is _UNSET else timeout,
            retry=self.retry,
            poll_interval=self.poll_interval,
        )

    def run(
            self,
            key: str,
            critical_section: Callable[[], T],
            timeout: Optional[float] = _UNSET,
    ) -> T:
        return self.mutex(key, timeout).run(critical_section)


def cross_process_mutex(key: str, store: LockStore, timeout: Optional[float] = None, **kwargs: Any) -> Mutex:
    """Mutex that gives up on the first store error."""
    return Mutex(key, store, timeout, retry=NoRetry(), **kwargs)


def distributed_mutex(key: str, store: LockStore, timeout: Optional[float] = None, **kwargs: Any) -> Mutex:
    """Mutex that rides out store I/O timeouts (5 attempts, 30s apart)."""
    return Mutex(key, store, timeout, retry=BoundedRetry(), **kwargs)
