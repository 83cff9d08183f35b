# cache_mutex/core/retry.py

from __future__ import annotations

import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, TypeVar

from loguru import logger

from cache_mutex.config import RetrySettings
from cache_mutex.errors import TransientStoreError

if TYPE_CHECKING:
    from cache_mutex.ports.retry import RetryPolicy

T = TypeVar("T")


@dataclass(frozen=True)
class NoRetry:
    """Runs the store operation exactly once."""

    def execute(self, operation: Callable[[], T]) -> T:
        return operation()


@dataclass(frozen=True)
class BoundedRetry:
    """
    Re-runs a store operation on transient I/O errors.

    Only TransientStoreError whose message matches `matching` (regex search)
    is retried, with a fixed `delay_s` pause between attempts. Everything
    else, and the last failure once `attempts` is used up, propagates unchanged.
    """
    attempts: int = 5
    delay_s: float = 30.0
    matching: str = "IO timeout"

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be >= 1, got={self.attempts}")
        if self.delay_s < 0:
            raise ValueError(f"delay_s must be >= 0, got={self.delay_s}")
        try:
            re.compile(self.matching)
        except re.error as e:
            raise ValueError(f"matching must be a valid regex, got={self.matching!r}: {e}") from e

    def is_retryable(self, error: BaseException) -> bool:
        return isinstance(error, TransientStoreError) and re.search(self.matching, str(error)) is not None

    def execute(self, operation: Callable[[], T]) -> T:
        for attempt in range(1, self.attempts + 1):
            try:
                return operation()
            except TransientStoreError as e:
                if not self.is_retryable(e):
                    raise
                if attempt == self.attempts:
                    logger.error(f"Store operation failed after {self.attempts} attempts: {e}")
                    raise
                logger.warning(
                    f"Store attempt {attempt}/{self.attempts} failed: {e}. "
                    f"Retrying in {self.delay_s:.1f}s..."
                )
                time.sleep(self.delay_s)

        # Unreachable: the last attempt either returns or raises
        raise RuntimeError("Retry loop exited unexpectedly")


def build_retry_policy(settings: RetrySettings) -> RetryPolicy:
    if not settings.resilient:
        return NoRetry()
    return BoundedRetry(
        attempts=settings.attempts,
        delay_s=settings.delay_s,
        matching=settings.matching,
    )
