# cache_mutex/ports/retry.py

from __future__ import annotations

from typing import Callable, Protocol, TypeVar

T = TypeVar("T")


class RetryPolicy(Protocol):
    def execute(self, operation: Callable[[], T]) -> T: ...
