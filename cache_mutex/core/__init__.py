# cache_mutex/core/__init__

__all__ = [
    "identity",
    "retry",
    "mutex",
    "pool",
]
