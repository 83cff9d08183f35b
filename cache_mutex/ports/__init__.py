# cache_mutex/ports/__init__

__all__ = [
    "store",
    "retry",
]
