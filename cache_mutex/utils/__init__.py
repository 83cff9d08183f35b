# cache_mutex/utils/__init__

__all__ = [
    "identifiers",
]
