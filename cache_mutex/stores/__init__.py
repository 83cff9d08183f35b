# cache_mutex/stores/__init__

__all__ = [
    "factory",
    "memory",
    "redis_store",
    "sql",
]
