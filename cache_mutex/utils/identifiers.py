# cache_mutex/utils/identifiers.py

import re

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def sanitize_ident(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Unsafe identifier: {name!r}")
    return name

def qident(name: str) -> str:
    return f'"{sanitize_ident(name)}"'


def require_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise ValueError(f"Lock key must be a non-empty string, got={key!r}")
    return key


def namespaced(namespace: str, key: str) -> str:
    """Prefix a lock key with its namespace ('jobs' + 'a' -> 'jobs:a')."""
    key = require_key(key)
    return f"{namespace}:{key}" if namespace else key
