# cache_mutex/core/identity.py

from __future__ import annotations

import os
import socket
import time
from typing import Optional


def owner_token(owner: object, *, now: Optional[float] = None) -> str:
    """
    Build the value written into a lock record: host:pid.object_id.unix_seconds.

    pid and host tell processes apart, id(owner) tells apart mutexes alive at
    the same moment inside one process, the timestamp separates reuse of
    an id() after garbage collection. Collisions are unlikely, not impossible.
    """
    timestamp = int(time.time() if now is None else now)
    return f"{socket.gethostname()}:{os.getpid()}.{id(owner)}.{timestamp}"
