# cache_mutex/stores/redis_store.py

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence

import redis
from loguru import logger
from redis import exceptions as redis_exc

from cache_mutex.errors import StoreError, TransientStoreError
from cache_mutex.utils.identifiers import namespaced

DEFAULT_PORT = 6379


def parse_server(address: str) -> tuple[str, int]:
    """
    Split 'host[:port]' into its parts, defaulting the Redis port.
    IPv6 hosts take a port only in bracketed form ('[::1]:6379'); a bare
    address with several colons ('::1') is a host on the default port.
    """
    address = address.strip()

    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or not host:
            raise ValueError(f"Invalid server address: {address!r}")
        if not rest:
            return host, DEFAULT_PORT
        if not rest.startswith(":"):
            raise ValueError(f"Invalid server address: {address!r}")
        port = rest[1:]
    elif address.count(":") > 1:
        return address, DEFAULT_PORT
    else:
        host, sep, port = address.rpartition(":")
        if not sep:
            return address, DEFAULT_PORT
        if not host:
            raise ValueError(f"Invalid server address: {address!r}")

    try:
        return host, int(port)
    except ValueError as e:
        raise ValueError(f"Invalid port in server address: {address!r}") from e


@contextmanager
def _translate_errors(op: str, key: str) -> Iterator[None]:
    """Map redis-py exceptions onto the store error taxonomy."""
    try:
        yield
    except redis_exc.TimeoutError as e:
        raise TransientStoreError(f"IO timeout during {op} '{key}': {e}") from e
    except redis_exc.ConnectionError as e:
        raise TransientStoreError(f"connection error during {op} '{key}': {e}") from e
    except redis_exc.RedisError as e:
        raise StoreError(f"redis {op} '{key}' failed: {e}") from e


@dataclass(frozen=True)
class RedisStore:
    """
    Lock records in Redis.

    `add` maps to SET NX, which Redis applies atomically. No expiry is set:
    a record stays until its owner (or an operator) deletes it.
    """
    client: redis.Redis
    namespace: str = ""

    @classmethod
    def from_servers(
            cls,
            servers: Sequence[str],
            namespace: str = "",
            *,
            socket_timeout: float = 5.0,
    ) -> "RedisStore":
        """
        Build a RedisStore from a server address list.
        Exactly one address is accepted; Redis does not shard keys client-side.
        """
        if len(servers) != 1:
            raise ValueError(f"redis backend expects exactly one server, got={list(servers)!r}")

        host, port = parse_server(servers[0])
        logger.info(f"Lock store: redis://{host}:{port} (namespace={namespace or '-'})")

        client = redis.Redis(
            host=host,
            port=port,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        return cls(client=client, namespace=namespace)

    def _key(self, key: str) -> str:
        return namespaced(self.namespace, key)

    def get(self, key: str) -> Optional[str]:
        with _translate_errors("get", key):
            value = self.client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def add(self, key: str, value: str) -> bool:
        with _translate_errors("add", key):
            return bool(self.client.set(self._key(key), value, nx=True))

    def delete(self, key: str) -> None:
        with _translate_errors("delete", key):
            self.client.delete(self._key(key))
