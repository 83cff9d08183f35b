# cache_mutex/stores/sql.py

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from loguru import logger
from sqlalchemy import create_engine, exc, text
from sqlalchemy.engine import Engine

from cache_mutex.errors import StoreError, TransientStoreError
from cache_mutex.utils.identifiers import namespaced, qident, sanitize_ident


@contextmanager
def _translate_errors(op: str, key: str) -> Iterator[None]:
    """Map SQLAlchemy exceptions onto the store error taxonomy."""
    try:
        yield
    except exc.TimeoutError as e:
        # Raised when no pooled connection became available in time
        raise TransientStoreError(f"IO timeout during {op} '{key}': {e}") from e
    except exc.OperationalError as e:
        raise TransientStoreError(f"{op} '{key}' failed: {e.orig}") from e
    except exc.SQLAlchemyError as e:
        raise StoreError(f"sql {op} '{key}' failed: {e}") from e


@dataclass(frozen=True)
class SqlStore:
    """
    Lock records in a relational table.

    Purpose:
    - Reuse an existing database as the coordination point
    - Rely on the primary key for atomic add-if-absent (INSERT fails on conflict)

    Table layout: lock_key (PK), owner, created_at.
    """

    engine: Engine
    namespace: str = ""
    table: str = "mutex_locks"

    @classmethod
    def from_url(
        cls,
        url: str,
        namespace: str = "",
        table: str = "mutex_locks",
    ) -> "SqlStore":
        """
        Build a SqlStore from a SQLAlchemy URL and make sure the lock table exists.
        """
        table = sanitize_ident(table.strip())

        engine = create_engine(
            url,
            pool_pre_ping=True,   # reconnect if connection is stale
            future=True,
        )
        logger.info(f"Lock store: {engine.url.render_as_string(hide_password=True)} (table={table})")

        store = cls(engine=engine, namespace=namespace, table=table)
        store.ensure_table()
        return store

    def ensure_table(self) -> None:
        """
        Create the lock table if it does not exist.
        """
        with _translate_errors("create table", self.table):
            with self.engine.begin() as conn:
                conn.execute(
                    text(
                        f"""
                        CREATE TABLE IF NOT EXISTS {qident(self.table)} (
                            lock_key   VARCHAR(512) PRIMARY KEY,
                            owner      VARCHAR(255) NOT NULL,
                            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                        )
                        """
                    )
                )

    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        full_key = namespaced(self.namespace, key)
        with _translate_errors("get", key):
            with self.engine.connect() as conn:
                return conn.execute(
                    text(f"SELECT owner FROM {qident(self.table)} WHERE lock_key = :k"),
                    {"k": full_key},
                ).scalar_one_or_none()

    def add(self, key: str, value: str) -> bool:
        full_key = namespaced(self.namespace, key)
        with _translate_errors("add", key):
            try:
                with self.engine.begin() as conn:
                    conn.execute(
                        text(f"INSERT INTO {qident(self.table)} (lock_key, owner) VALUES (:k, :v)"),
                        {"k": full_key, "v": value},
                    )
            except exc.IntegrityError:
                # Primary key conflict: someone else holds the record
                return False
        return True

    def delete(self, key: str) -> None:
        full_key = namespaced(self.namespace, key)
        with _translate_errors("delete", key):
            with self.engine.begin() as conn:
                conn.execute(
                    text(f"DELETE FROM {qident(self.table)} WHERE lock_key = :k"),
                    {"k": full_key},
                )
