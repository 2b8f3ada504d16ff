from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

import mysql.connector

from ..common.logging import get_logger
from ..core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import ConflictError

logger = get_logger(__name__)


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str


class DatabaseConnection:
    """Singleton-like DB connection factory.

    Outside ``atomic()`` every repository call runs on a short-lived connection.
    Inside ``atomic()`` the calling thread shares one connection and one
    transaction, and holds MySQL named locks (``GET_LOCK``) for the given keys.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig, *, lock_timeout: int = DEFAULT_LOCK_TIMEOUT_SECONDS):
        self._config = config
        self._lock_timeout = int(lock_timeout)
        self._local = threading.local()

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def connect(self):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )

    def active_connection(self):
        """Connection of the enclosing ``atomic()`` block, if any."""
        return getattr(self._local, "conn", None)

    def _lock_name(self, key: str) -> str:
        # MySQL caps lock names at 64 characters.
        return f"{self._config.database}:{key}"[:64]

    def _acquire(self, cur, key: str) -> None:
        cur.execute("SELECT GET_LOCK(%s, %s)", (self._lock_name(key), self._lock_timeout))
        row = cur.fetchone()
        if not row or row[0] != 1:
            logger.warning("lock_timeout", key=key, timeout=self._lock_timeout)
            raise ConflictError(f"Resource {key} is busy, try again")

    def _release(self, cur, key: str) -> None:
        cur.execute("SELECT RELEASE_LOCK(%s)", (self._lock_name(key),))
        cur.fetchone()

    @contextmanager
    def atomic(self, *lock_keys: str) -> Iterator[None]:
        keys = sorted(set(lock_keys))
        outer = self.active_connection()
        conn = outer if outer is not None else self.connect()
        if outer is None:
            conn.start_transaction()
        cur = conn.cursor(buffered=True)
        held: list[str] = []
        try:
            for key in keys:
                self._acquire(cur, key)
                held.append(key)

            if outer is not None:
                # Nested block: the outermost atomic() owns commit/rollback.
                yield
                return

            self._local.conn = conn
            try:
                yield
                conn.commit()
            finally:
                self._local.conn = None
        except Exception:
            if outer is None:
                conn.rollback()
            raise
        finally:
            for key in reversed(held):
                self._release(cur, key)
            cur.close()
            if outer is None:
                conn.close()
