"""SQLite connection + schema initialisation."""
from __future__ import annotations
import logging
import os
import sqlite3
import threading
import time
from contextlib import contextmanager
from typing import Iterator, Optional

logger = logging.getLogger(__name__)

_MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "..", "..", "migrations")


class DatabaseUnavailable(RuntimeError):
    pass


class Database:
    """
    Owns one SQLite connection for the process, serialised behind a lock.
    Lifecycle is explicit: connect() → init_schema() → ... → close().
    """

    def __init__(self, path: str, max_attempts: int = 3, retry_delay: float = 1.0):
        self.path = path
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    def _open(self) -> sqlite3.Connection:
        if self.path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        conn = sqlite3.connect(self.path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if self.path != ":memory:":
            conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def connect(self) -> None:
        """Open the connection, retrying a fixed number of times before giving up."""
        with self._lock:
            if self._conn is not None:
                return
            last_error: Optional[Exception] = None
            for attempt in range(1, self.max_attempts + 1):
                try:
                    self._conn = self._open()
                    logger.info("Database connected at %s (attempt %d)", self.path, attempt)
                    return
                except (sqlite3.Error, OSError) as e:
                    last_error = e
                    logger.warning("Database connection attempt %d/%d failed: %s", attempt, self.max_attempts, e)
                    if attempt < self.max_attempts:
                        time.sleep(self.retry_delay)
            raise DatabaseUnavailable(f"Could not connect to {self.path}: {last_error}")

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info("Database connection closed")

    def init_schema(self) -> None:
        """Run all migration SQL files against the database."""
        self.connect()
        for name in sorted(os.listdir(_MIGRATIONS_DIR)):
            if not name.endswith(".sql"):
                continue
            with open(os.path.join(_MIGRATIONS_DIR, name), "r", encoding="utf-8") as f:
                sql = f.read()
            with self._lock:
                self._conn.executescript(sql)
                self._conn.commit()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield the connection inside one transaction; commit on success, roll back on error."""
        self.connect()
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise
