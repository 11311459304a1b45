"""
SQLite connection handling for the record store.

Every store call opens a short-lived connection, so loader and worker
threads never share a sqlite3.Connection. Writers are serialized by an
in-process lock; readers run concurrently thanks to WAL journaling.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from ..errors import StoreUnavailableError


class ConnectionManager:
    """
    Opens per-call SQLite connections inside an explicit transaction.

    Usage:
        manager = ConnectionManager("records.db")
        with manager.connection(exclusive=True) as conn:
            conn.execute("INSERT INTO image_records ...")

    The transaction commits when the block exits normally and rolls back
    when it raises.
    """

    def __init__(self, db_path: str, timeout: float = 30.0):
        """
        Args:
            db_path: SQLite database file (created on first use)
            timeout: Seconds SQLite waits on a locked database

        Raises:
            StoreUnavailableError: If the parent directory cannot be created
        """
        self.db_path = db_path
        self.timeout = timeout
        self._writer = threading.Lock()
        self._prepare_parent()

    def _prepare_parent(self) -> None:
        parent = Path(self.db_path).resolve().parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreUnavailableError(f"Cannot create database directory {parent}: {e}") from e

    def _open(self) -> sqlite3.Connection:
        try:
            # isolation_level=None: BEGIN/COMMIT are issued by connection()
            conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot open record store {self.db_path}: {e}") from e

        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("BEGIN")
        except sqlite3.Error as e:
            conn.close()
            raise StoreUnavailableError(f"Cannot use record store {self.db_path}: {e}") from e
        return conn

    @contextmanager
    def connection(self, exclusive: bool = False) -> Generator[sqlite3.Connection, None, None]:
        """
        Yield a connection with an open transaction.

        Args:
            exclusive: Hold the writer lock for the whole transaction

        Raises:
            StoreUnavailableError: If the database cannot be opened
        """
        lock = self._writer if exclusive else None
        if lock is not None:
            lock.acquire()
        try:
            conn = self._open()
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                conn.close()
        finally:
            if lock is not None:
                lock.release()


__all__ = ['ConnectionManager']
