"""
SQLiteRecordStore facade class for coordinating database operations.

Provides a unified interface to all record operations using the facade pattern.
"""

from __future__ import annotations

import sqlite3
from typing import Iterable, Iterator, Optional

from ..config import RECORD_DB_FILE
from ..errors import StoreUnavailableError
from ..models import ImageRecord, BadFileRecord, BatchWriteResult
from .connection import ConnectionManager
from .schema import initialize_schema, SCHEMA_VERSION
from .operations import RecordOperations
from .maintenance import MaintenanceOperations


class SQLiteRecordStore:
    """
    SQLite-backed store for fingerprint and bad-file records.

    Thread-safe for concurrent read/write operations: writers are serialised
    by a lock and a PRIMARY KEY on path rejects a second record for the
    same file.

    Usage:
        store = SQLiteRecordStore("/tmp/records.db")

        if not store.exists(path):
            store.batch_add_records([ImageRecord(path, fingerprint)])
    """

    SCHEMA_VERSION = SCHEMA_VERSION

    def __init__(self, db_path: Optional[str] = None, timeout: float = 30.0):
        """
        Initialize the record store.

        Args:
            db_path: Path to SQLite database file. Uses default if None.
            timeout: Seconds SQLite waits on a locked database

        Raises:
            StoreUnavailableError: If the database cannot be created or opened
        """
        self.db_path = db_path or RECORD_DB_FILE

        self._conn_mgr = ConnectionManager(self.db_path, timeout=timeout)
        self._operations = RecordOperations(self._conn_mgr)
        self._maintenance = MaintenanceOperations(self._conn_mgr)

        try:
            with self._conn_mgr.connection(exclusive=True) as conn:
                initialize_schema(conn)
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"Cannot initialize record store {self.db_path}: {e}") from e

    def __repr__(self) -> str:
        return f"SQLiteRecordStore({self.db_path!r})"

    # Delegate to RecordOperations
    def exists(self, path: str) -> bool:
        """Check whether a fingerprint record exists for path."""
        return self._operations.exists(path)

    def is_bad_file(self, path: str) -> bool:
        """Check whether path has been quarantined."""
        return self._operations.is_bad_file(path)

    def add_bad_file(self, record: BadFileRecord) -> bool:
        """Quarantine a path. Returns False if it already was."""
        return self._operations.add_bad_file(record)

    def add_record(self, record: ImageRecord) -> None:
        """Insert one record, raising DuplicateRecordError on conflict."""
        self._operations.add_record(record)

    def batch_add_records(self, records: Iterable[ImageRecord]) -> BatchWriteResult:
        """Insert many records; per-record failures are returned, not raised."""
        return self._operations.batch_add_records(records)

    def get_record(self, path: str) -> Optional[ImageRecord]:
        return self._operations.get_record(path)

    def iter_records(self) -> Iterator[ImageRecord]:
        return self._operations.iter_records()

    def all_records(self) -> list[ImageRecord]:
        return list(self._operations.iter_records())

    def get_bad_files(self) -> list[BadFileRecord]:
        return self._operations.get_bad_files()

    def count_records(self) -> int:
        return self._operations.count_records()

    def count_bad_files(self) -> int:
        return self._operations.count_bad_files()

    # Delegate to MaintenanceOperations
    def cleanup_missing(self) -> int:
        """Remove entries for files that no longer exist."""
        return self._maintenance.cleanup_missing()

    def get_stats(self) -> dict:
        """Get store statistics."""
        return self._maintenance.get_stats()

    def clear(self):
        """Delete all records."""
        self._maintenance.clear()

    def vacuum(self):
        """Compact the database file."""
        self._maintenance.vacuum()


__all__ = ['SQLiteRecordStore']
