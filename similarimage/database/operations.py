"""
Core record operations for the record store.

Provides RecordOperations for existence checks, quarantine records and
batched fingerprint writes.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Iterator, Optional

from ..errors import StoreError, StoreUnavailableError, DuplicateRecordError
from ..models import ImageRecord, BadFileRecord, BatchWriteResult
from .connection import ConnectionManager
from .utils import row_to_record, row_to_bad_file


logger = logging.getLogger(__name__)


class RecordOperations:
    """
    Handles reads and writes of image and bad-file records.

    Read failures raise StoreError so callers can decide how to degrade;
    the pipeline treats an unanswered existence check as "not recorded".
    """

    def __init__(self, connection_manager: ConnectionManager):
        """
        Initialize record operations.

        Args:
            connection_manager: ConnectionManager instance for database access
        """
        self.conn_mgr = connection_manager

    def _query_one(self, sql: str, params: tuple) -> Optional[sqlite3.Row]:
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                return conn.execute(sql, params).fetchone()
        except StoreError:
            raise
        except sqlite3.Error as e:
            raise StoreError(f"Query failed: {e}") from e

    def exists(self, path: str) -> bool:
        """Check whether a fingerprint record exists for path."""
        row = self._query_one("SELECT 1 FROM image_records WHERE path = ?", (path,))
        return row is not None

    def is_bad_file(self, path: str) -> bool:
        """Check whether path has been quarantined."""
        row = self._query_one("SELECT 1 FROM bad_files WHERE path = ?", (path,))
        return row is not None

    def get_record(self, path: str) -> Optional[ImageRecord]:
        """Get the record for path, or None."""
        row = self._query_one(
            "SELECT path, fingerprint FROM image_records WHERE path = ?", (path,)
        )
        return row_to_record(row) if row else None

    def add_bad_file(self, record: BadFileRecord) -> bool:
        """
        Quarantine a path.

        Returns:
            True if a new bad-file record was created, False if the path
            was already quarantined
        """
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO bad_files (path, reason) VALUES (?, ?)",
                    (record.path, record.reason),
                )
                return cursor.rowcount == 1
        except StoreError:
            raise
        except sqlite3.Error as e:
            raise StoreError(f"Failed to add bad file {record.path}: {e}") from e

    def add_record(self, record: ImageRecord) -> None:
        """
        Insert a single record.

        Raises:
            DuplicateRecordError: If a record for the path already exists
        """
        result = self.batch_add_records([record])
        if result.failures:
            raise result.failures[0][1]

    def batch_add_records(self, records: Iterable[ImageRecord]) -> BatchWriteResult:
        """
        Insert many records in one transaction.

        A rejected record (duplicate path or any other statement error) is
        reported in the result and does not affect the others.

        Args:
            records: Records to insert

        Returns:
            BatchWriteResult with the number added and per-record failures

        Raises:
            StoreUnavailableError: If the database cannot be opened
            StoreError: If the transaction as a whole fails to commit
        """
        result = BatchWriteResult()
        records = list(records)
        if not records:
            return result

        try:
            # Single exclusive lock for entire batch operation
            with self.conn_mgr.connection(exclusive=True) as conn:
                for record in records:
                    try:
                        conn.execute(
                            "INSERT INTO image_records (path, fingerprint) VALUES (?, ?)",
                            (record.path, record.fingerprint_hex),
                        )
                        result.added += 1
                    except sqlite3.IntegrityError:
                        result.failures.append(
                            (record.path, DuplicateRecordError(f"Record already exists for {record.path}"))
                        )
                    except sqlite3.Error as e:
                        result.failures.append(
                            (record.path, StoreError(f"Failed to insert {record.path}: {e}"))
                        )
        except StoreUnavailableError:
            raise
        except sqlite3.Error as e:
            raise StoreError(f"Batch write of {len(records)} records failed: {e}") from e

        return result

    def iter_records(self, chunk_size: int = 1000) -> Iterator[ImageRecord]:
        """
        Iterate over every stored record.

        Records are read in chunks inside a single read transaction.
        """
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                cursor = conn.execute("SELECT path, fingerprint FROM image_records ORDER BY path")
                while True:
                    rows = cursor.fetchmany(chunk_size)
                    if not rows:
                        break
                    for row in rows:
                        yield row_to_record(row)
        except StoreError:
            raise
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read records: {e}") from e

    def get_bad_files(self) -> list[BadFileRecord]:
        """Get every quarantined path."""
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                rows = conn.execute("SELECT path, reason FROM bad_files ORDER BY path").fetchall()
                return [row_to_bad_file(row) for row in rows]
        except StoreError:
            raise
        except sqlite3.Error as e:
            raise StoreError(f"Failed to read bad files: {e}") from e

    def count_records(self) -> int:
        row = self._query_one("SELECT COUNT(*) AS cnt FROM image_records", ())
        return row['cnt']

    def count_bad_files(self) -> int:
        row = self._query_one("SELECT COUNT(*) AS cnt FROM bad_files", ())
        return row['cnt']


__all__ = ['RecordOperations']
