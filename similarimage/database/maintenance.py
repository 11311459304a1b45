"""
Housekeeping for the record store: pruning stale paths, statistics and
compaction.

These run outside an indexing pass, so failures are logged and reported as
"nothing done" rather than raised.
"""

from __future__ import annotations

import logging
import os
import sqlite3

from ..errors import StoreError
from .connection import ConnectionManager
from .utils import CHUNK_SIZE


logger = logging.getLogger(__name__)

# Tables keyed by file path
_PATH_TABLES = ('image_records', 'bad_files')


def _delete_paths(conn: sqlite3.Connection, table: str, paths: list[str]) -> None:
    # Chunked to stay under SQLite's bound-parameter limit
    for start in range(0, len(paths), CHUNK_SIZE):
        chunk = paths[start:start + CHUNK_SIZE]
        conn.execute(
            f"DELETE FROM {table} WHERE path IN ({','.join('?' * len(chunk))})",
            chunk,
        )


class MaintenanceOperations:
    """Store-wide operations that are not part of the indexing pipeline."""

    def __init__(self, connection_manager: ConnectionManager):
        self.conn_mgr = connection_manager

    def cleanup_missing(self) -> int:
        """
        Forget paths that no longer exist on disk.

        Both fingerprint records and quarantine entries are pruned, so a file
        that reappears later is indexed again.

        Returns:
            Number of entries removed (0 on failure)
        """
        try:
            removed = 0
            with self.conn_mgr.connection(exclusive=True) as conn:
                for table in _PATH_TABLES:
                    stale = [
                        row['path'] for row in conn.execute(f"SELECT path FROM {table}")
                        if not os.path.exists(row['path'])
                    ]
                    _delete_paths(conn, table, stale)
                    removed += len(stale)
        except (StoreError, sqlite3.Error) as e:
            logger.warning(f"Failed to remove entries for missing files: {e}")
            return 0

        if removed:
            logger.info(f"Removed {removed:,} entries for files that no longer exist")
        return removed

    def get_stats(self) -> dict:
        """
        Summarize the store.

        Returns:
            Dictionary with total_records, bad_files, db_size_bytes,
            db_size_mb and db_path (zero counts if the store is unreadable)
        """
        db_path = self.conn_mgr.db_path
        stats = {
            'total_records': 0,
            'bad_files': 0,
            'db_size_bytes': 0,
            'db_size_mb': 0.0,
            'db_path': db_path,
        }
        try:
            with self.conn_mgr.connection(exclusive=False) as conn:
                row = conn.execute(
                    "SELECT (SELECT COUNT(*) FROM image_records) AS records, "
                    "(SELECT COUNT(*) FROM bad_files) AS bad"
                ).fetchone()
            size = os.path.getsize(db_path) if os.path.exists(db_path) else 0
        except (StoreError, sqlite3.Error, OSError) as e:
            logger.warning(f"Failed to read store statistics: {e}")
            return stats

        stats.update(
            total_records=row['records'],
            bad_files=row['bad'],
            db_size_bytes=size,
            db_size_mb=round(size / (1024 * 1024), 2),
        )
        return stats

    def clear(self) -> None:
        """Delete every record and quarantine entry, then compact the file."""
        try:
            with self.conn_mgr.connection(exclusive=True) as conn:
                for table in _PATH_TABLES:
                    conn.execute(f"DELETE FROM {table}")
        except (StoreError, sqlite3.Error) as e:
            logger.warning(f"Failed to clear record store: {e}")
            return
        self.vacuum()

    def vacuum(self) -> None:
        """Compact the database file."""
        # VACUUM cannot run inside the transaction connection() opens
        try:
            conn = sqlite3.connect(self.conn_mgr.db_path, timeout=self.conn_mgr.timeout)
            try:
                conn.execute("VACUUM")
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.debug(f"Vacuum skipped: {e}")


__all__ = ['MaintenanceOperations']
