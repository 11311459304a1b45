"""
Shared utilities for database operations.
"""

from __future__ import annotations

import sqlite3

from ..models import ImageRecord, BadFileRecord, hex_to_fingerprint


# SQLite variable limit constant - used for batch operations
# SQLite has a limit of 999 variables, we use 500 for safety
CHUNK_SIZE = 500


def row_to_record(row: sqlite3.Row) -> ImageRecord:
    """Convert an image_records row to an ImageRecord."""
    return ImageRecord(
        path=row['path'],
        fingerprint=hex_to_fingerprint(row['fingerprint']),
    )


def row_to_bad_file(row: sqlite3.Row) -> BadFileRecord:
    """Convert a bad_files row to a BadFileRecord."""
    return BadFileRecord(path=row['path'], reason=row['reason'])


__all__ = [
    'CHUNK_SIZE',
    'row_to_record',
    'row_to_bad_file',
]
