"""
Record store for SimilarImage.

Persists one fingerprint record per image path and a quarantine list of
files that failed to decode. Both are used to skip work on re-runs.

Public API:
- RecordStore: Protocol the pipeline depends on
- SQLiteRecordStore: SQLite implementation
- open_store(): Open the store at a path (or the configured default)
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from ..models import ImageRecord, BadFileRecord, BatchWriteResult
from .core import SQLiteRecordStore


class RecordStore(Protocol):
    """
    Storage used by the indexing pipeline.

    Implementations must be safe to call from many threads and must reject
    (not overwrite) a second record for an already recorded path.
    """

    def exists(self, path: str) -> bool: ...

    def is_bad_file(self, path: str) -> bool: ...

    def add_bad_file(self, record: BadFileRecord) -> bool: ...

    def batch_add_records(self, records: Iterable[ImageRecord]) -> BatchWriteResult: ...


def open_store(db_path: Optional[str] = None) -> SQLiteRecordStore:
    """
    Open a record store.

    Args:
        db_path: Database file. Defaults to the user-configured location.

    Example:
        store = open_store()
        indexer = ImageIndexer(store)
    """
    if db_path is None:
        from ..user_config import get_user_config
        db_path = get_user_config().record_db_file
    return SQLiteRecordStore(db_path)


__all__ = [
    'RecordStore',
    'SQLiteRecordStore',
    'open_store',
]
