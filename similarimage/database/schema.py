"""
Table definitions for the record store.

The schema is versioned through a one-row `meta` table. Records are a
derived index that can always be rebuilt by re-running the indexer, so a
version change simply drops and recreates the tables.
"""

from __future__ import annotations

import sqlite3


# Increment when a table definition below changes
SCHEMA_VERSION = 1

_TABLES = {
    # PRIMARY KEY(path): a second insert for a path fails instead of overwriting
    'image_records': """
        CREATE TABLE IF NOT EXISTS image_records (
            path TEXT PRIMARY KEY,
            fingerprint TEXT NOT NULL,
            created_at REAL DEFAULT (strftime('%s', 'now'))
        )
    """,
    'bad_files': """
        CREATE TABLE IF NOT EXISTS bad_files (
            path TEXT PRIMARY KEY,
            reason TEXT,
            created_at REAL DEFAULT (strftime('%s', 'now'))
        )
    """,
}

_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_image_records_fingerprint ON image_records(fingerprint)",
)


def _stored_version(conn: sqlite3.Connection) -> int:
    conn.execute("CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT)")
    row = conn.execute("SELECT value FROM meta WHERE key = 'schema_version'").fetchone()
    return int(row['value']) if row else 0


def initialize_schema(conn: sqlite3.Connection) -> None:
    """
    Create (or rebuild) the record tables.

    Args:
        conn: Connection inside an open write transaction
    """
    if _stored_version(conn) != SCHEMA_VERSION:
        for table in _TABLES:
            conn.execute(f"DROP TABLE IF EXISTS {table}")

    for ddl in _TABLES.values():
        conn.execute(ddl)
    for ddl in _INDEXES:
        conn.execute(ddl)

    conn.execute(
        "INSERT OR REPLACE INTO meta (key, value) VALUES ('schema_version', ?)",
        (str(SCHEMA_VERSION),),
    )


__all__ = ['SCHEMA_VERSION', 'initialize_schema']
