"""
Unit tests for the record store.
"""

import os
import sqlite3
import threading

import pytest

from similarimage.database import SQLiteRecordStore, open_store
from similarimage.errors import DuplicateRecordError, StoreError, StoreUnavailableError
from similarimage.models import ImageRecord, BadFileRecord


class TestSQLiteRecordStore:
    """Test SQLiteRecordStore reads and writes."""

    def test_initialization(self, temp_db):
        """Test store initialization creates database."""
        SQLiteRecordStore(temp_db)
        assert os.path.exists(temp_db)

    def test_creates_parent_directory(self, temp_dir):
        db_path = temp_dir / "nested" / "dir" / "records.db"
        SQLiteRecordStore(str(db_path))
        assert db_path.exists()

    def test_unusable_location_raises_unavailable(self, temp_dir):
        """A database path that is a directory cannot be opened."""
        with pytest.raises(StoreUnavailableError):
            SQLiteRecordStore(str(temp_dir))

    def test_exists(self, store):
        assert store.exists("/photos/a.jpg") is False
        store.add_record(ImageRecord("/photos/a.jpg", 42))
        assert store.exists("/photos/a.jpg") is True

    def test_get_record(self, store):
        store.add_record(ImageRecord("/photos/a.jpg", 0xDEADBEEF))
        record = store.get_record("/photos/a.jpg")
        assert record == ImageRecord("/photos/a.jpg", 0xDEADBEEF)
        assert store.get_record("/photos/missing.jpg") is None

    def test_full_width_fingerprint(self, store):
        """Fingerprints with the top bit set survive storage unchanged."""
        fingerprint = 2 ** 64 - 1
        store.add_record(ImageRecord("/photos/max.jpg", fingerprint))
        assert store.get_record("/photos/max.jpg").fingerprint == fingerprint

    def test_fingerprint_stored_as_hex(self, store, temp_db):
        store.add_record(ImageRecord("/photos/a.jpg", 255))
        with sqlite3.connect(temp_db) as conn:
            value = conn.execute("SELECT fingerprint FROM image_records").fetchone()[0]
        assert value == "00000000000000ff"

    def test_add_record_duplicate_raises(self, store):
        store.add_record(ImageRecord("/photos/a.jpg", 1))
        with pytest.raises(DuplicateRecordError):
            store.add_record(ImageRecord("/photos/a.jpg", 2))
        # First write wins
        assert store.get_record("/photos/a.jpg").fingerprint == 1

    def test_batch_add_records(self, store):
        records = [ImageRecord(f"/photos/{i}.jpg", i) for i in range(25)]
        result = store.batch_add_records(records)
        assert result.added == 25
        assert result.failures == []
        assert store.count_records() == 25

    def test_batch_add_empty(self, store):
        result = store.batch_add_records([])
        assert result.added == 0
        assert result.failed == 0

    def test_batch_duplicates_do_not_abort_batch(self, store):
        """A duplicate is reported per record while the rest are written."""
        store.add_record(ImageRecord("/photos/1.jpg", 1))
        records = [ImageRecord(f"/photos/{i}.jpg", i) for i in range(3)]

        result = store.batch_add_records(records)

        assert result.added == 2
        assert result.failed == 1
        path, error = result.failures[0]
        assert path == "/photos/1.jpg"
        assert isinstance(error, DuplicateRecordError)
        assert isinstance(error, StoreError)
        assert store.count_records() == 3

    def test_duplicate_within_one_batch(self, store):
        records = [ImageRecord("/photos/a.jpg", 1), ImageRecord("/photos/a.jpg", 2)]
        result = store.batch_add_records(records)
        assert result.added == 1
        assert result.failed == 1

    def test_iter_records(self, store):
        store.batch_add_records([ImageRecord(f"/photos/{i:02d}.jpg", i) for i in range(30)])
        records = list(store.iter_records())
        assert len(records) == 30
        assert [r.path for r in records] == sorted(r.path for r in records)
        assert store.all_records() == records

    def test_concurrent_batch_writes(self, store):
        """Many threads writing overlapping batches never create duplicates."""
        errors = []

        def write(offset):
            try:
                store.batch_add_records(
                    [ImageRecord(f"/photos/{i}.jpg", i) for i in range(offset, offset + 20)]
                )
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=write, args=(n * 10,)) for n in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert store.count_records() == 70


class TestBadFiles:
    """Test quarantine records."""

    def test_add_bad_file(self, store):
        assert store.is_bad_file("/photos/broken.jpg") is False
        assert store.add_bad_file(BadFileRecord("/photos/broken.jpg", "truncated")) is True
        assert store.is_bad_file("/photos/broken.jpg") is True
        assert store.count_bad_files() == 1

    def test_add_bad_file_twice(self, store):
        """A second quarantine of the same path is a no-op."""
        store.add_bad_file(BadFileRecord("/photos/broken.jpg", "first"))
        assert store.add_bad_file(BadFileRecord("/photos/broken.jpg", "second")) is False
        assert store.get_bad_files() == [BadFileRecord("/photos/broken.jpg", "first")]

    def test_bad_file_is_not_a_record(self, store):
        store.add_bad_file(BadFileRecord("/photos/broken.jpg"))
        assert store.exists("/photos/broken.jpg") is False


class TestMaintenance:
    """Test store statistics and cleanup."""

    def test_get_stats(self, store, temp_db):
        store.add_record(ImageRecord("/photos/a.jpg", 1))
        store.add_bad_file(BadFileRecord("/photos/b.jpg"))

        stats = store.get_stats()

        assert stats['total_records'] == 1
        assert stats['bad_files'] == 1
        assert stats['db_path'] == temp_db
        assert stats['db_size_bytes'] > 0

    def test_cleanup_missing(self, store, image_files):
        existing = image_files(2)
        store.batch_add_records([ImageRecord(p, 1) for p in existing])
        store.add_record(ImageRecord("/nonexistent/gone.jpg", 2))
        store.add_bad_file(BadFileRecord("/nonexistent/broken.jpg"))

        removed = store.cleanup_missing()

        assert removed == 2
        assert store.count_records() == 2
        assert store.count_bad_files() == 0

    def test_clear(self, store):
        store.add_record(ImageRecord("/photos/a.jpg", 1))
        store.add_bad_file(BadFileRecord("/photos/b.jpg"))
        store.clear()
        assert store.count_records() == 0
        assert store.count_bad_files() == 0

    def test_persists_across_instances(self, temp_db):
        SQLiteRecordStore(temp_db).add_record(ImageRecord("/photos/a.jpg", 9))
        assert SQLiteRecordStore(temp_db).get_record("/photos/a.jpg").fingerprint == 9


class TestOpenStore:
    """Test open_store()."""

    def test_explicit_path(self, temp_db):
        store = open_store(temp_db)
        assert store.db_path == temp_db

    def test_configured_path(self, user_config, temp_dir, monkeypatch):
        db_path = str(temp_dir / "configured.db")
        monkeypatch.setenv('SIMILARIMAGE_DB', db_path)
        store = open_store()
        assert store.db_path == db_path
        assert os.path.exists(db_path)
