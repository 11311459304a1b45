"""
Tests for the command-line interface.
"""

import signal
import threading

import pytest

from similarimage.cli import main, parse_arguments
from similarimage.database import SQLiteRecordStore
from similarimage.errors import StoreUnavailableError
from similarimage.indexer import ImageIndexer


@pytest.fixture
def photo_dir(temp_dir, make_image):
    """A directory with two copies of one picture and one unrelated picture."""
    make_image("photos/original.png", seed=4)
    make_image("photos/nested/resized.png", seed=4, size=(300, 300))
    make_image("photos/other.png", seed=9)
    return temp_dir / "photos"


class TestArgumentParsing:
    """Test parse_arguments()."""

    def test_index_defaults(self):
        args = parse_arguments(['index', '/photos'])
        assert args.command == 'index'
        assert args.workers is None
        assert args.loaders is None
        assert args.no_recursive is False

    def test_index_options(self):
        args = parse_arguments([
            'index', '/photos', '--workers', '4', '--loaders', '1',
            '--queue-capacity', '50', '--batch-size', '10', '--no-progress', '-v',
        ])
        assert (args.workers, args.loaders, args.queue_capacity, args.batch_size) == (4, 1, 50, 10)
        assert args.no_progress and args.verbose

    def test_rejects_non_positive_counts(self):
        with pytest.raises(SystemExit):
            parse_arguments(['index', '/photos', '--workers', '0'])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_arguments([])

    def test_query_threshold(self):
        args = parse_arguments(['query', 'a.jpg', '-t', '5'])
        assert args.threshold == 5


class TestIndexCommand:
    """Test `similarimage index`."""

    def test_index_directory(self, user_config, photo_dir, temp_db, capsys):
        exit_code = main(['index', str(photo_dir), '--db', temp_db, '--no-progress'])

        assert exit_code == 0
        assert SQLiteRecordStore(temp_db).count_records() == 3
        assert "INDEXING SUMMARY" in capsys.readouterr().out

    def test_no_recursive(self, user_config, photo_dir, temp_db):
        main(['index', str(photo_dir), '--db', temp_db, '--no-progress', '--no-recursive'])
        assert SQLiteRecordStore(temp_db).count_records() == 2

    def test_reindex_adds_nothing(self, user_config, photo_dir, temp_db, capsys):
        main(['index', str(photo_dir), '--db', temp_db, '--no-progress'])
        capsys.readouterr()
        assert main(['index', str(photo_dir), '--db', temp_db, '--no-progress']) == 0
        out = capsys.readouterr().out
        assert "Already indexed: 3" in out
        assert "New records:     0" in out

    def test_missing_directory(self, user_config, temp_dir, temp_db):
        assert main(['index', str(temp_dir / "nope"), '--db', temp_db]) == 1

    def test_empty_directory(self, user_config, temp_dir, temp_db):
        (temp_dir / "empty").mkdir()
        assert main(['index', str(temp_dir / "empty"), '--db', temp_db, '--no-progress']) == 0

    def test_store_outage_exit_code(self, user_config, photo_dir, temp_db, monkeypatch):
        def unavailable(self, records):
            raise StoreUnavailableError("disk gone")

        monkeypatch.setattr(SQLiteRecordStore, 'batch_add_records', unavailable)
        assert main(['index', str(photo_dir), '--db', temp_db, '--no-progress']) == 1

    def test_unopenable_database(self, user_config, photo_dir, temp_dir):
        # A directory cannot be used as the database file
        assert main(['index', str(photo_dir), '--db', str(temp_dir), '--no-progress']) == 1

    def test_interrupt_while_indexer_lock_held(self, user_config, photo_dir, temp_db, monkeypatch):
        """The SIGINT handler hands request_stop() to another thread."""
        observed = []
        original_index = ImageIndexer.index

        def interrupted_index(indexer, paths):
            with indexer._lock:
                signal.getsignal(signal.SIGINT)(signal.SIGINT, None)
            for thread in threading.enumerate():
                if thread.name == "interrupt-stop":
                    thread.join(5.0)
            observed.append(indexer.stop_requested)
            return original_index(indexer, paths)

        monkeypatch.setattr(ImageIndexer, 'index', interrupted_index)

        assert main(['index', str(photo_dir), '--db', temp_db, '--no-progress']) == 0
        assert observed == [True]


class TestQueryCommand:
    """Test `similarimage query`."""

    def test_finds_resized_copy(self, user_config, photo_dir, temp_db, capsys):
        main(['index', str(photo_dir), '--db', temp_db, '--no-progress'])
        capsys.readouterr()

        exit_code = main(['query', str(photo_dir / "original.png"), '--db', temp_db])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "resized.png" in out
        assert "other.png" not in out

    def test_no_matches(self, user_config, photo_dir, temp_db, capsys):
        exit_code = main(['query', str(photo_dir / "other.png"), '--db', temp_db, '-t', '0'])
        assert exit_code == 0
        assert "No similar images found" in capsys.readouterr().out

    def test_missing_image(self, user_config, temp_dir, temp_db):
        assert main(['query', str(temp_dir / "missing.png"), '--db', temp_db]) == 1

    def test_corrupt_image(self, user_config, corrupt_file, temp_db):
        assert main(['query', corrupt_file, '--db', temp_db]) == 1

    def test_threshold_out_of_range(self, user_config, photo_dir, temp_db):
        assert main(['query', str(photo_dir / "other.png"), '--db', temp_db, '-t', '65']) == 1


class TestStatsAndConfigCommands:
    """Test `similarimage stats` and `similarimage config`."""

    def test_stats(self, user_config, photo_dir, temp_db, capsys):
        main(['index', str(photo_dir), '--db', temp_db, '--no-progress'])
        capsys.readouterr()

        assert main(['stats', '--db', temp_db]) == 0
        out = capsys.readouterr().out
        assert "Records:   3" in out
        assert temp_db in out

    def test_stats_cleanup(self, user_config, photo_dir, temp_db, capsys):
        main(['index', str(photo_dir), '--db', temp_db, '--no-progress'])
        (photo_dir / "other.png").unlink()
        capsys.readouterr()

        assert main(['stats', '--db', temp_db, '--cleanup']) == 0
        assert "Records:   2" in capsys.readouterr().out

    def test_config_show(self, user_config, capsys):
        assert main(['config']) == 0
        out = capsys.readouterr().out
        assert "Not found" in out
        assert "worker_threads: 6" in out

    def test_config_init(self, user_config, capsys):
        assert main(['config', '--init']) == 0
        assert user_config.config_file_path.exists()
