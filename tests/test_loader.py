"""
Unit tests for the image loading stage.
"""

import time

import pytest

from similarimage.errors import DecodeError, StoreError, StoreUnavailableError
from similarimage.models import ImageRecord, BadFileRecord
from similarimage.pipeline.counters import PipelineCounters
from similarimage.pipeline.loader import ImageLoader, decode_image


def collect(loader, timeout=10.0):
    """Drain a loader until its buffer closes, closing every image."""
    items = []
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not loader.wait_for_data(timeout=0.5):
            if not loader.running:
                break
            continue
        for path, image in loader.drain(50):
            items.append(path)
            image.close()
    return items


class TestDecodeImage:
    """Test decode_image()."""

    def test_decodes_png(self, make_image):
        with open(make_image("a.png", seed=1), 'rb') as f:
            image = decode_image(f.read())
        assert image.size == (128, 128)
        image.close()

    def test_garbage_raises_decode_error(self):
        with pytest.raises(DecodeError):
            decode_image(b"not an image")

    def test_truncated_file_raises_decode_error(self, make_image):
        with open(make_image("a.jpg", seed=1, fmt='JPEG'), 'rb') as f:
            data = f.read()
        with pytest.raises(DecodeError):
            decode_image(data[:len(data) // 2])


class TestImageLoader:
    """Test ImageLoader."""

    def test_loads_all_submitted_paths(self, store, image_files, recording_progress):
        paths = image_files(12)
        counters = PipelineCounters()
        loader = ImageLoader(store, capacity=4, threads=2, progress=recording_progress, counters=counters)

        loader.start()
        assert loader.submit(paths) == 12
        loader.finish()
        loaded = collect(loader)

        assert loader.join(5.0)
        assert sorted(loaded) == sorted(paths)
        assert counters.processed.value == 12
        assert counters.total.value == 12
        assert (12, 12) in recording_progress.totals

    def test_buffer_never_exceeds_capacity(self, store, image_files, recording_progress):
        paths = image_files(20)
        loader = ImageLoader(store, capacity=3, threads=3, progress=recording_progress)

        loader.start()
        loader.submit(paths)
        loader.finish()
        # Let the loaders fill the buffer before consuming anything
        time.sleep(0.3)
        assert loader.buffer_level <= 3
        collect(loader)
        loader.join(5.0)

        assert recording_progress.buffer_levels
        assert all(level <= capacity for level, capacity in recording_progress.buffer_levels)
        assert all(capacity == 3 for _, capacity in recording_progress.buffer_levels)

    def test_corrupt_file_is_quarantined(self, store, corrupt_file, image_files):
        valid = image_files(1)
        counters = PipelineCounters()
        loader = ImageLoader(store, capacity=4, threads=1, counters=counters)

        loader.start()
        loader.submit([corrupt_file] + valid)
        loader.finish()
        loaded = collect(loader)
        loader.join(5.0)

        assert loaded == valid
        assert store.is_bad_file(corrupt_file)
        assert counters.bad_files.value == 1
        assert counters.processed.value == 2

    def test_missing_file_is_not_quarantined(self, store, temp_dir):
        missing = str(temp_dir / "missing.png")
        counters = PipelineCounters()
        loader = ImageLoader(store, capacity=4, threads=1, counters=counters)

        loader.start()
        loader.submit([missing])
        loader.finish()
        assert collect(loader) == []
        loader.join(5.0)

        assert not store.is_bad_file(missing)
        assert counters.read_failures.value == 1
        assert counters.processed.value == 1

    def test_skips_recorded_and_quarantined_paths(self, store, image_files):
        recorded, quarantined, fresh = image_files(3)
        store.add_record(ImageRecord(recorded, 1))
        store.add_bad_file(BadFileRecord(quarantined))
        counters = PipelineCounters()
        loader = ImageLoader(store, capacity=4, threads=2, counters=counters)

        loader.start()
        loader.submit([recorded, quarantined, fresh])
        loader.finish()
        loaded = collect(loader)
        loader.join(5.0)

        assert loaded == [fresh]
        assert counters.skipped.value == 2
        assert counters.processed.value == 3

    def test_store_read_failure_treated_as_not_recorded(self, store, image_files, monkeypatch):
        paths = image_files(2)

        def failing_exists(path):
            raise StoreError("database is locked")

        monkeypatch.setattr(store, 'exists', failing_exists)
        loader = ImageLoader(store, capacity=4, threads=1)

        loader.start()
        loader.submit(paths)
        loader.finish()
        loaded = collect(loader)
        loader.join(5.0)

        assert sorted(loaded) == sorted(paths)

    def test_unexpected_error_skips_only_that_path(self, store, image_files):
        """A path that fails with a non-OSError does not end the loader thread."""
        good = image_files(4)
        counters = PipelineCounters()
        loader = ImageLoader(store, capacity=4, threads=1, counters=counters)

        loader.start()
        # read_bytes() raises ValueError for an embedded NUL
        loader.submit(["/tmp/bad\x00name.png"] + good)
        loader.finish()
        loaded = collect(loader)
        loader.join(5.0)

        assert sorted(loaded) == sorted(good)
        assert counters.read_failures.value == 1
        assert counters.processed.value == 5
        assert loader.failure() is None

    def test_failing_progress_sink_is_ignored(self, store, image_files):
        class BrokenProgress:
            def on_batch_processed(self, count):
                raise RuntimeError("display gone")

            def on_buffer_level_changed(self, current, capacity):
                raise RuntimeError("display gone")

            def on_total_progress(self, processed, total):
                raise RuntimeError("display gone")

        paths = image_files(6)
        counters = PipelineCounters()
        loader = ImageLoader(store, capacity=2, threads=2, progress=BrokenProgress(), counters=counters)

        loader.start()
        loader.submit(paths)
        loader.finish()
        loaded = collect(loader)
        loader.join(5.0)

        assert sorted(loaded) == sorted(paths)
        assert counters.processed.value == 6
        assert counters.read_failures.value == 0

    def test_store_outage_on_read_is_fatal(self, store, image_files, monkeypatch):
        def unavailable(path):
            raise StoreUnavailableError("disk gone")

        monkeypatch.setattr(store, 'exists', unavailable)
        fatal = []
        loader = ImageLoader(store, capacity=4, threads=1, on_fatal=fatal.append)

        loader.start()
        loader.submit(image_files(3))
        loader.finish()
        loaded = collect(loader)
        assert loader.join(5.0)

        assert loaded == []
        assert len(fatal) == 1
        assert isinstance(loader.failure(), StoreUnavailableError)
        with pytest.raises(StoreUnavailableError):
            loader.raise_for_failure()

    def test_store_outage_on_quarantine_is_fatal(self, store, corrupt_file, monkeypatch):
        def unavailable(record):
            raise StoreUnavailableError("disk gone")

        monkeypatch.setattr(store, 'add_bad_file', unavailable)
        fatal = []
        loader = ImageLoader(store, capacity=4, threads=1, on_fatal=fatal.append)

        loader.start()
        loader.submit([corrupt_file])
        loader.finish()
        collect(loader)
        assert loader.join(5.0)

        assert len(fatal) == 1
        assert store.count_bad_files() == 0
        with pytest.raises(StoreUnavailableError):
            loader.raise_for_failure()

    def test_submit_after_finish_raises(self, store, image_files):
        loader = ImageLoader(store, capacity=4, threads=1)
        loader.start()
        loader.finish()
        with pytest.raises(RuntimeError):
            loader.submit(image_files(1))
        loader.join(5.0)

    def test_submit_empty(self, store):
        loader = ImageLoader(store, capacity=4, threads=1)
        loader.start()
        assert loader.submit([]) == 0
        loader.stop()
        assert loader.join(5.0)

    def test_clear_drops_pending_and_resets_progress(self, store, image_files):
        counters = PipelineCounters()
        # Not started: submitted paths stay pending
        loader = ImageLoader(store, capacity=4, threads=1, counters=counters)
        loader.submit(image_files(5))
        assert loader.pending == 5
        assert counters.total.value == 5

        loader.clear()

        assert loader.pending == 0
        assert counters.total.value == 0
        assert counters.processed.value == 0

    def test_stop_unblocks_full_buffer(self, store, image_files):
        """Loaders blocked on a full buffer exit promptly after stop()."""
        loader = ImageLoader(store, capacity=1, threads=2)
        loader.start()
        loader.submit(image_files(10))
        time.sleep(0.3)
        assert loader.buffer_level == 1

        start = time.monotonic()
        loader.stop()
        assert loader.join(5.0)
        assert time.monotonic() - start < 5.0
        assert not loader.running
        assert loader.pending == 0

        for _, image in loader.drain(10):
            image.close()

    def test_last_loader_closes_buffer(self, store):
        loader = ImageLoader(store, capacity=4, threads=3)
        loader.start()
        loader.finish()
        assert loader.join(5.0)
        # Closed and empty: consumers are released immediately
        assert loader.wait_for_data(timeout=1.0) is False

    def test_invalid_thread_count(self, store):
        with pytest.raises(ValueError):
            ImageLoader(store, threads=0)
