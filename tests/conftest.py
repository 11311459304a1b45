"""
Pytest configuration and shared fixtures for test suite.
"""

import pytest
import tempfile
import shutil
import threading
from pathlib import Path

import numpy as np
from PIL import Image


def make_pattern(seed: int, size=(128, 128)) -> Image.Image:
    """
    Build a smooth random pattern.

    A small random grid is upscaled so that each seed gives a visually
    distinct image whose fingerprint survives resizing and re-encoding.
    """
    rng = np.random.default_rng(seed)
    grid = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
    return Image.fromarray(grid, 'RGB').resize(size, Image.Resampling.BICUBIC)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def make_image(temp_dir):
    """
    Factory writing a patterned image to temp_dir.

    Usage:
        path = make_image("a.png", seed=1)
        path = make_image("sub/b.jpg", seed=1, size=(256, 256), fmt="JPEG")

    Returns:
        Absolute path of the written file as a string
    """
    def _make(name: str, seed: int = 0, size=(128, 128), fmt: str = 'PNG') -> str:
        path = temp_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        make_pattern(seed, size).save(path, fmt)
        return str(path.resolve())

    return _make


@pytest.fixture
def image_files(make_image):
    """Factory writing count distinct images and returning their paths."""
    def _make(count: int, prefix: str = 'img') -> list[str]:
        return [make_image(f"{prefix}_{i:03d}.png", seed=i) for i in range(count)]

    return _make


@pytest.fixture
def corrupt_file(temp_dir):
    """A file with an image extension that is not an image."""
    path = temp_dir / "corrupted.jpg"
    path.write_bytes(b"this is not an image")
    return str(path.resolve())


@pytest.fixture
def temp_db(temp_dir):
    """Path for a temporary record database."""
    return str(temp_dir / "records.db")


@pytest.fixture
def store(temp_db):
    """A fresh SQLiteRecordStore in temp_dir."""
    from similarimage.database import SQLiteRecordStore

    return SQLiteRecordStore(temp_db)


@pytest.fixture
def user_config(temp_dir, monkeypatch):
    """
    The global UserConfig pointed at an empty config directory.

    SIMILARIMAGE_* variables from the environment are removed so tests see
    defaults unless they set their own.
    """
    import os
    from similarimage.user_config import get_user_config

    for name in list(os.environ):
        if name.startswith('SIMILARIMAGE_'):
            monkeypatch.delenv(name)
    monkeypatch.setenv('SIMILARIMAGE_CONFIG_DIR', str(temp_dir / 'config'))

    config = get_user_config()
    config.reload()
    yield config
    config.reload()


class RecordingProgress:
    """ProgressSink that records every callback for later assertions."""

    def __init__(self):
        self.lock = threading.Lock()
        self.batches = []
        self.buffer_levels = []
        self.totals = []

    def on_batch_processed(self, count):
        with self.lock:
            self.batches.append(count)

    def on_buffer_level_changed(self, current, capacity):
        with self.lock:
            self.buffer_levels.append((current, capacity))

    def on_total_progress(self, processed, total):
        with self.lock:
            self.totals.append((processed, total))

    def close(self):
        pass


@pytest.fixture
def recording_progress():
    """A fresh RecordingProgress sink."""
    return RecordingProgress()
