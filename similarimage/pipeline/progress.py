"""
Progress reporting for the pipeline package.

Sinks receive coarse counters from loader and worker threads. They are
informational only: nothing in the pipeline reads them back.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional, Any, Protocol

from .dependencies import HAS_TQDM, _tqdm_class


class ProgressSink(Protocol):
    """Receiver for pipeline progress. Methods are called from many threads."""

    def on_batch_processed(self, count: int) -> None: ...

    def on_buffer_level_changed(self, current: int, capacity: int) -> None: ...

    def on_total_progress(self, processed: int, total: int) -> None: ...


class NullProgress:
    """Discards all progress."""

    def on_batch_processed(self, count: int) -> None:
        pass

    def on_buffer_level_changed(self, current: int, capacity: int) -> None:
        pass

    def on_total_progress(self, processed: int, total: int) -> None:
        pass

    def close(self) -> None:
        pass


class LoggingProgress:
    """
    Logs progress at INFO level.

    Updates are throttled to one line per interval (and always on the
    final item) to keep log volume low on large runs.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, interval: float = 5.0):
        self.logger = logger or logging.getLogger(__name__)
        self.interval = interval
        self._lock = threading.Lock()
        self._last_log = 0.0
        self._hashed = 0
        self._buffer_level = 0
        self._capacity = 0

    def on_batch_processed(self, count: int) -> None:
        with self._lock:
            self._hashed += count

    def on_buffer_level_changed(self, current: int, capacity: int) -> None:
        with self._lock:
            self._buffer_level = current
            self._capacity = capacity

    def on_total_progress(self, processed: int, total: int) -> None:
        now = time.monotonic()
        with self._lock:
            if processed < total and now - self._last_log < self.interval:
                return
            self._last_log = now
            hashed, level, capacity = self._hashed, self._buffer_level, self._capacity
        self.logger.info(
            f"Loaded {processed:,}/{total:,} | hashed {hashed:,} | buffer {level}/{capacity}"
        )

    def close(self) -> None:
        pass


class TqdmProgress:
    """
    Shows a tqdm progress bar for the loader stage with the buffer level as
    a postfix. Falls back to doing nothing if tqdm is not installed.
    """

    def __init__(self, desc: str = "Indexing images"):
        self._lock = threading.Lock()
        self._bar: Optional[Any] = None
        if HAS_TQDM and _tqdm_class is not None:
            self._bar = _tqdm_class(total=0, desc=desc, unit="img", ncols=80)

    @property
    def enabled(self) -> bool:
        return self._bar is not None

    def on_batch_processed(self, count: int) -> None:
        pass

    def on_buffer_level_changed(self, current: int, capacity: int) -> None:
        if self._bar is None:
            return
        with self._lock:
            self._bar.set_postfix_str(f"buffer {current}/{capacity}", refresh=False)

    def on_total_progress(self, processed: int, total: int) -> None:
        if self._bar is None:
            return
        with self._lock:
            self._bar.total = total
            self._bar.n = processed
            self._bar.refresh()

    def close(self) -> None:
        if self._bar is not None:
            with self._lock:
                self._bar.close()


__all__ = ['ProgressSink', 'NullProgress', 'LoggingProgress', 'TqdmProgress']
