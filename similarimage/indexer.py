"""
Indexing run orchestration for SimilarImage.

Provides the ImageIndexer class that wires the record store, the loader
stage and the hash worker pool together and drives one run at a time.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, Optional

from .database import RecordStore
from .errors import StoreUnavailableError
from .models import IndexerSettings, RunStats
from .pipeline import (
    ImageLoader,
    HashWorkerPool,
    PerceptualHasher,
    PipelineCounters,
    ProgressSink,
    NullProgress,
)


_logger = logging.getLogger(__name__)


class ImageIndexer:
    """
    Runs the load -> hash -> persist pipeline over a set of paths.

    The store is injected and shared by every loader and worker thread.

    Usage:
        store = SQLiteRecordStore("records.db")
        indexer = ImageIndexer(store, IndexerSettings(worker_threads=4))
        stats = indexer.index(find_image_files("/photos"))

    Or step by step:
        indexer.start()
        indexer.submit(paths)
        stats = indexer.join()

    request_stop() may be called from any thread (e.g. a signal handler or
    UI callback) to end the run early.
    """

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[IndexerSettings] = None,
        progress: Optional[ProgressSink] = None,
        hasher: Optional[PerceptualHasher] = None,
    ):
        """
        Initialize the indexer.

        Args:
            store: Record store shared by all pipeline threads
            settings: Pipeline sizing (defaults if None)
            progress: Optional progress sink
            hasher: Perceptual hash function (built from settings if None)
        """
        self.store = store
        self.settings = settings or IndexerSettings()
        self.progress = progress or NullProgress()
        self.hasher = hasher or PerceptualHasher(
            hash_size=self.settings.hash_size,
            highfreq_factor=self.settings.highfreq_factor,
        )
        self.counters = PipelineCounters()

        self.loader = ImageLoader(
            store,
            capacity=self.settings.queue_capacity,
            threads=self.settings.loader_threads,
            progress=self.progress,
            counters=self.counters,
            on_fatal=self._on_fatal,
        )
        self.pool = HashWorkerPool(
            self.loader,
            store,
            hasher=self.hasher,
            workers=self.settings.worker_threads,
            batch_size=self.settings.batch_size,
            progress=self.progress,
            counters=self.counters,
            on_fatal=self._on_fatal,
        )

        self._lock = threading.Lock()
        self._running = False
        self._stop_requested = False

    def __enter__(self) -> 'ImageIndexer':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._running:
            self._abort()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    @property
    def stats(self) -> RunStats:
        """Live counter snapshot for the current (or last) run."""
        return self.counters.snapshot()

    def start(self) -> None:
        """Start a new run: reset counters and start loader and worker threads."""
        with self._lock:
            if self._running:
                raise RuntimeError("An indexing run is already in progress")
            self._running = True
            self._stop_requested = False
            # A concurrent request_stop() waits until both stages are up
            self.counters.reset()
            self.loader.start()
            self.pool.start()
        _logger.info(
            f"Indexing started: {self.settings.loader_threads} loaders, "
            f"{self.settings.worker_threads} workers, buffer {self.settings.queue_capacity}, "
            f"batch {self.settings.batch_size}"
        )

    def submit(self, paths: Iterable[str | Path]) -> int:
        """Queue paths for the current run."""
        if not self._running:
            raise RuntimeError("Call start() before submitting paths")
        return self.loader.submit(paths)

    def clear(self) -> None:
        """Drop pending paths and reset progress counters."""
        self.loader.clear()

    def request_stop(self) -> None:
        """
        Stop the run as soon as possible.

        Safe to call from any thread and more than once. Threads in the
        middle of decoding or hashing a single file finish it first.
        """
        with self._lock:
            if self._stop_requested:
                return
            self._stop_requested = True
        _logger.info("Stopping all workers...")
        self.pool.request_stop()
        self.loader.stop()

    def join(self, timeout: Optional[float] = None) -> RunStats:
        """
        Finish the run: seal the input, then wait for loaders and workers.

        Args:
            timeout: Maximum seconds to wait per stage (None waits until the
                submitted work is done)

        Returns:
            Counter snapshot for the run

        Raises:
            StoreUnavailableError: If a loader or worker died on a store outage
        """
        if not self._running:
            return self.stats

        self.loader.finish()
        try:
            finished = self._join_threads(timeout)
        except KeyboardInterrupt:
            _logger.info("Interrupted while waiting for workers")
            self.request_stop()
            finished = self._join_threads(self.settings.stop_timeout)

        if not finished:
            _logger.warning("Indexing threads did not exit in time; run left running")
            return self.stats

        self.counters.mark_finished()
        with self._lock:
            self._running = False

        stats = self.stats
        _logger.info(
            f"Took {stats.elapsed_seconds:.1f}s to process {stats.processed:,}/{stats.total:,} images "
            f"({stats.records_added:,} new records, {stats.skipped:,} skipped, "
            f"{stats.bad_files:,} bad files)"
        )
        self.loader.raise_for_failure()
        self.pool.raise_for_failure()
        return stats

    def index(self, paths: Iterable[str | Path]) -> RunStats:
        """Run start(), submit(paths) and join() as one call."""
        self.start()
        try:
            self.submit(paths)
        except BaseException:
            self._abort()
            raise
        return self.join()

    def _abort(self) -> None:
        """Stop the run and wait (bounded) for its threads."""
        self.request_stop()
        if self._join_threads(self.settings.stop_timeout):
            self.counters.mark_finished()
            with self._lock:
                self._running = False
        else:
            _logger.warning("Indexing threads did not exit in time after stop")

    def _join_threads(self, timeout: Optional[float]) -> bool:
        loaders_done = self.loader.join(timeout)
        workers_done = self.pool.join(timeout)
        return loaders_done and workers_done

    def _on_fatal(self, error: BaseException) -> None:
        if isinstance(error, StoreUnavailableError):
            _logger.error(f"Record store unavailable, aborting run - {error}")
        else:
            _logger.error(f"Pipeline thread failed, aborting run - {error}")
        self.request_stop()


__all__ = ['ImageIndexer']
