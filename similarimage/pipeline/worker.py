"""
Hash worker pool for the pipeline package.

Workers drain decoded images from the loader in small batches, fingerprint
them and write the new records in one batched store call per batch.

The "already recorded" check and the write are not atomic: two workers can
race on the same new path and both hash it. The store rejects the second
insert, which is logged and otherwise ignored.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, Future, wait
from typing import Callable, Optional

from ..config import DEFAULT_WORKER_THREADS, DEFAULT_BATCH_SIZE
from ..database import RecordStore
from ..errors import StoreError, StoreUnavailableError, DuplicateRecordError
from ..models import ImageRecord
from .counters import PipelineCounters
from .hashing import PerceptualHasher
from .loader import ImageLoader
from .progress import ProgressSink, NullProgress


logger = logging.getLogger(__name__)


class HashWorkerPool:
    """
    Fixed-size pool of hash workers.

    Each worker is a long-running task on a ThreadPoolExecutor. A shared
    threading.Event acts as the cancellation token; it is checked before
    every batch and before every item.

    Usage:
        pool = HashWorkerPool(loader, store, workers=6)
        pool.start()
        ...
        pool.join()
        pool.raise_for_failure()
    """

    def __init__(
        self,
        source: ImageLoader,
        store: RecordStore,
        hasher: Optional[PerceptualHasher] = None,
        workers: int = DEFAULT_WORKER_THREADS,
        batch_size: int = DEFAULT_BATCH_SIZE,
        progress: Optional[ProgressSink] = None,
        counters: Optional[PipelineCounters] = None,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        """
        Initialize the pool.

        Args:
            source: Loader whose buffer the workers drain
            store: Record store for existence checks and batched writes
            hasher: Perceptual hash function (default PerceptualHasher())
            workers: Number of worker threads
            batch_size: Maximum items drained per wake-up
            progress: Optional progress sink
            counters: Shared run counters
            on_fatal: Called (from the failing worker thread) when a worker
                dies on an unrecoverable store error
        """
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.source = source
        self.store = store
        self.hasher = hasher or PerceptualHasher()
        self.workers = workers
        self.batch_size = batch_size
        self.progress = progress or NullProgress()
        self.counters = counters or PipelineCounters()
        self.on_fatal = on_fatal

        self._stop_event = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: list[Future] = []

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def running(self) -> bool:
        return any(not f.done() for f in self._futures)

    def start(self) -> None:
        """Start the worker tasks."""
        if self.running:
            raise RuntimeError("Worker pool is already running")
        self._stop_event.clear()
        self._executor = ThreadPoolExecutor(
            max_workers=self.workers,
            thread_name_prefix="phash-worker",
        )
        self._futures = [self._executor.submit(self._work) for _ in range(self.workers)]

    def request_stop(self) -> None:
        """Ask every worker to exit after its current item."""
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for every worker to exit.

        Returns:
            True if all workers have exited within timeout
        """
        if not self._futures:
            return True
        _, not_done = wait(self._futures, timeout=timeout)
        if not_done:
            logger.warning(f"{len(not_done)} hash workers still running after {timeout}s")
            return False
        if self._executor is not None:
            self._executor.shutdown(wait=False)
        return True

    def failure(self) -> Optional[BaseException]:
        """Return the first fatal worker exception, if any."""
        for future in self._futures:
            if future.done() and not future.cancelled() and future.exception() is not None:
                return future.exception()
        return None

    def raise_for_failure(self) -> None:
        """Re-raise the first fatal worker exception, if any."""
        error = self.failure()
        if error is not None:
            raise error

    def _work(self) -> None:
        name = threading.current_thread().name
        logger.info(f"{name} started")
        try:
            while not self._stop_event.is_set():
                if not self.source.wait_for_data():
                    break
                if self._stop_event.is_set():
                    break
                batch = self.source.drain(self.batch_size)
                if not batch:
                    continue
                try:
                    self._process_batch(batch)
                except StoreUnavailableError:
                    raise
                except Exception:
                    logger.exception(f"{name} failed processing a batch of {len(batch)}")
        except StoreUnavailableError as e:
            logger.error(f"{name} stopping, record store unavailable - {e}")
            if self.on_fatal is not None:
                self.on_fatal(e)
            raise
        logger.info(f"{name} terminated")

    def _process_batch(self, batch: list) -> None:
        new_records: list[ImageRecord] = []
        processed = 0

        try:
            for path, image in batch:
                if self._stop_event.is_set():
                    image.close()
                    continue
                processed += 1
                try:
                    record = self._hash_item(path, image)
                finally:
                    image.close()
                if record is not None:
                    new_records.append(record)
        except StoreUnavailableError:
            for _, image in batch:
                image.close()
            raise

        # Records hashed before a stop request are still written
        self._write(new_records)

        self.progress.on_batch_processed(processed)
        batch.clear()

    def _already_recorded(self, path: str) -> bool:
        try:
            return self.store.exists(path)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            logger.warning(f"Failed to query record store for {path} - {e}")
            return False

    def _hash_item(self, path: str, image) -> Optional[ImageRecord]:
        if self._already_recorded(path):
            self.counters.skipped.increment()
            return None

        try:
            fingerprint = self.hasher(image)
        except Exception as e:
            logger.warning(f"Failed to hash image {path} - {e}")
            self.counters.hash_failures.increment()
            return None

        self.counters.hashed.increment()
        return ImageRecord(path=path, fingerprint=fingerprint)

    def _write(self, records: list[ImageRecord]) -> None:
        if not records:
            return
        try:
            result = self.store.batch_add_records(records)
        except StoreUnavailableError:
            self.counters.write_failures.increment(len(records))
            raise
        except StoreError as e:
            logger.warning(f"Batch add of {len(records)} records failed - {e}")
            self.counters.write_failures.increment(len(records))
            return

        self.counters.records_added.increment(result.added)
        for path, error in result.failures:
            if isinstance(error, DuplicateRecordError):
                logger.info(f"Record for {path} was written by another worker")
            else:
                logger.warning(f"Failed to add record for {path} - {error}")
        if result.failures:
            self.counters.write_failures.increment(len(result.failures))


__all__ = ['HashWorkerPool']
