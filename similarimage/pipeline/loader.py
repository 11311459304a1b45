"""
Image loading stage for the pipeline package.

Loader threads take paths from an unbounded input queue, decode the files
with Pillow and publish (path, image) pairs into a bounded buffer. When the
buffer is full the loaders block, which caps the number of decoded images
held in memory no matter how slow the hash workers are.
"""

from __future__ import annotations

import io
import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..config import DEFAULT_LOADER_THREADS, DEFAULT_QUEUE_CAPACITY
from ..database import RecordStore
from ..errors import DecodeError, StoreError, StoreUnavailableError
from ..models import BadFileRecord
from .counters import PipelineCounters
from .dependencies import Image
from .progress import ProgressSink, NullProgress
from .queues import BlockingQueue, QueueClosed


logger = logging.getLogger(__name__)


def decode_image(data: bytes) -> Image.Image:
    """
    Decode raw file bytes into a fully loaded PIL image.

    Raises:
        DecodeError: If Pillow cannot identify or fully decode the data
    """
    try:
        img = Image.open(io.BytesIO(data))
        # Force the full decode so truncated files fail here, not in a worker
        img.load()
        return img
    except Exception as e:
        raise DecodeError(f"{type(e).__name__}: {e}") from e


class ImageLoader:
    """
    Producer side of the pipeline.

    Usage:
        loader = ImageLoader(store, capacity=400, threads=2)
        loader.start()
        loader.submit(paths)
        loader.finish()          # no more paths for this run
        ...                      # consumers call wait_for_data() / drain()
        loader.join()

    A run ends when finish() has been called and the input queue is empty,
    or when stop() is called. The last loader thread to exit closes the
    output buffer so consumers know no more data will arrive.
    """

    def __init__(
        self,
        store: RecordStore,
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        threads: int = DEFAULT_LOADER_THREADS,
        progress: Optional[ProgressSink] = None,
        counters: Optional[PipelineCounters] = None,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ):
        """
        Initialize the loader.

        Args:
            store: Record store used for skip checks and quarantine
            capacity: Maximum decoded images buffered for the workers
            threads: Number of loader threads
            progress: Optional progress sink
            counters: Shared run counters (a private set is created if None)
            on_fatal: Called (from the failing loader thread) when the record
                store becomes unavailable
        """
        if threads < 1:
            raise ValueError(f"threads must be at least 1, got {threads}")
        self.store = store
        self.threads = threads
        self.progress = progress or NullProgress()
        self.counters = counters or PipelineCounters()
        self._capacity = capacity
        self.on_fatal = on_fatal
        self._failure: Optional[StoreUnavailableError] = None

        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._threads: list[threading.Thread] = []
        self._active = 0
        self._input: BlockingQueue[str] = BlockingQueue()
        self._output: BlockingQueue[tuple[str, Image.Image]] = self._new_output()

    def _new_output(self) -> BlockingQueue:
        return BlockingQueue(capacity=self._capacity, on_change=self._report_buffer_level)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def buffer_level(self) -> int:
        """Number of decoded images waiting for a worker."""
        return len(self._output)

    @property
    def pending(self) -> int:
        """Number of paths waiting for a loader."""
        return len(self._input)

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start loader threads for a new run with fresh queues and counters."""
        with self._state_lock:
            if self._active:
                raise RuntimeError("Loader is already running")
            self._stop_event.clear()
            self._failure = None
            self._input = BlockingQueue()
            self._output = self._new_output()
            self._active = self.threads
            self._threads = [
                threading.Thread(
                    target=self._run,
                    name=f"image-loader-{i}",
                    daemon=True,
                )
                for i in range(self.threads)
            ]
        for thread in self._threads:
            thread.start()
        logger.debug(f"Started {self.threads} loader threads (buffer capacity {self._capacity})")

    def submit(self, paths: Iterable[str | Path]) -> int:
        """
        Queue paths for loading and wake idle loaders.

        Returns:
            Number of paths queued
        """
        paths = [str(p) for p in paths]
        if not paths:
            return 0
        queued = self._input.put_all(paths)
        if queued == 0 and self._stop_event.is_set():
            logger.debug(f"Ignoring {len(paths):,} paths submitted after stop")
            return 0
        if queued == 0:
            raise RuntimeError("Loader input is closed; start a new run before submitting")
        total = self.counters.total.increment(queued)
        self._report_total(self.counters.processed.value, total)
        return queued

    def clear(self) -> None:
        """Drop all pending paths and reset the processed/total counters."""
        discarded = self._input.clear()
        self.counters.reset_progress()
        if discarded:
            logger.info(f"Cleared {discarded:,} pending paths")
        self._report_total(0, 0)

    def finish(self) -> None:
        """Declare that no more paths will be submitted for this run."""
        self._input.close()

    def stop(self) -> None:
        """
        Stop loading as soon as possible.

        Pending paths are discarded and every thread blocked on the input
        or output queue is woken. A loader in the middle of decoding a file
        finishes that file and then exits.
        """
        self._stop_event.set()
        self._input.clear()
        self._input.close()
        self._output.close()
        # Decoded images nobody will hash
        for _, image in self._output.drain(self._capacity):
            image.close()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for loader threads to exit.

        Returns:
            True if every loader thread has exited
        """
        for thread in self._threads:
            thread.join(timeout)
        return not self.running

    def failure(self) -> Optional[StoreUnavailableError]:
        """Return the store outage that ended a loader thread, if any."""
        return self._failure

    def raise_for_failure(self) -> None:
        """Re-raise the store outage that ended a loader thread, if any."""
        if self._failure is not None:
            raise self._failure

    # Consumer side
    def wait_for_data(self, timeout: Optional[float] = None) -> bool:
        """
        Block until decoded images are available.

        Returns:
            True if data is available, False once the run has no more data
        """
        return self._output.wait_not_empty(timeout)

    def drain(self, max_elements: int) -> list[tuple[str, Image.Image]]:
        """Take up to max_elements decoded images without blocking."""
        return self._output.drain(max_elements)

    def _run(self) -> None:
        name = threading.current_thread().name
        logger.debug(f"{name} started")
        try:
            while not self._stop_event.is_set():
                try:
                    path = self._input.get()
                except QueueClosed:
                    break
                if self._stop_event.is_set():
                    break
                try:
                    self._load(path)
                except StoreUnavailableError:
                    raise
                except Exception:
                    # Counted as unreadable; the next path is unaffected
                    logger.exception(f"{name} failed loading {path!r}")
                    self.counters.read_failures.increment()
                    self._mark_processed()
        except StoreUnavailableError as e:
            logger.error(f"{name} stopping, record store unavailable - {e}")
            with self._state_lock:
                if self._failure is None:
                    self._failure = e
            if self.on_fatal is not None:
                self.on_fatal(e)
        finally:
            self._loader_exited()
            logger.debug(f"{name} terminated")

    def _loader_exited(self) -> None:
        with self._state_lock:
            self._active -= 1
            last = self._active == 0
        if last:
            # No more producers: let the workers drain what is left and exit
            self._output.close()

    def _mark_processed(self) -> None:
        processed = self.counters.processed.increment()
        self._report_total(processed, self.counters.total.value)

    def _report_total(self, processed: int, total: int) -> None:
        try:
            self.progress.on_total_progress(processed, total)
        except Exception as e:
            logger.warning(f"Progress callback failed - {e}")

    def _report_buffer_level(self, current: int, capacity: Optional[int]) -> None:
        try:
            self.progress.on_buffer_level_changed(current, capacity)
        except Exception as e:
            logger.warning(f"Progress callback failed - {e}")

    def _already_handled(self, path: str) -> bool:
        try:
            return self.store.is_bad_file(path) or self.store.exists(path)
        except StoreUnavailableError:
            raise
        except StoreError as e:
            logger.warning(f"Failed to query record store for {path} - {e}")
            return False

    def _quarantine(self, path: str, reason: str) -> None:
        try:
            if self.store.add_bad_file(BadFileRecord(path=path, reason=reason)):
                self.counters.bad_files.increment()
        except StoreUnavailableError:
            raise
        except StoreError as e:
            logger.warning(f"Failed to add bad file record for {path} - {e}")

    def _load(self, path: str) -> None:
        if self._already_handled(path):
            self.counters.skipped.increment()
            self._mark_processed()
            logger.debug(f"Skipping {path} (already recorded or quarantined)")
            return

        try:
            data = Path(path).read_bytes()
        except OSError as e:
            logger.warning(f"Failed to read file {path} - {e}")
            self.counters.read_failures.increment()
            self._mark_processed()
            return

        try:
            image = decode_image(data)
        except DecodeError as e:
            logger.warning(f"Failed to decode image {path} - {e}")
            self._quarantine(path, str(e))
            self._mark_processed()
            return
        finally:
            del data

        if not self._output.put((path, image)):
            # Buffer closed by stop(); the image is dropped
            image.close()
            return

        self._mark_processed()


__all__ = ['ImageLoader', 'decode_image']
