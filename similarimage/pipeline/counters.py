"""
Shared counters for the pipeline package.

Loader and worker threads update these concurrently; each counter guards its
value with its own lock so increments are never lost.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from ..models import RunStats


class AtomicCounter:
    """Integer counter with atomic increment."""

    def __init__(self, value: int = 0):
        self._value = value
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        """Add amount and return the new value."""
        with self._lock:
            self._value += amount
            return self._value

    def set(self, value: int) -> None:
        with self._lock:
            self._value = value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"


class PipelineCounters:
    """
    Counters for one indexing run.

    total/processed track the loader stage (paths submitted vs. paths taken
    off the input queue and dealt with). The rest break processed paths down
    by outcome.
    """

    def __init__(self):
        self.total = AtomicCounter()
        self.processed = AtomicCounter()
        self.hashed = AtomicCounter()
        self.records_added = AtomicCounter()
        self.skipped = AtomicCounter()
        self.bad_files = AtomicCounter()
        self.read_failures = AtomicCounter()
        self.hash_failures = AtomicCounter()
        self.write_failures = AtomicCounter()
        self._started_at: Optional[float] = None
        self._finished_at: Optional[float] = None

    def reset(self) -> None:
        """Zero every counter and restart the clock."""
        for counter in self._all():
            counter.set(0)
        self._started_at = time.monotonic()
        self._finished_at = None

    def reset_progress(self) -> None:
        """Zero total/processed only (used when the input queue is cleared)."""
        self.total.set(0)
        self.processed.set(0)

    def mark_finished(self) -> None:
        self._finished_at = time.monotonic()

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._finished_at if self._finished_at is not None else time.monotonic()
        return end - self._started_at

    def _all(self) -> list[AtomicCounter]:
        return [
            self.total, self.processed, self.hashed, self.records_added,
            self.skipped, self.bad_files, self.read_failures,
            self.hash_failures, self.write_failures,
        ]

    def snapshot(self) -> RunStats:
        """Return the current values as an immutable RunStats."""
        return RunStats(
            total=self.total.value,
            processed=self.processed.value,
            hashed=self.hashed.value,
            records_added=self.records_added.value,
            skipped=self.skipped.value,
            bad_files=self.bad_files.value,
            read_failures=self.read_failures.value,
            hash_failures=self.hash_failures.value,
            write_failures=self.write_failures.value,
            elapsed_seconds=self.elapsed_seconds,
        )


__all__ = ['AtomicCounter', 'PipelineCounters']
